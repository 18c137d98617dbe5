"""
Closure selector: reduces each instrument's conflicts to the deals to close.

Policy per instrument:
    - OPEN_OPEN_CONFLICT: keep the earliest-created position, close the rest.
      Equal timestamps keep detection order (stable sort).
    - OPEN_CLOSED_CONFLICT: always closed, no survivor.
    - Instruments in the exclusion set are skipped entirely.

A deal is emitted at most once even when it carries both reasons.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from dedup_core.conflict_detector import ConflictMap
from dedup_core.contracts import ConflictReason, ConflictRecord

logger = logging.getLogger("dedup.core.selector")


def select_instrument_closures(records: list[ConflictRecord]) -> list[ConflictRecord]:
    """Apply the keep-oldest / close-after-closed-trade policy to one instrument."""
    open_conflicts = [r for r in records if r.reason is ConflictReason.OPEN_OPEN_CONFLICT]
    closed_conflicts = [r for r in records if r.reason is ConflictReason.OPEN_CLOSED_CONFLICT]

    open_conflicts.sort(key=lambda r: r.position.created_at)
    return open_conflicts[1:] + closed_conflicts


def select_closures(
    conflicts: ConflictMap,
    *,
    excluded_instruments: Iterable[str] = (),
) -> list[ConflictRecord]:
    """Flatten every instrument's selected records into one closure list."""
    excluded = frozenset(excluded_instruments)
    closures: list[ConflictRecord] = []
    seen: set[str] = set()

    for instrument, records in conflicts.items():
        if instrument in excluded:
            logger.info("Skipping excluded instrument %s (%d conflict(s))", instrument, len(records))
            continue
        for record in select_instrument_closures(records):
            if record.deal_id in seen:
                continue
            seen.add(record.deal_id)
            closures.append(record)

    return closures
