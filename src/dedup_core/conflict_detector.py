"""
Conflict detector: flags positions opened too close in time on one instrument.

Two independent passes over a symmetric, inclusive time window:

1. Open-open: every unordered pair of open positions within one instrument
   group. Each position found in at least one close pair is recorded once.
2. Open-closed: every open position against every recently closed trade on
   the same instrument. Only positions opened strictly after the closed
   trade count (configurable), so an older holding is never treated as a
   fresh duplicate of a later trade.

Pure functions; no I/O. Records are keyed by (reason, deal_id) so repeated
pair membership never duplicates a record.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from dedup_core.contracts import ConflictReason, ConflictRecord, OpenPosition
from dedup_core.grouping import ClosedTradeGroups, InstrumentGroups

DEFAULT_WINDOW = timedelta(hours=24)

ConflictMap = dict[str, list[ConflictRecord]]


class ConflictSet:
    """Insertion-ordered conflict records for one instrument, idempotent per deal and reason."""

    def __init__(self) -> None:
        self._records: list[ConflictRecord] = []
        self._keys: set[tuple[ConflictReason, str]] = set()

    def add(self, position: OpenPosition, reason: ConflictReason) -> None:
        key = (reason, position.deal_id)
        if key in self._keys:
            return
        self._keys.add(key)
        self._records.append(ConflictRecord(position=position, reason=reason))

    @property
    def records(self) -> list[ConflictRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


def within_window(a: datetime, b: datetime, window: timedelta = DEFAULT_WINDOW) -> bool:
    """True when two timestamps are at most *window* apart (either order)."""
    return abs(a - b) <= window


def _open_open_pass(
    groups: InstrumentGroups,
    window: timedelta,
    sets: dict[str, ConflictSet],
) -> None:
    for instrument, positions in groups.items():
        if len(positions) < 2:
            continue
        for i in range(len(positions)):
            for j in range(i + 1, len(positions)):
                if within_window(positions[i].created_at, positions[j].created_at, window):
                    conflicts = sets.setdefault(instrument, ConflictSet())
                    conflicts.add(positions[i], ConflictReason.OPEN_OPEN_CONFLICT)
                    conflicts.add(positions[j], ConflictReason.OPEN_OPEN_CONFLICT)


def _open_closed_pass(
    groups: InstrumentGroups,
    closed: ClosedTradeGroups,
    window: timedelta,
    require_created_after: bool,
    sets: dict[str, ConflictSet],
) -> None:
    for instrument, trades in closed.items():
        positions = groups.get(instrument)
        if not positions or not trades:
            continue
        for pos in positions:
            for trade in trades:
                if not within_window(pos.created_at, trade.opened_at, window):
                    continue
                if require_created_after and not pos.created_at > trade.opened_at:
                    continue
                sets.setdefault(instrument, ConflictSet()).add(
                    pos, ConflictReason.OPEN_CLOSED_CONFLICT
                )


def find_open_conflicts(
    groups: InstrumentGroups,
    window: timedelta = DEFAULT_WINDOW,
) -> ConflictMap:
    """Open-open pass only."""
    sets: dict[str, ConflictSet] = {}
    _open_open_pass(groups, window, sets)
    return {k: v.records for k, v in sets.items()}


def find_closed_conflicts(
    groups: InstrumentGroups,
    closed: ClosedTradeGroups,
    window: timedelta = DEFAULT_WINDOW,
    *,
    require_created_after: bool = True,
) -> ConflictMap:
    """Open-closed pass only."""
    sets: dict[str, ConflictSet] = {}
    _open_closed_pass(groups, closed, window, require_created_after, sets)
    return {k: v.records for k, v in sets.items()}


def detect_conflicts(
    groups: InstrumentGroups,
    closed: ClosedTradeGroups | None = None,
    *,
    window: timedelta = DEFAULT_WINDOW,
    require_created_after: bool = True,
) -> ConflictMap:
    """Run both passes and return instrument -> conflict records.

    Instruments without conflicts are absent from the result. Within an
    instrument, open-open records come first, then open-closed records,
    each in detection order.
    """
    sets: dict[str, ConflictSet] = {}
    _open_open_pass(groups, window, sets)
    if closed:
        _open_closed_pass(groups, closed, window, require_created_after, sets)
    return {k: v.records for k, v in sets.items() if len(v)}
