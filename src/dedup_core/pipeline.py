"""
Pipeline orchestrator: chains Grouper -> Detector -> Selector -> Order builder.

Single entry point for turning one broker snapshot into closure orders.
Pure: every stage's output is kept on the result for reporting and journaling;
submitting the orders is the executor's job.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from dedup_core.closure_selector import select_closures
from dedup_core.conflict_detector import DEFAULT_WINDOW, ConflictMap, detect_conflicts
from dedup_core.contracts import ClosedTrade, ClosureOrder, ConflictRecord, OpenPosition
from dedup_core.grouping import (
    ClosedTradeGroups,
    InstrumentGroups,
    group_closed_trades,
    group_positions,
)
from dedup_core.order_builder import build_closure_orders


@dataclass(frozen=True)
class PipelineResult:
    """Complete output of one snapshot's evaluation."""

    groups: InstrumentGroups = field(default_factory=dict)
    closed_groups: ClosedTradeGroups = field(default_factory=dict)
    conflicts: ConflictMap = field(default_factory=dict)
    closures: list[ConflictRecord] = field(default_factory=list)
    orders: list[ClosureOrder] = field(default_factory=list)
    skipped: list[ConflictRecord] = field(default_factory=list)

    @property
    def conflict_count(self) -> int:
        return sum(len(v) for v in self.conflicts.values())


def run_pipeline(
    positions: Iterable[OpenPosition] | Mapping[str, Any] | None,
    closed_trades: Iterable[ClosedTrade] | Mapping[str, Iterable[ClosedTrade]] | None = None,
    *,
    window: timedelta = DEFAULT_WINDOW,
    require_created_after: bool = True,
    excluded_instruments: Iterable[str] = (),
) -> PipelineResult:
    """Evaluate one snapshot of open positions against recent closed trades.

    Stages:
        1. Grouper:    positions / closed trades -> per-instrument groups
        2. Detector:   groups -> ConflictRecord per instrument
        3. Selector:   conflicts -> records slated for closure
        4. Builder:    closure records -> ClosureOrder (tradeable markets only)
    """
    groups = group_positions(positions)
    closed_groups = group_closed_trades(closed_trades)
    if not groups:
        return PipelineResult(closed_groups=closed_groups)

    conflicts = detect_conflicts(
        groups,
        closed_groups,
        window=window,
        require_created_after=require_created_after,
    )
    closures = select_closures(conflicts, excluded_instruments=excluded_instruments)
    orders, skipped = build_closure_orders(closures)

    return PipelineResult(
        groups=groups,
        closed_groups=closed_groups,
        conflicts=conflicts,
        closures=closures,
        orders=orders,
        skipped=skipped,
    )
