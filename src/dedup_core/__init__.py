"""
dedup-core: pure duplicate-exposure detection.

No I/O, no network, no side effects. Consumes open-position and closed-trade
snapshots, produces conflict records and closure orders. Fully deterministic
and unit-testable.
"""

from dedup_core.contracts import (
    ClosedTrade,
    ClosureOrder,
    ConflictReason,
    ConflictRecord,
    Direction,
    MarketStatus,
    OpenPosition,
)
from dedup_core.pipeline import PipelineResult, run_pipeline

__all__ = [
    "ClosedTrade",
    "ClosureOrder",
    "ConflictReason",
    "ConflictRecord",
    "Direction",
    "MarketStatus",
    "OpenPosition",
    "PipelineResult",
    "run_pipeline",
]
