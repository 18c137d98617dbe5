"""
One dedup cycle: login -> market check -> fetch -> pipeline -> close.

Fatal broker errors (login, market status, fetch) propagate and abort the
cycle before anything is closed. An EDITS_ONLY market ends the cycle early.
Per-deal closure failures are collected by the executor and surface as one
ClosureBatchError once every order was attempted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial

from broker.client import BrokerClient
from config.loader import AppConfig
from dedup_core.contracts import ClosureOrder, MarketStatus
from dedup_core.pipeline import PipelineResult, run_pipeline
from execution import ClosureExecutor, ClosureFailure
from journal import JournalWriter

from cli.structured_log import StructuredEventLogger

logger = logging.getLogger("dedup.cycle")


@dataclass
class CycleResult:
    market_status: str
    pipeline: PipelineResult | None = None
    closed: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.pipeline is None


def run_dedup_cycle(
    cfg: AppConfig,
    client: BrokerClient,
    *,
    events: StructuredEventLogger | None = None,
    journal: JournalWriter | None = None,
    dry_run: bool = False,
) -> CycleResult:
    """Run one full detection + closure cycle against *client*."""
    if events:
        events.run_start(dry_run=dry_run)

    session = client.login()

    epic = cfg.broker.market_check_epic
    status = client.market_status(session, epic)
    if status == MarketStatus.EDITS_ONLY.value:
        logger.info("Market %s is %s; nothing to do this run", epic, status)
        if events:
            events.market_closed(status=status, epic=epic)
        return CycleResult(market_status=status)

    positions = client.open_positions(session)
    trades = client.closed_trades(session, cfg.dedup.closed_trade_lookback_days)

    result = run_pipeline(
        positions,
        trades,
        window=cfg.dedup.window,
        require_created_after=cfg.dedup.require_created_after,
        excluded_instruments=cfg.dedup.excluded_instruments,
    )
    logger.info(
        "%d position(s) across %d instrument(s): %d conflict(s), %d to close, %d order(s)",
        len(positions),
        len(result.groups),
        result.conflict_count,
        len(result.closures),
        len(result.orders),
    )
    if events:
        events.conflicts_detected(
            instruments=sorted(result.conflicts),
            conflicts=result.conflict_count,
            closures=len(result.closures),
            orders=len(result.orders),
            skipped=len(result.skipped),
        )
    if journal:
        for records in result.conflicts.values():
            for record in records:
                journal.conflict(record, dry_run=dry_run)

    if dry_run or not result.orders:
        if events:
            events.run_complete(closed=0, failed=0)
        return CycleResult(market_status=status, pipeline=result)

    def on_closed(order: ClosureOrder) -> None:
        if events:
            events.closure_submitted(
                deal_id=order.deal_id,
                instrument=order.instrument_name,
                direction=order.direction.value,
                size=order.size,
            )
        if journal:
            journal.closure(order)

    def on_failed(order: ClosureOrder, failure: ClosureFailure) -> None:
        if events:
            events.closure_failed(deal_id=failure.deal_id, message=failure.message)
        if journal:
            journal.closure_failure(order, failure.message, failure.status_code)

    executor = ClosureExecutor(
        partial(client.close_position, session),
        on_closed=on_closed,
        on_failed=on_failed,
    )
    closed = executor.execute(result.orders)
    if events:
        events.run_complete(closed=len(closed), failed=0)
    return CycleResult(market_status=status, pipeline=result, closed=closed)
