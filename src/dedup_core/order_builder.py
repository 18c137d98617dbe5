"""
Closure order builder: selected conflict records -> ClosureOrder list.

Positions on a market that is not TRADEABLE cannot be closed right now and
are skipped without error; the next run picks them up again.
"""

from __future__ import annotations

import logging

from dedup_core.contracts import (
    ClosureOrder,
    ConflictRecord,
    Direction,
    OrderType,
    TimeInForce,
)

logger = logging.getLogger("dedup.core.orders")


def invert_direction(direction: Direction | str) -> Direction:
    """BUY -> SELL, SELL -> BUY."""
    return Direction(direction).inverse()


def build_closure_order(record: ConflictRecord) -> ClosureOrder:
    pos = record.position
    return ClosureOrder(
        deal_id=pos.deal_id,
        direction=invert_direction(pos.direction),
        size=str(pos.size),
        order_type=OrderType.MARKET,
        time_in_force=TimeInForce.FILL_OR_KILL,
        instrument_name=pos.instrument_name,
    )


def build_closure_orders(
    closures: list[ConflictRecord],
) -> tuple[list[ClosureOrder], list[ConflictRecord]]:
    """Return (orders, skipped). Order of *closures* is preserved."""
    orders: list[ClosureOrder] = []
    skipped: list[ConflictRecord] = []
    for record in closures:
        if not record.position.is_tradeable:
            logger.info(
                "Skipping %s on %s: market status %s",
                record.deal_id,
                record.position.instrument_name,
                record.position.market_status,
            )
            skipped.append(record)
            continue
        orders.append(build_closure_order(record))
    return orders, skipped
