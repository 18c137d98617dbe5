"""
Data contracts for dedup-core: OpenPosition, ClosedTrade, ConflictRecord, ClosureOrder.

dedup-core consumes position/trade snapshots and produces closure orders.
No I/O; these are plain frozen dataclasses.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class Direction(str, Enum):
    """Deal direction as reported by the broker."""

    BUY = "BUY"
    SELL = "SELL"

    def inverse(self) -> "Direction":
        return Direction.SELL if self is Direction.BUY else Direction.BUY


class MarketStatus(str, Enum):
    """Broker market states. Only TRADEABLE permits a closing order."""

    TRADEABLE = "TRADEABLE"
    EDITS_ONLY = "EDITS_ONLY"
    CLOSED = "CLOSED"
    OFFLINE = "OFFLINE"
    ON_AUCTION = "ON_AUCTION"
    ON_AUCTION_NO_EDITS = "ON_AUCTION_NO_EDITS"
    SUSPENDED = "SUSPENDED"


class ConflictReason(str, Enum):
    """Why a position was flagged."""

    OPEN_OPEN_CONFLICT = "OPEN_OPEN_CONFLICT"
    OPEN_CLOSED_CONFLICT = "OPEN_CLOSED_CONFLICT"


class OrderType(str, Enum):
    MARKET = "MARKET"


class TimeInForce(str, Enum):
    FILL_OR_KILL = "FILL_OR_KILL"


@dataclass(frozen=True)
class OpenPosition:
    """A live holding, snapshotted once per run."""

    deal_id: str
    instrument_name: str
    direction: Direction
    size: Decimal
    created_at: datetime
    market_status: str  # MarketStatus value; unknown broker states kept verbatim
    epic: str | None = None

    @property
    def is_tradeable(self) -> bool:
        return self.market_status == MarketStatus.TRADEABLE.value


@dataclass(frozen=True)
class ClosedTrade:
    """Historical record of a trade that has already been closed."""

    instrument_name: str
    opened_at: datetime
    closed_at: datetime | None = None
    reference: str | None = None


@dataclass(frozen=True)
class ConflictRecord:
    position: OpenPosition
    reason: ConflictReason

    @property
    def deal_id(self) -> str:
        return self.position.deal_id


@dataclass(frozen=True)
class ClosureOrder:
    """Broker-facing instruction to close one deal in full, immediately."""

    deal_id: str
    direction: Direction
    size: str
    order_type: OrderType = OrderType.MARKET
    time_in_force: TimeInForce = TimeInForce.FILL_OR_KILL
    instrument_name: str = ""
