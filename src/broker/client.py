"""
Broker collaborator contract. Implement per provider (IG, ...).

The core never talks to a broker; the run cycle does, through this protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from dedup_core.contracts import ClosedTrade, ClosureOrder, MarketStatus, OpenPosition


class BrokerError(Exception):
    """Base class for broker-side failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(BrokerError):
    """Login failed; nothing can be fetched or closed."""


class MarketStatusError(BrokerError):
    """Market status could not be determined."""


class ClosePositionError(BrokerError):
    """The broker refused or failed a closing order."""

    def __init__(self, deal_id: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code)
        self.deal_id = deal_id


@dataclass(frozen=True)
class Session:
    """Opaque session token pair returned by login."""

    cst: str
    security_token: str


class BrokerClient(Protocol):
    def login(self) -> Session:
        ...

    def market_status(self, session: Session, epic: str) -> str:
        ...

    def open_positions(self, session: Session) -> list[OpenPosition]:
        ...

    def closed_trades(self, session: Session, days: int = 1) -> list[ClosedTrade]:
        ...

    def close_position(self, session: Session, order: ClosureOrder) -> dict:
        ...


@dataclass
class MockBrokerClient:
    """Serves canned snapshots and records close requests; for tests and dry runs."""

    positions: list[OpenPosition] = field(default_factory=list)
    trades: list[ClosedTrade] = field(default_factory=list)
    status: str = MarketStatus.TRADEABLE.value
    failing_deals: dict[str, str] = field(default_factory=dict)
    closed: list[ClosureOrder] = field(default_factory=list)

    def login(self) -> Session:
        return Session(cst="mock-cst", security_token="mock-token")

    def market_status(self, session: Session, epic: str) -> str:
        return self.status

    def open_positions(self, session: Session) -> list[OpenPosition]:
        return list(self.positions)

    def closed_trades(self, session: Session, days: int = 1) -> list[ClosedTrade]:
        return list(self.trades)

    def close_position(self, session: Session, order: ClosureOrder) -> dict:
        if order.deal_id in self.failing_deals:
            raise ClosePositionError(order.deal_id, self.failing_deals[order.deal_id], status_code=400)
        self.closed.append(order)
        return {"dealReference": f"REF-{order.deal_id}"}
