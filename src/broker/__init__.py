"""
Broker collaborators: login, market status, open positions, closed trades, close orders.

Depends on dedup_core.contracts; no dependency from dedup_core back to broker.
"""

from broker.client import (
    AuthenticationError,
    BrokerClient,
    BrokerError,
    ClosePositionError,
    MarketStatusError,
    MockBrokerClient,
    Session,
)

__all__ = [
    "AuthenticationError",
    "BrokerClient",
    "BrokerError",
    "ClosePositionError",
    "MarketStatusError",
    "MockBrokerClient",
    "Session",
]


def get_ig_client(api_key: str, username: str, password: str, *, demo: bool = True, timeout: float = 10.0):
    """Lazy import so the core and tests never need an HTTP stack loaded."""
    from broker.ig_client import IGClient

    return IGClient(api_key, username, password, demo=demo, timeout=timeout)
