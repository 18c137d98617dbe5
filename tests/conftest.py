"""Pytest fixtures: position snapshots for deterministic tests."""

import pytest

from dedup_core.contracts import Direction, OpenPosition

from snapshots import make_position


@pytest.fixture
def eurusd_pair() -> list[OpenPosition]:
    """A (t=0h) and B (t=5h), both BUY on EUR/USD."""
    return [
        make_position("A", 0),
        make_position("B", 5),
    ]


@pytest.fixture
def gold_position() -> OpenPosition:
    """C (t=10h, SELL) on Gold."""
    return make_position("C", 10, instrument="Gold", direction=Direction.SELL, size="2.5")
