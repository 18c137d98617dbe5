"""Tests for dedup_core.grouping: flat and pre-grouped feeds normalize the same way."""

from dedup_core.grouping import group_closed_trades, group_positions

from snapshots import make_closed, make_position


def test_group_flat_list() -> None:
    a = make_position("A", 0, instrument="EUR/USD")
    b = make_position("B", 1, instrument="Gold")
    c = make_position("C", 2, instrument="EUR/USD")
    groups = group_positions([a, b, c])
    assert list(groups) == ["EUR/USD", "Gold"]
    assert groups["EUR/USD"] == [a, c]
    assert groups["Gold"] == [b]


def test_group_pre_grouped_mapping() -> None:
    a = make_position("A", 0, instrument="EUR/USD")
    b = make_position("B", 1, instrument="Gold")
    groups = group_positions({"EUR/USD": [a], "Gold": [b]})
    assert groups == {"EUR/USD": [a], "Gold": [b]}


def test_group_wrapped_positions_mapping() -> None:
    a = make_position("A", 0)
    b = make_position("B", 3)
    groups = group_positions({"EUR/USD": {"positions": [a, b]}})
    assert groups == {"EUR/USD": [a, b]}


def test_group_regroups_by_instrument_name() -> None:
    """Keys of a pre-grouped feed are not trusted; instrument_name wins."""
    a = make_position("A", 0, instrument="Gold")
    groups = group_positions({"wrong-key": [a]})
    assert groups == {"Gold": [a]}


def test_group_empty_inputs() -> None:
    assert group_positions([]) == {}
    assert group_positions({}) == {}
    assert group_positions(None) == {}


def test_group_closed_trades() -> None:
    t1 = make_closed(0, "Gold")
    t2 = make_closed(4, "Gold")
    t3 = make_closed(1, "EUR/USD")
    groups = group_closed_trades([t1, t2, t3])
    assert groups == {"Gold": [t1, t2], "EUR/USD": [t3]}
    assert group_closed_trades({"Gold": [t1]}) == {"Gold": [t1]}
    assert group_closed_trades(None) == {}
