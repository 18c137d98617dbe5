"""Integration tests: position snapshots through the full dedup pipeline."""

from datetime import timedelta

from dedup_core.contracts import ConflictReason, Direction, MarketStatus
from dedup_core.pipeline import PipelineResult, run_pipeline

from snapshots import make_closed, make_position


def test_eurusd_scenario(eurusd_pair) -> None:
    """A (0h) and B (5h) BUY on EUR/USD -> close B with a SELL."""
    result = run_pipeline(eurusd_pair)
    assert [r.deal_id for r in result.closures] == ["B"]
    assert len(result.orders) == 1
    order = result.orders[0]
    assert order.deal_id == "B"
    assert order.direction is Direction.SELL
    assert order.size == str(eurusd_pair[1].size)


def test_gold_scenario(gold_position) -> None:
    """C (10h, SELL) on Gold, closed Gold trade opened at 2h -> close C with a BUY."""
    result = run_pipeline([gold_position], [make_closed(2, "Gold")])
    assert [(r.deal_id, r.reason) for r in result.closures] == [("C", ConflictReason.OPEN_CLOSED_CONFLICT)]
    assert len(result.orders) == 1
    assert result.orders[0].direction is Direction.BUY
    assert result.orders[0].size == "2.5"


def test_both_scenarios_together(eurusd_pair, gold_position) -> None:
    result = run_pipeline(eurusd_pair + [gold_position], [make_closed(2, "Gold")])
    assert sorted(o.deal_id for o in result.orders) == ["B", "C"]
    assert result.conflict_count == 3


def test_no_conflicts() -> None:
    positions = [
        make_position("A", 0),
        make_position("B", 48),
        make_position("C", 0, instrument="Gold"),
    ]
    result = run_pipeline(positions, [])
    assert result.conflicts == {}
    assert result.orders == []
    assert len(result.groups) == 2


def test_empty_snapshot() -> None:
    result = run_pipeline([], [make_closed(0)])
    assert isinstance(result, PipelineResult)
    assert result.groups == {}
    assert result.orders == []
    assert len(result.closed_groups["EUR/USD"]) == 1


def test_untradeable_closure_skipped() -> None:
    positions = [make_position("A", 0), make_position("B", 5, status=MarketStatus.CLOSED.value)]
    result = run_pipeline(positions)
    assert [r.deal_id for r in result.closures] == ["B"]
    assert result.orders == []
    assert [r.deal_id for r in result.skipped] == ["B"]


def test_exclusions_and_window_passed_through(eurusd_pair) -> None:
    assert run_pipeline(eurusd_pair, excluded_instruments=["EUR/USD"]).orders == []
    assert run_pipeline(eurusd_pair, window=timedelta(hours=2)).orders == []


def test_pre_grouped_feed(eurusd_pair) -> None:
    result = run_pipeline({"EUR/USD": {"positions": eurusd_pair}})
    assert [o.deal_id for o in result.orders] == ["B"]


def test_cluster_keeps_single_survivor() -> None:
    """Chain A(0) - B(20) - C(40): B bridges, all three conflict, only A survives."""
    positions = [make_position("C", 40), make_position("A", 0), make_position("B", 20)]
    result = run_pipeline(positions)
    assert sorted(r.deal_id for r in result.closures) == ["B", "C"]
