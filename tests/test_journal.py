"""Tests for journal: append-only JSONL of conflicts and closures."""

import json
from pathlib import Path

from dedup_core.contracts import ClosureOrder, ConflictReason, ConflictRecord, Direction
from journal import JournalWriter

from snapshots import make_position


def _lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().strip().split("\n")]


def test_journal_conflict_and_closure(tmp_path: Path) -> None:
    path = tmp_path / "sub" / "journal.jsonl"
    j = JournalWriter(path)
    record = ConflictRecord(position=make_position("B", 5, size="1.5"), reason=ConflictReason.OPEN_OPEN_CONFLICT)
    j.conflict(record, dry_run=True)
    order = ClosureOrder(deal_id="B", direction=Direction.SELL, size="1.5", instrument_name="EUR/USD")
    j.closure(order)
    j.closure_failure(order, "Status code: 500", 500)

    conflict, closure, failure = _lines(path)
    assert conflict["event"] == "conflict"
    assert conflict["reason"] == "OPEN_OPEN_CONFLICT"
    assert conflict["size"] == "1.5"
    assert conflict["created_at"] == "2026-02-17T05:00:00+00:00"
    assert conflict["dry_run"] is True
    assert closure["event"] == "closure"
    assert closure["direction"] == "SELL"
    assert closure["time_in_force"] == "FILL_OR_KILL"
    assert failure["event"] == "closure_failure"
    assert failure["status_code"] == 500
    assert "ts_utc" in failure


def test_journal_appends(tmp_path: Path) -> None:
    path = tmp_path / "journal.jsonl"
    order = ClosureOrder(deal_id="X", direction=Direction.BUY, size="1")
    JournalWriter(path).closure(order)
    JournalWriter(path).closure(order)
    assert len(_lines(path)) == 2
