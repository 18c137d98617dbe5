"""
Structured journal: append-only JSON lines. One record per detected conflict and per closure attempt.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

from dedup_core.contracts import ClosureOrder, ConflictRecord


def _serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        return str(obj)
    if hasattr(obj, "__dict__") and not isinstance(obj, type):
        return {k: _serialize(v) for k, v in vars(obj).items() if not k.startswith("_")}
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(x) for x in obj]
    return obj


class JournalWriter:
    """Append-only journal. Each line is a JSON object with event type and payload."""

    def __init__(self, path: str | Path, *, echo_stdout: bool = False) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._echo = echo_stdout

    def _write(self, event_type: str, payload: dict) -> None:
        record = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event_type, **payload}
        line = json.dumps(_serialize(record)) + "\n"
        with open(self._path, "a") as f:
            f.write(line)
        if self._echo:
            print(line.rstrip())

    def conflict(self, record: ConflictRecord, **extra: Any) -> None:
        pos = record.position
        self._write(
            "conflict",
            {
                "instrument": pos.instrument_name,
                "deal_id": pos.deal_id,
                "reason": record.reason,
                "direction": pos.direction,
                "size": pos.size,
                "created_at": pos.created_at,
                "market_status": pos.market_status,
                **extra,
            },
        )

    def closure(self, order: ClosureOrder, **extra: Any) -> None:
        self._write(
            "closure",
            {
                "deal_id": order.deal_id,
                "instrument": order.instrument_name,
                "direction": order.direction,
                "size": order.size,
                "order_type": order.order_type,
                "time_in_force": order.time_in_force,
                **extra,
            },
        )

    def closure_failure(self, order: ClosureOrder, message: str, status_code: int | None = None, **extra: Any) -> None:
        self._write(
            "closure_failure",
            {"deal_id": order.deal_id, "instrument": order.instrument_name, "message": message, "status_code": status_code, **extra},
        )
