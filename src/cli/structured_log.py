"""
Structured JSON event logger for cron / container observability.

Emits one JSON object per line to stderr. Events are designed to be
parsed by log aggregators (Grafana Loki, CloudWatch, ELK).

Optional webhook: when configured, closure-level events (closure_submitted,
closure_failed, error) are POSTed to the URL.
"""

from __future__ import annotations

import json
import logging
import sys
import urllib.request
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("dedup.events")


class StructuredEventLogger:
    """Emit structured JSON events to stderr and optional webhook."""

    def __init__(
        self,
        account: str,
        *,
        enabled: bool = True,
        webhook_url: str = "",
        stream: Any = None,
    ) -> None:
        self._account = account
        self._enabled = enabled
        self._webhook_url = webhook_url.strip()
        self._stream = stream or sys.stderr
        self._ALERT_EVENTS = {
            "closure_submitted",
            "closure_failed",
            "error",
        }

    def _emit(self, event_type: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "account": self._account,
            **fields,
        }
        if self._enabled:
            self._stream.write(json.dumps(record) + "\n")
            self._stream.flush()

        if self._webhook_url and event_type in self._ALERT_EVENTS:
            self._post_webhook(record)

        return record

    def _post_webhook(self, record: dict) -> None:
        try:
            data = json.dumps(record).encode("utf-8")
            req = urllib.request.Request(
                self._webhook_url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            urllib.request.urlopen(req, timeout=5)
        except Exception as exc:
            logger.warning("Webhook POST failed: %s", exc)

    def run_start(self, dry_run: bool) -> dict:
        return self._emit("run_start", dry_run=dry_run)

    def market_closed(self, status: str, epic: str) -> dict:
        return self._emit("market_closed", status=status, epic=epic)

    def conflicts_detected(
        self,
        instruments: list[str],
        conflicts: int,
        closures: int,
        orders: int,
        skipped: int,
    ) -> dict:
        return self._emit(
            "conflicts_detected",
            instruments=instruments,
            conflicts=conflicts,
            closures=closures,
            orders=orders,
            skipped=skipped,
        )

    def closure_submitted(self, deal_id: str, instrument: str, direction: str, size: str) -> dict:
        return self._emit(
            "closure_submitted",
            deal_id=deal_id,
            instrument=instrument,
            direction=direction,
            size=size,
        )

    def closure_failed(self, deal_id: str, message: str) -> dict:
        return self._emit("closure_failed", deal_id=deal_id, message=message)

    def run_complete(self, closed: int, failed: int) -> dict:
        return self._emit("run_complete", closed=closed, failed=failed)

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)
