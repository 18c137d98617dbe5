"""
Closure executor: submits closure orders one at a time, fails together at the end.

Every order is attempted in list order. A broker failure on one deal is
recorded and the loop moves on; once all orders were tried, a single
ClosureBatchError enumerating every failure is raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from broker.client import BrokerError
from dedup_core.contracts import ClosureOrder

logger = logging.getLogger("dedup.execution")

CloseFn = Callable[[ClosureOrder], object]


@dataclass(frozen=True)
class ClosureFailure:
    deal_id: str
    message: str
    status_code: int | None = None


class ClosureBatchError(Exception):
    """Raised after a batch when one or more closures failed."""

    def __init__(self, failures: list[ClosureFailure], attempted: int) -> None:
        self.failures = list(failures)
        self.attempted = attempted
        detail = "; ".join(f"{f.deal_id}: {f.message}" for f in self.failures)
        super().__init__(f"{len(self.failures)} of {attempted} closure(s) failed: {detail}")

    @property
    def messages(self) -> list[str]:
        return [f.message for f in self.failures]


class ClosureExecutor:
    """
    Sequential closure submission with deferred error collection.

    Parameters
    ----------
    close:
        Callable submitting one order (e.g. ``partial(client.close_position, session)``).
        Must raise BrokerError on a non-success response.
    on_closed, on_failed:
        Optional hooks for journaling / structured events. A hook that raises
        is logged and never stops the batch.
    """

    def __init__(
        self,
        close: CloseFn,
        *,
        on_closed: Callable[[ClosureOrder], None] | None = None,
        on_failed: Callable[[ClosureOrder, ClosureFailure], None] | None = None,
    ) -> None:
        self._close = close
        self._on_closed = on_closed
        self._on_failed = on_failed

    def _run_hook(self, hook: Callable[..., None], order: ClosureOrder, *args: object) -> None:
        try:
            hook(order, *args)
        except Exception as exc:
            logger.warning("Post-closure hook failed for %s: %s", order.deal_id, exc)

    def execute(self, orders: list[ClosureOrder]) -> list[str]:
        """Submit every order. Returns closed deal ids, or raises ClosureBatchError."""
        closed: list[str] = []
        failures: list[ClosureFailure] = []

        for order in orders:
            try:
                self._close(order)
            except BrokerError as exc:
                failure = ClosureFailure(
                    deal_id=order.deal_id,
                    message=str(exc),
                    status_code=exc.status_code,
                )
                logger.error("Failed to close position %s: %s", order.deal_id, exc)
                failures.append(failure)
                if self._on_failed:
                    self._run_hook(self._on_failed, order, failure)
                continue
            closed.append(order.deal_id)
            if self._on_closed:
                self._run_hook(self._on_closed, order)

        if failures:
            raise ClosureBatchError(failures, attempted=len(orders))
        return closed
