"""
IG REST client: implements BrokerClient against the IG dealing gateway.

Maps IG payloads to dedup_core.contracts (OpenPosition, ClosedTrade).
Session tokens come back in the CST / X-SECURITY-TOKEN response headers and
are sent on every later request. Closing a position is a POST to
/positions/otc with the ``_method: DELETE`` override header.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import requests

from dedup_core.contracts import ClosedTrade, ClosureOrder, Direction, OpenPosition

from broker.client import (
    AuthenticationError,
    BrokerError,
    ClosePositionError,
    MarketStatusError,
    Session,
)

logger = logging.getLogger(__name__)

DEMO_BASE_URL = "https://demo-api.ig.com/gateway/deal"
LIVE_BASE_URL = "https://api.ig.com/gateway/deal"

_IG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def parse_ig_timestamp(value: str) -> datetime:
    """Parse an IG UTC timestamp ('2024-01-15T10:22:33' or with fraction/offset)."""
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def closure_payload(order: ClosureOrder) -> dict[str, Any]:
    """Request body for POST /positions/otc (DELETE override)."""
    return {
        "dealId": order.deal_id,
        "epic": None,
        "expiry": None,
        "direction": order.direction.value,
        "size": order.size,
        "level": None,
        "orderType": order.order_type.value,
        "timeInForce": order.time_in_force.value,
        "quoteId": None,
    }


def _error_code(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("errorCode", response.text[:200]))
    return response.text[:200]


def _body(response: requests.Response, error_cls: type[BrokerError], what: str) -> dict[str, Any]:
    """Decode a 200 response as a JSON object or raise *error_cls*."""
    try:
        body = response.json()
    except ValueError as exc:
        raise error_cls(f"{what} returned a non-JSON body", status_code=response.status_code) from exc
    if not isinstance(body, dict):
        raise error_cls(f"{what} returned an unexpected body", status_code=response.status_code)
    return body


def _map_position(item: dict[str, Any]) -> OpenPosition:
    position = item["position"]
    market = item["market"]
    return OpenPosition(
        deal_id=position["dealId"],
        instrument_name=market["instrumentName"],
        direction=Direction(position["direction"]),
        size=Decimal(str(position["size"])),
        created_at=parse_ig_timestamp(position["createdDateUTC"]),
        market_status=market.get("marketStatus", ""),
        epic=market.get("epic"),
    )


# Decimal raises InvalidOperation (an ArithmeticError) on a bad size.
_MAPPING_ERRORS = (KeyError, TypeError, ValueError, AttributeError, ArithmeticError)


class IGClient:
    """
    Talk to the IG REST API.

    Credentials via constructor (typically from AppConfig, sourced from env vars).
    A ``requests.Session`` may be injected; tests pass a MagicMock.
    """

    def __init__(
        self,
        api_key: str,
        username: str,
        password: str,
        *,
        demo: bool = True,
        timeout: float = 10.0,
        http: requests.Session | None = None,
    ) -> None:
        if not api_key or not username or not password:
            raise ValueError(
                "IG API key, username and password are required. "
                "Set IG_API_KEY, IG_USERNAME and IG_PASSWORD environment variables."
            )
        self._api_key = api_key
        self._username = username
        self._password = password
        self._timeout = timeout
        self._http = http or requests.Session()
        self.base_url = DEMO_BASE_URL if demo else LIVE_BASE_URL

    def _headers(self, version: str, session: Session | None = None, **extra: str) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json; charset=UTF-8",
            "X-IG-API-KEY": self._api_key,
            "Version": version,
        }
        if session is not None:
            headers["CST"] = session.cst
            headers["X-SECURITY-TOKEN"] = session.security_token
        headers.update(extra)
        return headers

    def _get(self, path: str, session: Session, version: str, params: dict | None = None) -> requests.Response:
        return self._http.get(
            f"{self.base_url}{path}",
            headers=self._headers(version, session),
            params=params,
            timeout=self._timeout,
        )

    # ---------- Authenticator ----------

    def login(self) -> Session:
        try:
            response = self._http.post(
                f"{self.base_url}/session",
                json={"identifier": self._username, "password": self._password},
                headers=self._headers("2"),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise AuthenticationError(f"IG login request failed: {exc}") from exc

        if response.status_code != 200:
            raise AuthenticationError(
                f"IG login failed ({response.status_code}): {_error_code(response)}",
                status_code=response.status_code,
            )
        cst = response.headers.get("CST")
        token = response.headers.get("X-SECURITY-TOKEN")
        if not cst or not token:
            raise AuthenticationError("IG login response is missing CST / X-SECURITY-TOKEN headers")
        logger.info("IG session created (%s)", self.base_url)
        return Session(cst=cst, security_token=token)

    # ---------- MarketStatusChecker ----------

    def market_status(self, session: Session, epic: str) -> str:
        try:
            response = self._get(f"/markets/{epic}", session, "3")
        except requests.RequestException as exc:
            raise MarketStatusError(f"IG market request for {epic} failed: {exc}") from exc
        if response.status_code != 200:
            raise MarketStatusError(
                f"IG market request for {epic} failed ({response.status_code}): {_error_code(response)}",
                status_code=response.status_code,
            )
        body = _body(response, MarketStatusError, f"IG market request for {epic}")
        snapshot = body.get("snapshot")
        status = snapshot.get("marketStatus") if isinstance(snapshot, dict) else None
        if not status:
            raise MarketStatusError(f"IG market response for {epic} has no snapshot.marketStatus")
        return status

    # ---------- OpenPositionsFetcher ----------

    def open_positions(self, session: Session) -> list[OpenPosition]:
        try:
            response = self._get("/positions", session, "2")
        except requests.RequestException as exc:
            raise BrokerError(f"IG positions request failed: {exc}") from exc
        if response.status_code != 200:
            raise BrokerError(
                f"IG positions request failed ({response.status_code}): {_error_code(response)}",
                status_code=response.status_code,
            )
        body = _body(response, BrokerError, "IG positions request")
        try:
            out = [_map_position(item) for item in body.get("positions") or []]
        except _MAPPING_ERRORS as exc:
            raise BrokerError(f"IG positions response is malformed: {exc!r}") from exc
        logger.info("Fetched %d open position(s)", len(out))
        return out

    # ---------- ClosedTradesFetcher ----------

    def closed_trades(self, session: Session, days: int = 1) -> list[ClosedTrade]:
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        params = {
            "type": "ALL_DEAL",
            "from": start.strftime(_IG_DATE_FORMAT),
            "to": end.strftime(_IG_DATE_FORMAT),
            "pageSize": 0,
        }
        try:
            response = self._get("/history/transactions", session, "2", params=params)
        except requests.RequestException as exc:
            raise BrokerError(f"IG transaction history request failed: {exc}") from exc
        if response.status_code != 200:
            raise BrokerError(
                f"IG transaction history request failed ({response.status_code}): {_error_code(response)}",
                status_code=response.status_code,
            )
        body = _body(response, BrokerError, "IG transaction history request")
        out: list[ClosedTrade] = []
        try:
            for tx in body.get("transactions") or []:
                opened = tx.get("openDateUtc")
                if not opened or not tx.get("instrumentName"):
                    continue
                closed = tx.get("dateUtc")
                out.append(
                    ClosedTrade(
                        instrument_name=tx["instrumentName"],
                        opened_at=parse_ig_timestamp(opened),
                        closed_at=parse_ig_timestamp(closed) if closed else None,
                        reference=tx.get("reference"),
                    )
                )
        except _MAPPING_ERRORS as exc:
            raise BrokerError(f"IG transaction history response is malformed: {exc!r}") from exc
        logger.info("Fetched %d closed trade(s) over the last %d day(s)", len(out), days)
        return out

    # ---------- PositionCloser ----------

    def close_position(self, session: Session, order: ClosureOrder) -> dict:
        try:
            response = self._http.post(
                f"{self.base_url}/positions/otc",
                json=closure_payload(order),
                headers=self._headers("1", session, _method="DELETE"),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ClosePositionError(order.deal_id, f"Failed to close {order.deal_id}: {exc}") from exc
        if not response.ok:
            raise ClosePositionError(
                order.deal_id,
                f"Failed to close {order.deal_id}. Status code: {response.status_code} ({_error_code(response)})",
                status_code=response.status_code,
            )
        logger.info("Closed %s (%s %s)", order.deal_id, order.direction.value, order.size)
        try:
            return response.json()
        except ValueError:
            return {}
