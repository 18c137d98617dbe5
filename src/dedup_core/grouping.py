"""
Instrument grouping: flat or pre-grouped snapshots -> instrument name -> list.

Upstream feeds come either as one flat list or already keyed by instrument
(optionally wrapped as ``{"positions": [...]}``). Both shapes normalize to the
same plain dict, built fresh per run.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from dedup_core.contracts import ClosedTrade, OpenPosition

InstrumentGroups = dict[str, list[OpenPosition]]
ClosedTradeGroups = dict[str, list[ClosedTrade]]


def _flatten(items: Iterable[Any] | Mapping[str, Any] | None) -> list[Any]:
    if items is None:
        return []
    if isinstance(items, Mapping):
        out: list[Any] = []
        for value in items.values():
            if isinstance(value, Mapping):
                value = value.get("positions", [])
            out.extend(value)
        return out
    return list(items)


def group_positions(
    positions: Iterable[OpenPosition] | Mapping[str, Any] | None,
) -> InstrumentGroups:
    """Group open positions by ``instrument_name``, preserving feed order."""
    groups: InstrumentGroups = {}
    for pos in _flatten(positions):
        groups.setdefault(pos.instrument_name, []).append(pos)
    return groups


def group_closed_trades(
    trades: Iterable[ClosedTrade] | Mapping[str, Iterable[ClosedTrade]] | None,
) -> ClosedTradeGroups:
    """Group closed trades by ``instrument_name``, preserving feed order."""
    groups: ClosedTradeGroups = {}
    for trade in _flatten(trades):
        groups.setdefault(trade.instrument_name, []).append(trade)
    return groups
