"""
Human-readable conflict reports for the terminal.

The tool must explain every closure it proposes: which deals clash, why,
which one survives and which are skipped because their market is shut.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dedup_core.contracts import ConflictReason, ConflictRecord

if TYPE_CHECKING:
    from dedup_core.pipeline import PipelineResult

_REASON_LABEL = {
    ConflictReason.OPEN_OPEN_CONFLICT: "open/open",
    ConflictReason.OPEN_CLOSED_CONFLICT: "open/closed",
}


def _fmt_record(record: ConflictRecord, action: str) -> str:
    pos = record.position
    return (
        f"    {pos.deal_id:20s} {pos.direction.value:4s} {str(pos.size):>8s}  "
        f"{pos.created_at:%Y-%m-%d %H:%M} UTC  {_REASON_LABEL[record.reason]:11s}  {action}"
    )


def format_scan(result: PipelineResult) -> str:
    """Per-instrument breakdown of conflicts and the action taken on each deal."""
    lines = [
        "=== Duplicate Exposure Scan ===",
        f"Open positions   : {sum(len(v) for v in result.groups.values())} "
        f"across {len(result.groups)} instrument(s)",
        f"Closed trades    : {sum(len(v) for v in result.closed_groups.values())}",
        f"Conflicts        : {result.conflict_count}",
        "",
    ]
    if not result.conflicts:
        lines.append("  No duplicate exposure detected.")
        return "\n".join(lines)

    to_close = {r.deal_id for r in result.closures}
    skipped = {r.deal_id for r in result.skipped}

    for instrument, records in result.conflicts.items():
        lines.append(f"  {instrument}")
        for record in records:
            if record.deal_id in skipped:
                action = f"SKIP ({record.position.market_status})"
            elif record.deal_id in to_close:
                action = "CLOSE"
            else:
                action = "keep"
            lines.append(_fmt_record(record, action))
        lines.append("")

    lines.append(f"Orders           : {len(result.orders)}")
    for order in result.orders:
        lines.append(
            f"  {order.deal_id:20s} {order.direction.value:4s} {order.size:>8s}  "
            f"{order.order_type.value} / {order.time_in_force.value}"
        )
    return "\n".join(lines)


def format_cycle_summary(closed: list[str], failed: int = 0) -> str:
    if not closed and not failed:
        return "No positions closed."
    parts = [f"Closed {len(closed)} position(s)"]
    if failed:
        parts.append(f"{failed} failed")
    return ", ".join(parts) + "."
