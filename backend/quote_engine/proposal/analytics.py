"""View and conversion statistics for proposals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from .lifecycle import ProposalStatus

DEVICE_TYPES = ("mobile", "tablet", "desktop")

# Statuses a proposal can only hold once it has been sent / viewed.
_REACHED_SENT = {
    ProposalStatus.SENT, ProposalStatus.VIEWED, ProposalStatus.ACCEPTED, ProposalStatus.REJECTED,
}
_REACHED_VIEWED = {ProposalStatus.VIEWED, ProposalStatus.ACCEPTED, ProposalStatus.REJECTED}


@dataclass(frozen=True)
class ViewEvent:
    """One visit to the public proposal page."""

    ip_address: str | None = None
    user_agent: str | None = None
    device_type: str = "desktop"
    duration_seconds: float = 0.0
    viewed_at: datetime | None = None


def classify_device(user_agent: str | None) -> str:
    """Rough mobile/tablet/desktop split from a User-Agent header."""
    ua = (user_agent or "").lower()
    if "ipad" in ua or "tablet" in ua or ("android" in ua and "mobile" not in ua):
        return "tablet"
    if "mobi" in ua or "iphone" in ua or "android" in ua:
        return "mobile"
    return "desktop"


def view_stats(views: Iterable[ViewEvent]) -> dict[str, Any]:
    views = list(views)
    total = len(views)
    devices = {device: 0 for device in DEVICE_TYPES}
    for view in views:
        if view.device_type in devices:
            devices[view.device_type] += 1

    avg_duration = sum(v.duration_seconds or 0 for v in views) / total if total else 0.0

    return {
        "total_views": total,
        "unique_views": len({v.ip_address for v in views}),
        "avg_duration": avg_duration,
        "devices": devices,
    }


def _rate(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 1)


def funnel_stats(
    statuses: Iterable[ProposalStatus | str],
    days_to_accept: Iterable[float] = (),
) -> dict[str, Any]:
    """Counts by status plus view/accept conversion rates.

    view rate   = proposals viewed or decided / proposals sent (%)
    accept rate = accepted / viewed (%)
    """
    statuses = [ProposalStatus(s) for s in statuses]
    by_status = {status.value: 0 for status in ProposalStatus}
    for status in statuses:
        by_status[status.value] += 1

    sent = sum(1 for s in statuses if s in _REACHED_SENT)
    viewed = sum(1 for s in statuses if s in _REACHED_VIEWED)
    accepted = by_status[ProposalStatus.ACCEPTED.value]

    days = list(days_to_accept)
    avg_days = round(sum(days) / len(days), 1) if days else 0.0

    return {
        "total": len(statuses),
        "by_status": by_status,
        "rates": {
            "view": _rate(viewed, sent),
            "accept": _rate(accepted, viewed),
        },
        "avg_days_to_accept": avg_days,
    }
