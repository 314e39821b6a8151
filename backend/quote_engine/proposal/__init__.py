"""Proposal lifecycle and analytics."""

from .analytics import ViewEvent, classify_device, funnel_stats, view_stats
from .lifecycle import (
    VALID_TRANSITIONS,
    ProposalState,
    ProposalStatus,
    accept,
    allowed_transitions,
    check_transition,
    expire,
    mark_sent,
    mark_viewed,
    record_download,
    reject,
)

__all__ = [
    "ViewEvent",
    "classify_device",
    "funnel_stats",
    "view_stats",
    "VALID_TRANSITIONS",
    "ProposalState",
    "ProposalStatus",
    "accept",
    "allowed_transitions",
    "check_transition",
    "expire",
    "mark_sent",
    "mark_viewed",
    "record_download",
    "reject",
]
