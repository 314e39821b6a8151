"""Proposal status state machine.

A proposal moves draft -> sent -> viewed -> accepted/rejected, and any
undecided proposal may expire.  Every operation takes the current
``ProposalState`` plus an explicit ``now`` and returns a new state; the
caller persists it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from ..errors import ProposalTransitionError


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


# ======================================================================
# Transition table
# ======================================================================

VALID_TRANSITIONS: dict[ProposalStatus, list[ProposalStatus]] = {
    ProposalStatus.DRAFT: [ProposalStatus.SENT, ProposalStatus.VIEWED, ProposalStatus.EXPIRED],
    ProposalStatus.SENT: [
        ProposalStatus.SENT,  # resend
        ProposalStatus.VIEWED,
        ProposalStatus.ACCEPTED,
        ProposalStatus.REJECTED,
        ProposalStatus.EXPIRED,
    ],
    ProposalStatus.VIEWED: [
        ProposalStatus.VIEWED,
        ProposalStatus.ACCEPTED,
        ProposalStatus.REJECTED,
        ProposalStatus.EXPIRED,
    ],
    ProposalStatus.REJECTED: [ProposalStatus.ACCEPTED],  # client changed their mind
    ProposalStatus.ACCEPTED: [],
    ProposalStatus.EXPIRED: [],
}

DECIDED = (ProposalStatus.ACCEPTED, ProposalStatus.REJECTED)


def allowed_transitions(status: ProposalStatus | str) -> list[ProposalStatus]:
    return list(VALID_TRANSITIONS[ProposalStatus(status)])


def check_transition(current: ProposalStatus | str, target: ProposalStatus | str) -> None:
    current = ProposalStatus(current)
    target = ProposalStatus(target)
    allowed = VALID_TRANSITIONS[current]
    if target not in allowed:
        raise ProposalTransitionError(current.value, target.value, [s.value for s in allowed])


@dataclass(frozen=True)
class ProposalState:
    status: ProposalStatus = ProposalStatus.DRAFT
    sent_at: datetime | None = None
    first_viewed_at: datetime | None = None
    last_viewed_at: datetime | None = None
    accepted_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    view_count: int = 0
    download_count: int = 0
    expires_at: datetime | None = None
    acceptance_data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", ProposalStatus(self.status))

    def is_expired(self, now: datetime) -> bool:
        if self.status is ProposalStatus.EXPIRED:
            return True
        if self.expires_at is None:
            return False
        return now > self.expires_at


# ======================================================================
# Operations
# ======================================================================

def mark_sent(state: ProposalState, now: datetime) -> ProposalState:
    """Record a (re)send.  ``sent_at`` tracks the latest send."""
    check_transition(state.status, ProposalStatus.SENT)
    return replace(state, status=ProposalStatus.SENT, sent_at=now)


def mark_viewed(state: ProposalState, now: datetime) -> ProposalState:
    """Register one view of the public page.

    The first view moves the proposal to ``viewed``.  Later views, and
    views of an accepted or rejected proposal, only bump the counters.
    """
    if state.status is ProposalStatus.EXPIRED:
        check_transition(state.status, ProposalStatus.VIEWED)

    status = state.status
    first_viewed_at = state.first_viewed_at
    if first_viewed_at is None:
        first_viewed_at = now
        if status not in DECIDED:
            check_transition(status, ProposalStatus.VIEWED)
            status = ProposalStatus.VIEWED

    return replace(
        state,
        status=status,
        first_viewed_at=first_viewed_at,
        last_viewed_at=now,
        view_count=state.view_count + 1,
    )


def accept(
    state: ProposalState,
    now: datetime,
    acceptance_data: dict[str, Any] | None = None,
) -> ProposalState:
    check_transition(state.status, ProposalStatus.ACCEPTED)
    if state.is_expired(now):
        raise ProposalTransitionError(
            ProposalStatus.EXPIRED.value, ProposalStatus.ACCEPTED.value, []
        )
    data = {**state.acceptance_data, **(acceptance_data or {}), "timestamp": now.isoformat()}
    return replace(
        state,
        status=ProposalStatus.ACCEPTED,
        accepted_at=now,
        acceptance_data=data,
    )


def reject(state: ProposalState, now: datetime, reason: str | None = None) -> ProposalState:
    check_transition(state.status, ProposalStatus.REJECTED)
    return replace(
        state,
        status=ProposalStatus.REJECTED,
        rejected_at=now,
        rejection_reason=reason,
    )


def expire(state: ProposalState) -> ProposalState:
    check_transition(state.status, ProposalStatus.EXPIRED)
    return replace(state, status=ProposalStatus.EXPIRED)


def record_download(state: ProposalState) -> ProposalState:
    return replace(state, download_count=state.download_count + 1)
