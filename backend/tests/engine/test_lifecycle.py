"""Tests for quote_engine.proposal.lifecycle: status transitions and counters."""

from datetime import datetime, timedelta, timezone

import pytest

from quote_engine.errors import ProposalTransitionError
from quote_engine.proposal import (
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

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def _sent(expires_in_days: int = 15) -> ProposalState:
    state = ProposalState(expires_at=T0 + timedelta(days=expires_in_days))
    return mark_sent(state, T0)


class TestTransitionTable:
    def test_every_status_has_entry(self):
        assert set(VALID_TRANSITIONS) == set(ProposalStatus)

    def test_terminal_statuses(self):
        assert allowed_transitions("accepted") == []
        assert allowed_transitions(ProposalStatus.EXPIRED) == []

    def test_rejected_can_still_be_accepted(self):
        check_transition("rejected", "accepted")

    def test_invalid_transition_message(self):
        with pytest.raises(ProposalTransitionError) as exc:
            check_transition("accepted", "rejected")
        assert exc.value.current == "accepted"
        assert exc.value.target == "rejected"
        assert "Cannot move proposal from 'accepted' to 'rejected'" in str(exc.value)

    def test_string_status_coerced(self):
        assert ProposalState(status="sent").status is ProposalStatus.SENT


class TestSend:
    def test_draft_to_sent(self):
        state = _sent()
        assert state.status is ProposalStatus.SENT
        assert state.sent_at == T0

    def test_resend_updates_timestamp(self):
        later = T0 + timedelta(hours=2)
        state = mark_sent(_sent(), later)
        assert state.status is ProposalStatus.SENT
        assert state.sent_at == later

    def test_cannot_send_accepted(self):
        state = accept(_sent(), T0)
        with pytest.raises(ProposalTransitionError):
            mark_sent(state, T0)


class TestView:
    def test_first_view_moves_to_viewed(self):
        state = mark_viewed(_sent(), T0 + timedelta(hours=1))
        assert state.status is ProposalStatus.VIEWED
        assert state.first_viewed_at == T0 + timedelta(hours=1)
        assert state.view_count == 1

    def test_repeat_view_only_counts(self):
        first = T0 + timedelta(hours=1)
        second = T0 + timedelta(hours=5)
        state = mark_viewed(mark_viewed(_sent(), first), second)
        assert state.status is ProposalStatus.VIEWED
        assert state.first_viewed_at == first
        assert state.last_viewed_at == second
        assert state.view_count == 2

    def test_view_of_accepted_keeps_status(self):
        state = accept(_sent(), T0)
        state = mark_viewed(state, T0 + timedelta(days=1))
        assert state.status is ProposalStatus.ACCEPTED
        assert state.view_count == 1

    def test_view_of_expired_rejected(self):
        state = expire(_sent())
        with pytest.raises(ProposalTransitionError):
            mark_viewed(state, T0)


class TestDecisions:
    def test_accept_from_viewed(self):
        state = mark_viewed(_sent(), T0)
        state = accept(state, T0 + timedelta(days=1), {"signature": "Maria", "ip_address": "1.2.3.4"})
        assert state.status is ProposalStatus.ACCEPTED
        assert state.accepted_at == T0 + timedelta(days=1)
        assert state.acceptance_data["signature"] == "Maria"
        assert state.acceptance_data["timestamp"] == (T0 + timedelta(days=1)).isoformat()

    def test_accept_directly_from_sent(self):
        assert accept(_sent(), T0).status is ProposalStatus.ACCEPTED

    def test_accept_after_expiry_date(self):
        state = _sent(expires_in_days=1)
        with pytest.raises(ProposalTransitionError):
            accept(state, T0 + timedelta(days=2))

    def test_accept_twice(self):
        state = accept(_sent(), T0)
        with pytest.raises(ProposalTransitionError):
            accept(state, T0)

    def test_reject_with_reason(self):
        state = reject(mark_viewed(_sent(), T0), T0, "Preço alto")
        assert state.status is ProposalStatus.REJECTED
        assert state.rejection_reason == "Preço alto"
        assert state.rejected_at == T0

    def test_reject_then_accept(self):
        state = reject(_sent(), T0)
        assert accept(state, T0).status is ProposalStatus.ACCEPTED

    def test_cannot_reject_accepted(self):
        with pytest.raises(ProposalTransitionError):
            reject(accept(_sent(), T0), T0)


class TestExpiry:
    def test_is_expired_by_date(self):
        state = _sent(expires_in_days=3)
        assert not state.is_expired(T0 + timedelta(days=3))
        assert state.is_expired(T0 + timedelta(days=3, seconds=1))

    def test_no_expiry_date(self):
        assert not ProposalState().is_expired(T0 + timedelta(days=3650))

    def test_expire_undecided(self):
        assert expire(_sent()).status is ProposalStatus.EXPIRED

    def test_cannot_expire_accepted(self):
        with pytest.raises(ProposalTransitionError):
            expire(accept(_sent(), T0))


class TestCounters:
    def test_download_counter(self):
        state = record_download(record_download(_sent()))
        assert state.download_count == 2
        assert state.status is ProposalStatus.SENT

    def test_operations_do_not_mutate(self):
        before = _sent()
        mark_viewed(before, T0)
        assert before.status is ProposalStatus.SENT
        assert before.view_count == 0
