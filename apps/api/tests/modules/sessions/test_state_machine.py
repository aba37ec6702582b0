"""
Unit tests for the service session state machine.

These tests cover:
- Attendance transitions (check-in, check-out, signature submission)
- Staff transitions (approve, reject, override) from every verification state
- Hour computation and rounding
- Resetting a session on re-signup
"""

from datetime import timedelta

import pytest

from app.core.exceptions import ConflictError, InvalidTransitionError
from app.modules.sessions import state_machine
from app.modules.sessions.models import SessionStatus, VerificationStatus
from app.modules.sessions.state_machine import (
    DEFAULT_REMOVAL_REASON,
    SessionEvent,
    compute_total_hours,
    ensure_transition,
)
from tests.factories import NOW, make_session


class TestComputeTotalHours:
    def test_two_hours_fifteen_minutes(self):
        assert compute_total_hours(NOW, NOW + timedelta(hours=2, minutes=15)) == 2.25

    def test_rounds_to_two_decimals(self):
        # 1h 20m = 1.3333...h
        assert compute_total_hours(NOW, NOW + timedelta(hours=1, minutes=20)) == 1.33

    def test_rounds_half_up(self):
        # 27 seconds = 0.0075h
        assert compute_total_hours(NOW, NOW + timedelta(seconds=27)) == 0.01

    def test_never_negative(self):
        assert compute_total_hours(NOW, NOW - timedelta(minutes=5)) == 0.0


class TestAttendance:
    def test_check_in_from_committed(self):
        session = make_session()

        state_machine.check_in(session, NOW)

        assert session.status == SessionStatus.CHECKED_IN
        assert session.check_in_time == NOW

    @pytest.mark.parametrize(
        "status",
        [
            SessionStatus.CHECKED_IN,
            SessionStatus.CHECKED_OUT,
            SessionStatus.VERIFIED,
            SessionStatus.REJECTED,
        ],
    )
    def test_check_in_only_once(self, status):
        session = make_session(status=status)

        with pytest.raises(InvalidTransitionError) as exc_info:
            state_machine.check_in(session, NOW)

        assert exc_info.value.error_code == "INVALID_TRANSITION"
        assert session.status == status

    def test_check_out_replaces_nominal_hours(self):
        session = make_session(total_hours=3.0)
        state_machine.check_in(session, NOW)

        hours = state_machine.check_out(session, NOW + timedelta(hours=2, minutes=15))

        assert hours == 2.25
        assert session.total_hours == 2.25
        assert session.status == SessionStatus.CHECKED_OUT
        assert session.verification_status == VerificationStatus.PENDING

    def test_check_out_requires_check_in(self):
        session = make_session()

        with pytest.raises(InvalidTransitionError):
            state_machine.check_out(session, NOW)

        assert session.status == SessionStatus.COMMITTED
        assert session.check_out_time is None

    def test_submit_verification_from_committed(self):
        session = make_session()

        state_machine.submit_verification(
            session, supervisor_name="Pat Lee", signature_data="data:image/png;base64,AAA", now=NOW
        )

        assert session.status == SessionStatus.CHECKED_OUT
        assert session.verification_status == VerificationStatus.PENDING
        assert session.supervisor_name == "Pat Lee"
        assert session.submitted_at == NOW

    def test_submit_verification_after_check_in_rejected(self):
        session = make_session(status=SessionStatus.CHECKED_IN)

        with pytest.raises(InvalidTransitionError):
            state_machine.submit_verification(
                session, supervisor_name="Pat", signature_data="sig", now=NOW
            )


class TestApprove:
    def test_approve_keeps_recorded_hours(self):
        session = make_session(status=SessionStatus.CHECKED_OUT, total_hours=2.25)

        hours, original = state_machine.approve(
            session, actor_id="staff-1", approved_hours=None, now=NOW
        )

        assert (hours, original) == (2.25, 2.25)
        assert session.verification_status == VerificationStatus.APPROVED
        assert session.status == SessionStatus.VERIFIED
        assert session.verified_by == "staff-1"
        assert session.verified_at == NOW

    def test_approve_with_corrected_hours(self):
        session = make_session(status=SessionStatus.CHECKED_OUT, total_hours=2.25)

        hours, original = state_machine.approve(
            session, actor_id="staff-1", approved_hours=1.999, now=NOW
        )

        assert hours == 2.0
        assert original == 2.25
        assert session.total_hours == 2.0

    def test_approve_from_committed(self):
        """Staff may approve nominal hours for a student who never checked in."""
        session = make_session(total_hours=3.0)

        state_machine.approve(session, actor_id="staff-1", approved_hours=None, now=NOW)

        assert session.status == SessionStatus.VERIFIED
        assert session.total_hours == 3.0

    def test_approve_after_rejection(self):
        session = make_session(
            status=SessionStatus.REJECTED,
            verification_status=VerificationStatus.REJECTED,
            rejection_reason="No show",
        )

        state_machine.approve(session, actor_id="staff-1", approved_hours=None, now=NOW)

        assert session.verification_status == VerificationStatus.APPROVED

    def test_approve_twice_conflicts(self):
        session = make_session(
            status=SessionStatus.VERIFIED,
            verification_status=VerificationStatus.APPROVED,
        )

        with pytest.raises(ConflictError) as exc_info:
            state_machine.approve(session, actor_id="staff-1", approved_hours=None, now=NOW)

        assert exc_info.value.error_code == "ALREADY_APPROVED"
        assert exc_info.value.status_code == 409


class TestReject:
    def test_reject_pending(self):
        session = make_session(status=SessionStatus.CHECKED_OUT)

        state_machine.reject(session, actor_id="staff-1", reason="Left early", now=NOW)

        assert session.verification_status == VerificationStatus.REJECTED
        assert session.status == SessionStatus.REJECTED
        assert session.rejection_reason == "Left early"

    def test_reject_takes_back_approved_hours(self):
        session = make_session(
            status=SessionStatus.VERIFIED,
            verification_status=VerificationStatus.APPROVED,
        )

        state_machine.reject(session, actor_id="org-admin", reason="No-show", now=NOW)

        assert session.verification_status == VerificationStatus.REJECTED
        assert session.status == SessionStatus.REJECTED
        assert session.rejection_reason == "No-show"
        assert session.verified_by == "org-admin"
        assert session.verified_at == NOW


class TestOverride:
    @pytest.mark.parametrize("previous", list(VerificationStatus))
    def test_override_from_any_state(self, previous):
        session = make_session(status=SessionStatus.CHECKED_OUT, verification_status=previous)

        returned = state_machine.override(session, actor_id="teacher-1", reason=None, now=NOW)

        assert returned == previous
        assert session.verification_status == VerificationStatus.REJECTED
        assert session.status == SessionStatus.REJECTED
        assert session.rejection_reason == DEFAULT_REMOVAL_REASON

    def test_override_keeps_given_reason(self):
        session = make_session(verification_status=VerificationStatus.APPROVED)

        state_machine.override(session, actor_id="teacher-1", reason="Duplicate entry", now=NOW)

        assert session.rejection_reason == "Duplicate entry"


class TestEnsureTransition:
    def test_staff_events_allowed_from_every_attendance_status(self):
        for status in SessionStatus:
            session = make_session(status=status)
            for event in (SessionEvent.APPROVE, SessionEvent.REJECT, SessionEvent.OVERRIDE):
                ensure_transition(session, event)

    def test_invalid_transition_does_not_mutate(self):
        session = make_session(status=SessionStatus.CHECKED_OUT, total_hours=2.0)

        with pytest.raises(InvalidTransitionError):
            state_machine.check_in(session, NOW)

        assert session.status == SessionStatus.CHECKED_OUT
        assert session.total_hours == 2.0
        assert session.check_in_time is None


class TestResetToCommitted:
    def test_reset_clears_history(self):
        session = make_session(
            status=SessionStatus.REJECTED,
            verification_status=VerificationStatus.REJECTED,
            check_in_time=NOW,
            check_out_time=NOW + timedelta(hours=1),
            total_hours=1.0,
            rejection_reason="No show",
            verified_by="staff-1",
            verified_at=NOW,
        )

        state_machine.reset_to_committed(session, 3.0)

        assert session.status == SessionStatus.COMMITTED
        assert session.verification_status == VerificationStatus.PENDING
        assert session.total_hours == 3.0
        assert session.check_in_time is None
        assert session.check_out_time is None
        assert session.rejection_reason is None
        assert session.verified_by is None
