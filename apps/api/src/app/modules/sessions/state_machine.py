"""
Service Session State Machine

A session moves along two independent axes:

    status:               COMMITTED -> CHECKED_IN -> CHECKED_OUT -> VERIFIED | REJECTED
    verification_status:  PENDING -> APPROVED | REJECTED

Student events (check-in, check-out, signature submission) are gated on
``status``. Staff events (approve, reject, override) are gated on
``verification_status`` and may fire from any attendance status; they set
``status`` to the matching terminal value.

The functions here mutate the ORM object in place and never touch the
database. Callers load the row with a lock, authorize the actor, apply the
transition, then write the audit entry and commit.
"""

from datetime import datetime
from enum import Enum

from app.core.exceptions import ConflictError, InvalidTransitionError
from app.modules.shared import round_hours

from .models import ServiceSession, SessionStatus, VerificationStatus

DEFAULT_REMOVAL_REASON = "Hours removed by school staff"


class SessionEvent(str, Enum):
    """Events that change a session."""

    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"
    SUBMIT_VERIFICATION = "SUBMIT_VERIFICATION"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    OVERRIDE = "OVERRIDE"


ALL_STATUSES = frozenset(SessionStatus)
ALL_VERIFICATION_STATUSES = frozenset(VerificationStatus)

# Attendance status each event may start from
VALID_STATUS_SOURCES: dict[SessionEvent, frozenset[SessionStatus]] = {
    SessionEvent.CHECK_IN: frozenset({SessionStatus.COMMITTED}),
    SessionEvent.CHECK_OUT: frozenset({SessionStatus.CHECKED_IN}),
    SessionEvent.SUBMIT_VERIFICATION: frozenset({SessionStatus.COMMITTED}),
    SessionEvent.APPROVE: ALL_STATUSES,
    SessionEvent.REJECT: ALL_STATUSES,
    SessionEvent.OVERRIDE: ALL_STATUSES,
}

# Verification status each staff event may start from.
# Approve re-approves REJECTED sessions.
VALID_VERIFICATION_SOURCES: dict[SessionEvent, frozenset[VerificationStatus]] = {
    SessionEvent.APPROVE: frozenset({VerificationStatus.PENDING, VerificationStatus.REJECTED}),
    SessionEvent.REJECT: ALL_VERIFICATION_STATUSES,
    SessionEvent.OVERRIDE: ALL_VERIFICATION_STATUSES,
}

# Attendance status each event leads to
STATUS_TARGETS: dict[SessionEvent, SessionStatus] = {
    SessionEvent.CHECK_IN: SessionStatus.CHECKED_IN,
    SessionEvent.CHECK_OUT: SessionStatus.CHECKED_OUT,
    SessionEvent.SUBMIT_VERIFICATION: SessionStatus.CHECKED_OUT,
    SessionEvent.APPROVE: SessionStatus.VERIFIED,
    SessionEvent.REJECT: SessionStatus.REJECTED,
    SessionEvent.OVERRIDE: SessionStatus.REJECTED,
}


def ensure_transition(session: ServiceSession, event: SessionEvent) -> None:
    """
    Check that ``event`` may fire from the session's current state.

    Raises:
        InvalidTransitionError: If the attendance status does not allow it
        ConflictError: If the verification status does not allow it
    """
    target = STATUS_TARGETS[event]

    if session.status not in VALID_STATUS_SOURCES[event]:
        raise InvalidTransitionError(
            session.status.value,
            target.value,
            f"Cannot {event.value.lower().replace('_', ' ')} a session that is "
            f"{session.status.value}.",
        )

    allowed_verification = VALID_VERIFICATION_SOURCES.get(event)
    if allowed_verification is not None and session.verification_status not in allowed_verification:
        if session.verification_status == VerificationStatus.APPROVED:
            raise ConflictError("Hours are already approved.", error_code="ALREADY_APPROVED")
        raise InvalidTransitionError(session.verification_status.value, target.value)


def compute_total_hours(check_in_time: datetime, check_out_time: datetime) -> float:
    """Elapsed hours between check-in and check-out, rounded to 2 decimals."""
    elapsed_seconds = (check_out_time - check_in_time).total_seconds()
    return round_hours(max(elapsed_seconds, 0.0) / 3600)


def check_in(session: ServiceSession, now: datetime) -> None:
    ensure_transition(session, SessionEvent.CHECK_IN)
    session.check_in_time = now
    session.status = SessionStatus.CHECKED_IN


def check_out(session: ServiceSession, now: datetime) -> float:
    """Close attendance and replace the nominal hours with the measured duration."""
    ensure_transition(session, SessionEvent.CHECK_OUT)
    session.check_out_time = now
    session.total_hours = compute_total_hours(session.check_in_time, now)
    session.status = SessionStatus.CHECKED_OUT
    session.verification_status = VerificationStatus.PENDING
    return session.total_hours


def submit_verification(
    session: ServiceSession,
    *,
    supervisor_name: str,
    signature_data: str,
    now: datetime,
) -> None:
    """Record a supervisor signature for a session attended without check-in."""
    ensure_transition(session, SessionEvent.SUBMIT_VERIFICATION)
    session.supervisor_name = supervisor_name
    session.signature_data = signature_data
    session.submitted_at = now
    session.status = SessionStatus.CHECKED_OUT
    session.verification_status = VerificationStatus.PENDING


def approve(
    session: ServiceSession,
    *,
    actor_id: str,
    approved_hours: float | None,
    now: datetime,
) -> tuple[float, float]:
    """
    Approve a session's hours.

    Returns:
        (approved hours, hours recorded before approval)
    """
    ensure_transition(session, SessionEvent.APPROVE)
    original_hours = session.total_hours
    hours = round_hours(approved_hours if approved_hours is not None else original_hours)

    session.verification_status = VerificationStatus.APPROVED
    session.total_hours = hours
    session.verified_by = actor_id
    session.verified_at = now
    session.status = SessionStatus.VERIFIED
    return hours, original_hours


def reject(session: ServiceSession, *, actor_id: str, reason: str, now: datetime) -> None:
    ensure_transition(session, SessionEvent.REJECT)
    session.verification_status = VerificationStatus.REJECTED
    session.rejection_reason = reason
    session.verified_by = actor_id
    session.verified_at = now
    session.status = SessionStatus.REJECTED


def override(
    session: ServiceSession,
    *,
    actor_id: str,
    reason: str | None,
    now: datetime,
) -> VerificationStatus:
    """
    Retract a session's hours, whatever its verification state.

    Returns:
        The verification status before the override
    """
    ensure_transition(session, SessionEvent.OVERRIDE)
    previous = session.verification_status
    session.verification_status = VerificationStatus.REJECTED
    session.status = SessionStatus.REJECTED
    session.rejection_reason = reason or DEFAULT_REMOVAL_REASON
    session.verified_by = actor_id
    session.verified_at = now
    return previous


def reset_to_committed(session: ServiceSession, nominal_hours: float) -> None:
    """Wipe attendance and verification history when a student re-signs up."""
    session.status = SessionStatus.COMMITTED
    session.verification_status = VerificationStatus.PENDING
    session.total_hours = nominal_hours
    session.check_in_time = None
    session.check_out_time = None
    session.supervisor_name = None
    session.signature_data = None
    session.submitted_at = None
    session.verified_by = None
    session.verified_at = None
    session.rejection_reason = None
