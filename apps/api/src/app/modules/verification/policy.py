"""
Verification authority.

Who may approve, reject or remove a session's hours. Every verification
path asks these two functions and nothing else.

    Role          can_verify                                can_override
    ORG_ADMIN     opportunity's organization is theirs      never
    SCHOOL_ADMIN  student's school is theirs                same as can_verify
    TEACHER       student's classroom is theirs             same as can_verify

A missing id on either side never matches.
"""

from dataclasses import dataclass

from app.core.auth import CurrentUser
from app.modules.sessions.models import ServiceSession
from app.modules.users.models import UserRole


@dataclass(frozen=True)
class SessionScope:
    """Where a session sits: the posting organization and the student's school and classroom."""

    organization_id: str | None
    school_id: str | None
    classroom_id: str | None

    @classmethod
    def of(cls, session: ServiceSession) -> "SessionScope":
        opportunity = session.opportunity
        student = session.user
        return cls(
            organization_id=opportunity.organization_id if opportunity else None,
            school_id=student.school_id if student else None,
            classroom_id=student.classroom_id if student else None,
        )


def _same(actor_value: str | None, scope_value: str | None) -> bool:
    return actor_value is not None and actor_value == scope_value


def can_verify(actor: CurrentUser, scope: SessionScope) -> bool:
    """True if ``actor`` may approve or reject hours in ``scope``."""
    if actor.role == UserRole.ORG_ADMIN:
        return _same(actor.organization_id, scope.organization_id)
    if actor.role == UserRole.SCHOOL_ADMIN:
        return _same(actor.school_id, scope.school_id)
    if actor.role == UserRole.TEACHER:
        return _same(actor.classroom_id, scope.classroom_id)
    return False


def can_override(actor: CurrentUser, scope: SessionScope) -> bool:
    """True if ``actor`` may remove hours in ``scope``. Organizations never can."""
    if actor.role not in (UserRole.SCHOOL_ADMIN, UserRole.TEACHER):
        return False
    return can_verify(actor, scope)
