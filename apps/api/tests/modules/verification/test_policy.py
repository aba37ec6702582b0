"""
Unit tests for the verification authority.
"""

import pytest

from app.modules.users.models import UserRole
from app.modules.verification.policy import SessionScope, can_override, can_verify
from tests.factories import make_actor, make_opportunity, make_session, make_student

SCOPE = SessionScope(organization_id="org-1", school_id="school-1", classroom_id="class-1")


class TestCanVerify:
    @pytest.mark.parametrize(
        ("role", "context", "expected"),
        [
            (UserRole.ORG_ADMIN, {"organization_id": "org-1"}, True),
            (UserRole.ORG_ADMIN, {"organization_id": "org-2"}, False),
            (UserRole.SCHOOL_ADMIN, {"school_id": "school-1"}, True),
            (UserRole.SCHOOL_ADMIN, {"school_id": "school-2"}, False),
            (UserRole.TEACHER, {"school_id": "school-1", "classroom_id": "class-1"}, True),
            (UserRole.TEACHER, {"school_id": "school-1", "classroom_id": "class-2"}, False),
            (UserRole.STUDENT, {"school_id": "school-1", "classroom_id": "class-1"}, False),
        ],
    )
    def test_role_table(self, role, context, expected):
        assert can_verify(make_actor(role, **context), SCOPE) is expected

    def test_teacher_needs_classroom_not_just_school(self):
        teacher = make_actor(UserRole.TEACHER, school_id="school-1")

        assert can_verify(teacher, SCOPE) is False

    @pytest.mark.parametrize(
        ("role", "field"),
        [
            (UserRole.ORG_ADMIN, "organization_id"),
            (UserRole.SCHOOL_ADMIN, "school_id"),
            (UserRole.TEACHER, "classroom_id"),
        ],
    )
    def test_missing_ids_never_match(self, role, field):
        empty_scope = SessionScope(organization_id=None, school_id=None, classroom_id=None)

        assert can_verify(make_actor(role), empty_scope) is False
        assert can_verify(make_actor(role, **{field: None}), SCOPE) is False


class TestCanOverride:
    def test_organization_never_overrides(self):
        admin = make_actor(UserRole.ORG_ADMIN, organization_id="org-1")

        assert can_verify(admin, SCOPE) is True
        assert can_override(admin, SCOPE) is False

    def test_school_admin_overrides_own_school(self):
        assert can_override(make_actor(UserRole.SCHOOL_ADMIN, school_id="school-1"), SCOPE)
        assert not can_override(make_actor(UserRole.SCHOOL_ADMIN, school_id="school-9"), SCOPE)

    def test_teacher_overrides_own_classroom(self):
        teacher = make_actor(UserRole.TEACHER, school_id="school-1", classroom_id="class-1")

        assert can_override(teacher, SCOPE) is True


class TestSessionScope:
    def test_scope_of_session(self):
        student = make_student(school_id="school-1", classroom_id="class-1")
        opportunity = make_opportunity()
        session = make_session(student=student, opportunity=opportunity)

        scope = SessionScope.of(session)

        assert scope == SessionScope(
            organization_id=opportunity.organization_id,
            school_id="school-1",
            classroom_id="class-1",
        )

    def test_student_without_school(self):
        scope = SessionScope.of(make_session())

        assert scope.school_id is None
        assert scope.classroom_id is None
