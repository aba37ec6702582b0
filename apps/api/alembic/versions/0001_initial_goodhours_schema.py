"""initial goodhours schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000

This migration:
1. Creates the enum types used by users, opportunities, signups,
   sessions, approvals and notifications
2. Creates organizations and schools before users, and users before
   the tables that point at them
3. Adds users.classroom_id after classrooms exists (users and classrooms
   reference each other)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS: dict[str, tuple[str, ...]] = {
    "user_role": ("STUDENT", "ORG_ADMIN", "SCHOOL_ADMIN", "TEACHER"),
    "opportunity_status": ("ACTIVE", "CANCELLED", "COMPLETED"),
    "saved_status": ("SAVED", "SKIPPED", "DISCARDED"),
    "signup_status": ("CONFIRMED", "WAITLISTED", "CANCELLED"),
    "session_status": ("COMMITTED", "CHECKED_IN", "CHECKED_OUT", "VERIFIED", "REJECTED"),
    "verification_status": ("PENDING", "APPROVED", "REJECTED"),
    "approval_status": ("PENDING", "APPROVED", "REJECTED"),
    "notification_type": (
        "SIGNUP_CONFIRMED",
        "VERIFICATION_UPDATE",
        "VERIFICATION_SUBMITTED",
        "OPPORTUNITY_CANCELLED",
        "NEW_MESSAGE",
        "CLASSROOM_UPDATE",
    ),
    "audit_action": (
        "CHECK_IN",
        "CHECK_OUT",
        "SUBMIT_VERIFICATION",
        "APPROVE",
        "REJECT",
        "OVERRIDE",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """Primary key and timestamps (from BaseModel)."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _uuid_fk(name: str, target: str, ondelete: str, nullable: bool) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create the full schema."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name, create_type=False).create(bind, checkfirst=True)

    op.create_table(
        "organizations",
        *_base_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("website", sa.String(length=500), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organizations_name", "organizations", ["name"])

    op.create_table(
        "schools",
        *_base_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("required_hours", sa.Float(), nullable=False, server_default="40"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_schools_name", "schools", ["name"])

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False),
        _uuid_fk("school_id", "schools.id", "SET NULL", True),
        _uuid_fk("organization_id", "organizations.id", "SET NULL", True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_school_id", "users", ["school_id"])
    op.create_index("ix_users_organization_id", "users", ["organization_id"])

    op.create_table(
        "classrooms",
        *_base_columns(),
        _uuid_fk("school_id", "schools.id", "CASCADE", False),
        _uuid_fk("teacher_id", "users.id", "SET NULL", True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("invite_code", sa.String(length=8), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_classrooms_school_id", "classrooms", ["school_id"])
    op.create_index("ix_classrooms_teacher_id", "classrooms", ["teacher_id"])
    op.create_index("ix_classrooms_invite_code", "classrooms", ["invite_code"], unique=True)

    op.add_column("users", sa.Column("classroom_id", postgresql.UUID(as_uuid=False), nullable=True))
    op.create_foreign_key(
        "fk_users_classroom_id",
        "users",
        "classrooms",
        ["classroom_id"],
        ["id"],
        ondelete="SET NULL",
    )
    op.create_index("ix_users_classroom_id", "users", ["classroom_id"])

    op.create_table(
        "school_organizations",
        *_base_columns(),
        _uuid_fk("school_id", "schools.id", "CASCADE", False),
        _uuid_fk("organization_id", "organizations.id", "CASCADE", False),
        sa.Column("status", _enum("approval_status"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("school_id", "organization_id", name="uq_school_organization"),
    )
    op.create_index("ix_school_organizations_school_id", "school_organizations", ["school_id"])
    op.create_index(
        "ix_school_organizations_organization_id", "school_organizations", ["organization_id"]
    )

    op.create_table(
        "student_groups",
        *_base_columns(),
        _uuid_fk("school_id", "schools.id", "CASCADE", False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_student_groups_school_id", "student_groups", ["school_id"])

    op.create_table(
        "student_group_members",
        *_base_columns(),
        _uuid_fk("group_id", "student_groups.id", "CASCADE", False),
        _uuid_fk("user_id", "users.id", "CASCADE", False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )
    op.create_index("ix_student_group_members_group_id", "student_group_members", ["group_id"])
    op.create_index("ix_student_group_members_user_id", "student_group_members", ["user_id"])

    op.create_table(
        "opportunities",
        *_base_columns(),
        _uuid_fk("organization_id", "organizations.id", "CASCADE", False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "tags",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("start_time", sa.String(length=10), nullable=True),
        sa.Column("end_time", sa.String(length=10), nullable=True),
        sa.Column("duration_hours", sa.Float(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurring_pattern", sa.String(length=100), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("age_requirement", sa.Integer(), nullable=True),
        sa.Column("grade_requirement", sa.Integer(), nullable=True),
        sa.Column("status", _enum("opportunity_status"), nullable=False),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("capacity > 0", name="ck_opportunity_capacity_positive"),
        sa.CheckConstraint("duration_hours > 0", name="ck_opportunity_duration_positive"),
    )
    op.create_index("ix_opportunities_organization_id", "opportunities", ["organization_id"])
    op.create_index("ix_opportunities_date", "opportunities", ["date"])
    op.create_index("ix_opportunities_status", "opportunities", ["status"])

    op.create_table(
        "saved_opportunities",
        *_base_columns(),
        _uuid_fk("user_id", "users.id", "CASCADE", False),
        _uuid_fk("opportunity_id", "opportunities.id", "CASCADE", False),
        sa.Column("status", _enum("saved_status"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "opportunity_id", name="uq_saved_user_opportunity"),
    )
    op.create_index("ix_saved_opportunities_user_id", "saved_opportunities", ["user_id"])
    op.create_index(
        "ix_saved_opportunities_opportunity_id", "saved_opportunities", ["opportunity_id"]
    )

    op.create_table(
        "signups",
        *_base_columns(),
        _uuid_fk("user_id", "users.id", "CASCADE", False),
        _uuid_fk("opportunity_id", "opportunities.id", "CASCADE", False),
        sa.Column("status", _enum("signup_status"), nullable=False),
        sa.Column(
            "queue_position",
            sa.BigInteger(),
            sa.Identity(always=False),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "opportunity_id", name="uq_signup_user_opportunity"),
    )
    op.create_index("ix_signups_user_id", "signups", ["user_id"])
    op.create_index("ix_signups_opportunity_id", "signups", ["opportunity_id"])
    op.create_index("ix_signups_status", "signups", ["status"])

    op.create_table(
        "service_sessions",
        *_base_columns(),
        _uuid_fk("user_id", "users.id", "CASCADE", False),
        _uuid_fk("opportunity_id", "opportunities.id", "CASCADE", False),
        sa.Column("status", _enum("session_status"), nullable=False),
        sa.Column("verification_status", _enum("verification_status"), nullable=False),
        sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("supervisor_name", sa.String(length=200), nullable=True),
        sa.Column("signature_data", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        _uuid_fk("verified_by", "users.id", "SET NULL", True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "opportunity_id", name="uq_session_user_opportunity"),
    )
    op.create_index("ix_service_sessions_user_id", "service_sessions", ["user_id"])
    op.create_index("ix_service_sessions_opportunity_id", "service_sessions", ["opportunity_id"])
    op.create_index("ix_service_sessions_status", "service_sessions", ["status"])
    op.create_index(
        "ix_service_sessions_verification_status", "service_sessions", ["verification_status"]
    )

    op.create_table(
        "notifications",
        *_base_columns(),
        _uuid_fk("user_id", "users.id", "CASCADE", False),
        sa.Column("type", _enum("notification_type"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "audit_logs",
        *_base_columns(),
        sa.Column("action", _enum("audit_action"), nullable=False),
        _uuid_fk("actor_id", "users.id", "SET NULL", True),
        _uuid_fk("session_id", "service_sessions.id", "CASCADE", False),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_session_id", "audit_logs", ["session_id"])

    op.create_table(
        "messages",
        *_base_columns(),
        _uuid_fk("sender_id", "users.id", "CASCADE", False),
        _uuid_fk("receiver_id", "users.id", "CASCADE", False),
        _uuid_fk("opportunity_id", "opportunities.id", "SET NULL", True),
        sa.Column("subject", sa.String(length=200), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_receiver_id", "messages", ["receiver_id"])


def downgrade() -> None:
    """Drop every table, then the enum types."""
    for table in (
        "messages",
        "audit_logs",
        "notifications",
        "service_sessions",
        "signups",
        "saved_opportunities",
        "opportunities",
        "student_group_members",
        "student_groups",
        "school_organizations",
    ):
        op.drop_table(table)

    op.drop_constraint("fk_users_classroom_id", "users", type_="foreignkey")
    op.drop_table("classrooms")
    op.drop_table("users")
    op.drop_table("schools")
    op.drop_table("organizations")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
