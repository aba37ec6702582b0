"""
Model registry.

Importing this module registers every table on ``Base.metadata`` so that
string relationship targets resolve and Alembic sees the full schema.
"""

from app.core.database import Base
from app.modules.notifications.models import AuditLog, Message, Notification
from app.modules.opportunities.models import Opportunity, SavedOpportunity
from app.modules.organizations.models import Organization
from app.modules.schools.models import (
    Classroom,
    School,
    SchoolOrganization,
    StudentGroup,
    StudentGroupMember,
)
from app.modules.sessions.models import ServiceSession
from app.modules.signups.models import Signup
from app.modules.users.models import User

__all__ = [
    "Base",
    "AuditLog",
    "Classroom",
    "Message",
    "Notification",
    "Opportunity",
    "Organization",
    "SavedOpportunity",
    "School",
    "SchoolOrganization",
    "ServiceSession",
    "Signup",
    "StudentGroup",
    "StudentGroupMember",
    "User",
]
