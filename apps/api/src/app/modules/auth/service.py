"""
Account registration.

Creates the user and, for staff roles, the context they act in: an
organization admin's organization or a school admin's school. Teachers
attach to a school that already exists.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.core.security import hash_password
from app.modules.auth.schemas import RegisterRequest
from app.modules.organizations.repository import OrganizationRepository
from app.modules.schools.repository import SchoolRepository
from app.modules.users.models import User, UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class EmailAlreadyRegisteredError(ConflictError):
    def __init__(self):
        super().__init__(
            message="An account with this email already exists.",
            error_code="EMAIL_EXISTS",
        )


async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    """
    Register a new account.

    Raises:
        EmailAlreadyRegisteredError: If the email is taken
        NotFoundError: If a teacher names a school that does not exist
    """
    email = data.email.lower()
    if await UserRepository.email_exists(db, email):
        raise EmailAlreadyRegisteredError()

    organization_id = None
    school_id = None

    if data.role == UserRole.ORG_ADMIN:
        organization = await OrganizationRepository.create(
            db,
            name=data.organization_name,
            description=data.organization_description,
            contact_email=email,
            website=data.organization_website,
            address=data.organization_address,
        )
        organization_id = organization.id
    elif data.role == UserRole.SCHOOL_ADMIN:
        school = await SchoolRepository.create(
            db,
            name=data.school_name,
            address=data.school_address,
            postal_code=data.school_postal_code,
        )
        school_id = school.id
    elif data.role == UserRole.TEACHER:
        school = await SchoolRepository.get_by_id(db, data.school_id)
        if school is None:
            raise NotFoundError("School", data.school_id)
        school_id = school.id

    user = await UserRepository.create(
        db,
        email=email,
        password_hash=hash_password(data.password),
        name=data.name.strip(),
        role=data.role,
        school_id=school_id,
        organization_id=organization_id,
        age=data.age,
        grade=data.grade,
    )
    await db.commit()
    await db.refresh(user)

    logger.info(f"Registered {user.role.value} account {user.id}")
    return user
