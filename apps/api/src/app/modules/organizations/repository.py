"""
Organization Repository

Database operations for organizations.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.organizations.models import Organization

logger = logging.getLogger(__name__)


class OrganizationRepository:
    """Repository for organization database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        description: str | None = None,
        contact_email: str | None = None,
        website: str | None = None,
        address: str | None = None,
    ) -> Organization:
        """Create an organization record."""
        organization = Organization(
            name=name,
            description=description,
            contact_email=contact_email,
            website=website,
            address=address,
        )
        db.add(organization)
        await db.flush()
        await db.refresh(organization)

        logger.info(f"Created organization: {organization.id} - {organization.name}")
        return organization

    @staticmethod
    async def get_by_id(db: AsyncSession, organization_id: str) -> Organization | None:
        result = await db.execute(select(Organization).where(Organization.id == organization_id))
        return result.scalar_one_or_none()
