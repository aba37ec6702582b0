"""
Organizations module - Organizations that post opportunities.
"""

from app.modules.organizations.models import Organization
from app.modules.organizations.repository import OrganizationRepository

__all__ = ["Organization", "OrganizationRepository"]
