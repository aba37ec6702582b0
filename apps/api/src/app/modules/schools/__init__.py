"""
Schools module - schools, classrooms, student groups and approved organizations.
"""

from app.modules.schools.models import ApprovalStatus, Classroom, School
from app.modules.schools.repository import SchoolRepository

__all__ = ["ApprovalStatus", "Classroom", "School", "SchoolRepository"]
