"""
Shared module - Base model and helpers used across modules.
"""

from app.modules.shared.helpers import round_hours, utcnow
from app.modules.shared.models import BaseModel

__all__ = ["BaseModel", "round_hours", "utcnow"]
