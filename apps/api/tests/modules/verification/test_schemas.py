"""
Unit tests for verification request schemas.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.modules.verification.schemas import ApproveRequest


class TestApproveRequest:
    def test_correction_is_optional(self):
        assert ApproveRequest().approved_hours is None

    def test_long_corrections_are_accepted(self):
        # Multi-day events can credit more than a day of hours
        assert ApproveRequest(approved_hours=30.5).approved_hours == 30.5

    def test_negative_hours_rejected(self):
        with pytest.raises(PydanticValidationError):
            ApproveRequest(approved_hours=-1)
