"""
Unit tests for school-aware opportunity ranking.
"""

import math

import pytest

from app.core.geocode import Coordinates
from app.modules.opportunities.ranking import distance_km, haversine_km, rank_for_school
from tests.factories import make_opportunity

# Lower Manhattan
ORIGIN = Coordinates(lat=40.7128, lng=-74.0060)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(40.0, -74.0, 40.0, -74.0) == 0.0

    def test_new_york_to_los_angeles(self):
        distance = haversine_km(40.7128, -74.0060, 34.0522, -118.2437)

        assert distance == pytest.approx(3936, rel=0.01)


class TestDistance:
    def test_unknown_coordinates_are_infinite(self):
        opportunity = make_opportunity(latitude=None, longitude=None)

        assert math.isinf(distance_km(ORIGIN, opportunity))

    def test_unknown_origin_is_infinite(self):
        opportunity = make_opportunity(latitude=40.7, longitude=-74.0)

        assert math.isinf(distance_km(None, opportunity))


class TestRankForSchool:
    def test_approved_tier_first_then_nearest(self):
        """Approval outranks distance; distance orders each tier."""
        far_approved = make_opportunity(title="far approved", latitude=42.0, longitude=-74.0)
        near_approved = make_opportunity(title="near approved", latitude=40.72, longitude=-74.0)
        nearest_other = make_opportunity(title="nearest other", latitude=40.713, longitude=-74.006)
        approved = {far_approved.organization_id, near_approved.organization_id}

        ranked = rank_for_school([nearest_other, far_approved, near_approved], approved, ORIGIN)

        assert [r.opportunity.title for r in ranked] == [
            "near approved",
            "far approved",
            "nearest other",
        ]
        assert [r.approved_org for r in ranked] == [True, True, False]

    def test_unlocated_sorts_last_in_its_tier(self):
        unlocated = make_opportunity(title="unlocated")
        located = make_opportunity(
            title="located",
            organization=unlocated.organization,
            latitude=41.0,
            longitude=-74.0,
        )

        ranked = rank_for_school([unlocated, located], {unlocated.organization_id}, ORIGIN)

        assert [r.opportunity.title for r in ranked] == ["located", "unlocated"]

    def test_ties_keep_input_order(self):
        """Without an origin everything ties inside a tier, so date order survives."""
        first = make_opportunity(title="first")
        second = make_opportunity(title="second")
        third = make_opportunity(title="third")

        ranked = rank_for_school([first, second, third], set(), None)

        assert [r.opportunity.title for r in ranked] == ["first", "second", "third"]
