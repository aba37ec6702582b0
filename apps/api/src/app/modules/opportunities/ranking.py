"""
Browse ranking for a school's students.

Opportunities from organizations the school approved come first. Inside
each tier, nearer opportunities come first; an opportunity whose distance
cannot be computed sorts last in its tier. Python's sort is stable, so
anything that ties keeps the order it arrived in (date order from the
repository).
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

from app.core.geocode import Coordinates
from app.modules.opportunities.models import Opportunity

# Mean earth radius in kilometres
EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great circle distance between two points in kilometres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_km(origin: Coordinates | None, opportunity: Opportunity) -> float:
    """Distance from ``origin`` to the opportunity, or infinity if either point is unknown."""
    if origin is None or opportunity.latitude is None or opportunity.longitude is None:
        return math.inf
    return haversine_km(origin.lat, origin.lng, opportunity.latitude, opportunity.longitude)


@dataclass
class RankedOpportunity:
    opportunity: Opportunity
    approved_org: bool
    distance_km: float

    @property
    def sort_key(self) -> tuple[int, float]:
        return (0 if self.approved_org else 1, self.distance_km)


def rank_for_school(
    opportunities: Iterable[Opportunity],
    approved_organization_ids: set[str],
    origin: Coordinates | None,
) -> list[RankedOpportunity]:
    """Order opportunities approved-first, then by ascending distance from ``origin``."""
    ranked = [
        RankedOpportunity(
            opportunity=opportunity,
            approved_org=opportunity.organization_id in approved_organization_ids,
            distance_km=distance_km(origin, opportunity),
        )
        for opportunity in opportunities
    ]
    ranked.sort(key=lambda item: item.sort_key)
    return ranked
