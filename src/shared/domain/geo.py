"""Geographic helpers shared by tracking and dispatch.

Pure functions only: great-circle distance, distance labels and a
naive ETA.  Distances are in statute miles throughout.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

EARTH_RADIUS_MILES = 3958.8
METERS_PER_MILE = 1609.344
DEFAULT_SPEED_MPH = 12.0


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    @classmethod
    def maybe(cls, lat: Optional[float], lng: Optional[float]) -> Optional[Coordinate]:
        """Build a coordinate, or ``None`` when either component is missing."""
        if lat is None or lng is None:
            return None
        return cls(lat=float(lat), lng=float(lng))


def haversine_distance_miles(origin: Coordinate, target: Coordinate) -> float:
    """Great-circle distance between two points, in miles."""
    lat1 = math.radians(origin.lat)
    lon1 = math.radians(origin.lng)
    lat2 = math.radians(target.lat)
    lon2 = math.radians(target.lng)

    d_lat = lat2 - lat1
    d_lon = lon2 - lon1

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_between(
    origin: Optional[Coordinate], target: Optional[Coordinate]
) -> Optional[float]:
    """Distance in miles, or ``None`` if either endpoint is unknown."""
    if origin is None or target is None:
        return None
    return haversine_distance_miles(origin, target)


def miles_to_meters(miles: float) -> float:
    return miles * METERS_PER_MILE


def _is_unknown(miles: Optional[float]) -> bool:
    return miles is None or math.isnan(miles)


def format_distance_miles(miles: Optional[float]) -> str:
    """Human label: ``N/A``, ``<0.1 mi``, ``2.4 mi`` or ``12 mi``."""
    if _is_unknown(miles):
        return "N/A"
    if miles < 0.1:
        return "<0.1 mi"
    if miles < 10:
        return f"{miles:.1f} mi"
    return f"{round(miles)} mi"


def estimate_eta_minutes(
    miles: Optional[float], mph: float = DEFAULT_SPEED_MPH
) -> int:
    """Whole minutes to cover *miles* at *mph*; at least 1 for any real trip."""
    if _is_unknown(miles) or miles <= 0:
        return 0
    return max(1, math.ceil((miles / mph) * 60))
