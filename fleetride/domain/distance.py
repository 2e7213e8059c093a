"""
Distance calculation using the Haversine formula.

``LocationProvider`` is the seam through which the engine asks for a
planned trip distance when the requester did not supply one.  It uses
great-circle distance; a routing-service client returning road distances
can replace it without touching the lifecycle code.
"""

import math

from .entities import Location

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


class LocationProvider:
    def distance(self, start: Location, end: Location) -> float:
        """Planned distance in km, rounded to 2 decimals."""
        return round(
            haversine_km(
                start.latitude, start.longitude, end.latitude, end.longitude
            ),
            2,
        )
