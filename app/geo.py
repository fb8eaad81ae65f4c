"""Great-circle distance helpers."""
import math
from decimal import Decimal, ROUND_HALF_UP

EARTH_RADIUS_MILES = 3958.8

# Conversion used to turn a distance filter (miles) into a Places search radius
MILES_TO_METERS = 1609.34


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in miles, rounded half-up to one decimal place.

    Coordinates are not range-checked here; see AggregationService for the
    query boundary validation.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    a = min(a, 1.0)  # float error near antipodes
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    distance = EARTH_RADIUS_MILES * c
    return float(Decimal(repr(distance)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
