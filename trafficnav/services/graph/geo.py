import math
from typing import Sequence

EARTH_RADIUS_KM = 6371.0

def haversine_km(coord1: Sequence[float], coord2: Sequence[float]) -> float:
    """
    Great-circle distance in kilometers between two (lat, lng) pairs given in
    degrees. NaN coordinates yield NaN.
    """
    phi1 = math.radians(coord1[0])
    phi2 = math.radians(coord2[0])
    delta_phi = math.radians(coord2[0] - coord1[0])
    delta_lambda = math.radians(coord2[1] - coord1[1])

    a = math.sin(delta_phi / 2)**2 + \
        math.cos(phi1) * math.cos(phi2) * \
        math.sin(delta_lambda / 2)**2
    # Rounding can push near-antipodal pairs just past 1; NaN falls through
    if a > 1.0:
        a = 1.0
    c =2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c

def bearing_deg(coord1: Sequence[float], coord2: Sequence[float]) -> float:
    """Initial compass bearing from coord1 to coord2, in [0, 360)."""
    phi1 = math.radians(coord1[0])
    phi2 = math.radians(coord2[0])
    delta_lambda = math.radians(coord2[1] - coord1[1])

    x = math.sin(delta_lambda) * math.cos(phi2)
    y = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda)
    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0
