"""
Geo helpers for supplier discovery and delivery estimates
"""
import math
import re
from typing import Tuple

EARTH_RADIUS_KM = 6371.0

PINCODE_PATTERN = re.compile(r"^[1-9][0-9]{5}$")

# (upper bound in km, fee); anything beyond the last bound pays the overflow fee
DELIVERY_FEE_BUCKETS = [
    (5, 0.0),
    (15, 50.0),
    (30, 100.0),
]
DELIVERY_FEE_OVERFLOW = 150.0

DELIVERY_TIME_BUCKETS = [
    (5, "Same day"),
    (15, "Next day"),
    (30, "1-2 days"),
    (50, "2-3 days"),
]
DELIVERY_TIME_OVERFLOW = "3-5 days"

# Static pincode lookup, there is no geocoding service behind it
PINCODE_DIRECTORY = {
    "110001": {"city": "Delhi", "state": "Delhi", "district": "Central Delhi"},
    "400001": {"city": "Mumbai", "state": "Maharashtra", "district": "Mumbai City"},
    "560001": {"city": "Bangalore", "state": "Karnataka", "district": "Bangalore Urban"},
    "600001": {"city": "Chennai", "state": "Tamil Nadu", "district": "Chennai"},
    "700001": {"city": "Kolkata", "state": "West Bengal", "district": "Kolkata"},
    "500001": {"city": "Hyderabad", "state": "Telangana", "district": "Hyderabad"},
}


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometers between two coordinates"""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Rounding can push a just past 1 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(lat: float, lng: float, radius_km: float) -> Tuple[float, float, float, float]:
    """
    Lat/lng box that fully contains the circle of radius_km around (lat, lng)
    Returns (min_lat, max_lat, min_lng, max_lng); results still need an exact distance check
    """
    radius_rad = radius_km / EARTH_RADIUS_KM
    d_lat = math.degrees(radius_rad)

    min_lat = max(-90.0, lat - d_lat)
    max_lat = min(90.0, lat + d_lat)

    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6 or max_lat >= 90.0 or min_lat <= -90.0:
        # Near the poles every longitude can be within reach
        return min_lat, max_lat, -180.0, 180.0

    d_lng = math.degrees(radius_rad / cos_lat)
    if d_lng >= 180.0:
        return min_lat, max_lat, -180.0, 180.0

    return min_lat, max_lat, lng - d_lng, lng + d_lng


def delivery_fee_for_distance(distance_km: float) -> float:
    for upper_bound, fee in DELIVERY_FEE_BUCKETS:
        if distance_km <= upper_bound:
            return fee
    return DELIVERY_FEE_OVERFLOW


def delivery_time_for_distance(distance_km: float) -> str:
    for upper_bound, label in DELIVERY_TIME_BUCKETS:
        if distance_km <= upper_bound:
            return label
    return DELIVERY_TIME_OVERFLOW


def is_valid_pincode(pincode: str) -> bool:
    return bool(pincode) and PINCODE_PATTERN.fullmatch(pincode) is not None


def is_valid_coordinate(lat: float, lng: float) -> bool:
    if lat is None or lng is None:
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180
