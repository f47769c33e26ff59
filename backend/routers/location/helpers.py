from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from models import UserProfile
from utils.geo import bounding_box, haversine_distance
from typing import List, Tuple


def longitude_clause(min_lng: float, max_lng: float):
    """Longitude range filter that wraps across the antimeridian"""
    if min_lng < -180.0:
        return or_(UserProfile.longitude >= min_lng + 360.0, UserProfile.longitude <= max_lng)
    if max_lng > 180.0:
        return or_(UserProfile.longitude >= min_lng, UserProfile.longitude <= max_lng - 360.0)
    return UserProfile.longitude.between(min_lng, max_lng)


async def find_nearby_suppliers(
    db: AsyncSession,
    latitude: float,
    longitude: float,
    radius_km: float,
    limit: int
) -> List[Tuple[UserProfile, float]]:
    """
    Active suppliers within radius_km of a point, closest first, as (profile, distance) pairs
    The bounding box narrows the query, the exact haversine distance decides membership
    """
    min_lat, max_lat, min_lng, max_lng = bounding_box(latitude, longitude, radius_km)

    result = await db.execute(
        select(UserProfile).where(
            UserProfile.role == "supplier",
            UserProfile.is_active == True,
            UserProfile.latitude.isnot(None),
            UserProfile.longitude.isnot(None),
            UserProfile.latitude.between(min_lat, max_lat),
            longitude_clause(min_lng, max_lng),
        )
    )

    nearby = []
    for supplier in result.scalars().all():
        distance = haversine_distance(latitude, longitude, supplier.latitude, supplier.longitude)
        if distance <= radius_km:
            nearby.append((supplier, round(distance, 2)))

    nearby.sort(key=lambda pair: pair[1])
    return nearby[:limit]
