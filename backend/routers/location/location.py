from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from config import get_db
from models import UserProfile
from routers.suppliers.schemas import SupplierResponse
from utils.errors import ValidationFailedError
from utils.geo import (
    haversine_distance,
    delivery_fee_for_distance,
    delivery_time_for_distance,
    is_valid_coordinate,
    is_valid_pincode,
    PINCODE_DIRECTORY,
)
from utils.response_helpers import supplier_to_dict
from .helpers import find_nearby_suppliers
from .schemas import (
    DistanceRequest, DistanceResponse, NearbySuppliersResponse, SearchCriteria,
    LocationSearchResponse, LocationSearchResult, Coordinates, PincodeValidationResponse,
)
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/location", tags=["Location"])


@router.get("/nearby-suppliers", response_model=NearbySuppliersResponse)
async def get_nearby_suppliers(
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    radius: float = Query(25, gt=0, le=500),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """Suppliers within radius km of a point, each annotated with its distance"""
    if latitude is None or longitude is None:
        raise ValidationFailedError("Latitude and longitude are required")
    if not is_valid_coordinate(latitude, longitude):
        raise ValidationFailedError("Invalid latitude or longitude values")

    try:
        nearby = await find_nearby_suppliers(db, latitude, longitude, radius, limit)

        return NearbySuppliersResponse(
            count=len(nearby),
            suppliers=[
                SupplierResponse.model_validate({**supplier_to_dict(s), "distance": distance})
                for s, distance in nearby
            ],
            search_criteria=SearchCriteria(latitude=latitude, longitude=longitude, radius=radius)
        )

    except Exception as e:
        logger.error(f"Error getting nearby suppliers: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get nearby suppliers"
        )


@router.post("/calculate-distance", response_model=DistanceResponse)
async def calculate_distance(request: DistanceRequest):
    """Distance between two points with the delivery fee and time it implies"""
    distance = haversine_distance(
        request.from_.latitude,
        request.from_.longitude,
        request.to.latitude,
        request.to.longitude
    )

    return DistanceResponse(
        distance=round(distance, 2),
        delivery_fee=delivery_fee_for_distance(distance),
        estimated_delivery_time=delivery_time_for_distance(distance)
    )


@router.get("/search", response_model=LocationSearchResponse)
async def search_locations(
    q: str = Query(...),
    db: AsyncSession = Depends(get_db)
):
    """Cities and states that have active suppliers, busiest first"""
    if len(q.strip()) < 2:
        raise ValidationFailedError("Search query must be at least 2 characters long")

    try:
        pattern = f"%{q.strip()}%"
        suppliers_count = func.count(UserProfile.id).label("suppliers_count")

        result = await db.execute(
            select(
                UserProfile.city,
                UserProfile.state,
                suppliers_count,
                func.avg(UserProfile.latitude),
                func.avg(UserProfile.longitude),
            )
            .where(
                UserProfile.role == "supplier",
                UserProfile.is_active == True,
                UserProfile.city.isnot(None),
                UserProfile.latitude.isnot(None),
                UserProfile.longitude.isnot(None),
                or_(UserProfile.city.ilike(pattern), UserProfile.state.ilike(pattern)),
            )
            .group_by(UserProfile.city, UserProfile.state)
            .order_by(suppliers_count.desc())
            .limit(20)
        )

        locations = [
            LocationSearchResult(
                city=city,
                state=state,
                suppliers_count=count,
                coordinates=Coordinates(latitude=float(lat), longitude=float(lng))
            )
            for city, state, count, lat, lng in result.all()
        ]

        return LocationSearchResponse(count=len(locations), locations=locations)

    except Exception as e:
        logger.error(f"Error searching locations: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search locations"
        )


@router.get("/validate-pincode/{pincode}", response_model=PincodeValidationResponse)
async def validate_pincode(
    pincode: str,
    db: AsyncSession = Depends(get_db)
):
    """Check an Indian pincode and whether any supplier serves it"""
    if not is_valid_pincode(pincode):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "valid": False,
                "error": "Invalid pincode format. Indian pincodes should be 6 digits and cannot start with 0."
            }
        )

    try:
        result = await db.execute(
            select(func.count(UserProfile.id)).where(
                UserProfile.role == "supplier",
                UserProfile.is_active == True,
                UserProfile.pincode == pincode
            )
        )
        suppliers_in_area = result.scalar() or 0

        return PincodeValidationResponse(
            valid=True,
            pincode=pincode,
            location_info=PINCODE_DIRECTORY.get(pincode),
            suppliers_count=suppliers_in_area,
            service_available=suppliers_in_area > 0
        )

    except Exception as e:
        logger.error(f"Error validating pincode: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to validate pincode"
        )
