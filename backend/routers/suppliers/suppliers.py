from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, cast, String
from config import get_db, LOW_STOCK_THRESHOLD
from models import UserProfile, Material
from routers.location.helpers import find_nearby_suppliers
from routers.location.schemas import NearbySuppliersResponse, SearchCriteria
from utils.errors import NotFoundError, ValidationFailedError
from utils.geo import is_valid_coordinate
from utils.response_helpers import supplier_to_dict, material_to_dict, location_to_dict
from .schemas import (
    SupplierResponse, SupplierDetailResponse, SupplierListResponse,
    SupplierSearchResponse, SupplierSummary, SupplierMaterialsResponse,
)
from routers.materials.schemas import MaterialCategory, MaterialResponse
from typing import Optional
import logging
import math
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])

SORTABLE_FIELDS = {
    "rating": UserProfile.rating,
    "total_orders": UserProfile.total_orders,
    "name": UserProfile.name,
    "created_at": UserProfile.created_at,
}


def active_suppliers():
    return select(UserProfile).where(
        UserProfile.role == "supplier",
        UserProfile.is_active == True
    )


def specialty_matches(pattern: str):
    # specialties is a JSON list; its text form is searchable on every backend
    return cast(UserProfile.specialties, String).ilike(pattern)


async def get_active_supplier(db: AsyncSession, supplier_id: uuid.UUID) -> UserProfile:
    result = await db.execute(active_suppliers().where(UserProfile.id == supplier_id))
    supplier = result.scalar_one_or_none()
    if not supplier:
        raise NotFoundError("Supplier")
    return supplier


@router.get("", response_model=SupplierListResponse)
async def get_suppliers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    city: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    verified: Optional[bool] = Query(None),
    specialty: Optional[str] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    sort_by: Optional[str] = Query(None),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db)
):
    """Active suppliers with filtering and pagination"""
    if sort_by is not None and sort_by not in SORTABLE_FIELDS:
        raise ValidationFailedError(
            "Invalid sort field",
            [f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}"]
        )

    try:
        query = active_suppliers()
        if city:
            query = query.where(UserProfile.city.ilike(f"%{city}%"))
        if state:
            query = query.where(UserProfile.state.ilike(f"%{state}%"))
        if verified is not None:
            query = query.where(UserProfile.is_verified == verified)
        if specialty:
            query = query.where(specialty_matches(f'%"{specialty}"%'))
        if min_rating is not None:
            query = query.where(UserProfile.rating >= min_rating)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        if sort_by:
            column = SORTABLE_FIELDS[sort_by]
            order_by = [column.desc() if sort_order == "desc" else column.asc()]
        else:
            order_by = [UserProfile.rating.desc(), UserProfile.total_orders.desc()]

        offset = (page - 1) * limit
        result = await db.execute(query.order_by(*order_by).offset(offset).limit(limit))
        suppliers = result.scalars().all()

        return SupplierListResponse(
            suppliers=[SupplierResponse.model_validate(supplier_to_dict(s)) for s in suppliers],
            count=len(suppliers),
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit) if total else 0
        )

    except Exception as e:
        logger.error(f"Error getting suppliers: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get suppliers"
        )


@router.get("/search", response_model=SupplierSearchResponse)
async def search_suppliers(
    q: str = Query(...),
    city: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    db: AsyncSession = Depends(get_db)
):
    """Search suppliers by name, business, specialty or place"""
    if len(q.strip()) < 2:
        raise ValidationFailedError("Search query must be at least 2 characters long")

    try:
        pattern = f"%{q.strip()}%"
        query = active_suppliers().where(
            or_(
                UserProfile.name.ilike(pattern),
                UserProfile.business_name.ilike(pattern),
                specialty_matches(pattern),
                UserProfile.city.ilike(pattern),
                UserProfile.state.ilike(pattern),
            )
        )
        if city:
            query = query.where(UserProfile.city.ilike(f"%{city}%"))
        if state:
            query = query.where(UserProfile.state.ilike(f"%{state}%"))
        if min_rating is not None:
            query = query.where(UserProfile.rating >= min_rating)

        result = await db.execute(
            query.order_by(UserProfile.rating.desc(), UserProfile.total_orders.desc()).limit(50)
        )
        suppliers = result.scalars().all()

        return SupplierSearchResponse(
            count=len(suppliers),
            suppliers=[SupplierResponse.model_validate(supplier_to_dict(s)) for s in suppliers]
        )

    except Exception as e:
        logger.error(f"Error searching suppliers: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search suppliers"
        )


@router.get("/nearby", response_model=NearbySuppliersResponse)
async def get_nearby_suppliers(
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    radius: float = Query(25, gt=0, le=500),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """Suppliers within radius km, closest first"""
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


@router.get("/{supplier_id}", response_model=SupplierDetailResponse)
async def get_supplier(
    supplier_id: uuid.UUID,
    db: AsyncSession = Depends(get_db)
):
    """Supplier profile with catalog statistics"""
    supplier = await get_active_supplier(db, supplier_id)

    try:
        stats_result = await db.execute(
            select(func.count(Material.id), func.avg(Material.price))
            .where(Material.supplier_id == supplier.id)
        )
        materials_count, average_price = stats_result.one()

        categories_result = await db.execute(
            select(Material.category)
            .where(Material.supplier_id == supplier.id)
            .distinct()
            .order_by(Material.category)
        )
        categories = list(categories_result.scalars().all())

        return SupplierDetailResponse.model_validate({
            **supplier_to_dict(supplier),
            "materials_count": materials_count or 0,
            "categories": categories,
            "average_price": round(float(average_price or 0), 2),
        })

    except Exception as e:
        logger.error(f"Error getting supplier {supplier_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get supplier"
        )


@router.get("/{supplier_id}/materials", response_model=SupplierMaterialsResponse)
async def get_supplier_materials(
    supplier_id: uuid.UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[MaterialCategory] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """A supplier's catalog, newest first"""
    supplier = await get_active_supplier(db, supplier_id)

    try:
        query = select(Material).where(Material.supplier_id == supplier.id)
        if category:
            query = query.where(Material.category == category.value)
        if min_price is not None:
            query = query.where(Material.price >= min_price)
        if max_price is not None:
            query = query.where(Material.price <= max_price)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        offset = (page - 1) * limit
        result = await db.execute(
            query.order_by(Material.created_at.desc()).offset(offset).limit(limit)
        )
        materials = result.scalars().all()

        return SupplierMaterialsResponse(
            supplier=SupplierSummary(
                id=str(supplier.id),
                name=supplier.name,
                location=location_to_dict(supplier),
                rating=supplier.rating,
                specialties=supplier.specialties or [],
            ),
            materials=[
                MaterialResponse.model_validate(material_to_dict(m, LOW_STOCK_THRESHOLD))
                for m in materials
            ],
            count=len(materials),
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit) if total else 0
        )

    except Exception as e:
        logger.error(f"Error getting materials of supplier {supplier_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get supplier materials"
        )
