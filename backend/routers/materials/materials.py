from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from config import get_db, LOW_STOCK_THRESHOLD
from models import UserProfile, Material
from routers.auth.auth import get_current_user, get_current_profile
from dependencies.rbac import require_material_write, require_material_delete
from utils.errors import NotFoundError, ValidationFailedError
from utils.response_helpers import material_to_dict
from .schemas import (
    MaterialCategory, MaterialCreate, MaterialUpdate, MaterialResponse,
    MaterialListResponse, MaterialSearchResponse, PriceComparisonResponse,
)
from typing import Optional, List
import logging
import math
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/materials", tags=["Materials"])

SORTABLE_FIELDS = {
    "price": Material.price,
    "name": Material.name,
    "rating": Material.rating,
    "quantity": Material.quantity,
    "created_at": Material.created_at,
}


def to_material_response(material: Material) -> MaterialResponse:
    return MaterialResponse.model_validate(material_to_dict(material, LOW_STOCK_THRESHOLD))


def apply_price_filters(query, min_price: Optional[float], max_price: Optional[float]):
    if min_price is not None:
        query = query.where(Material.price >= min_price)
    if max_price is not None:
        query = query.where(Material.price <= max_price)
    return query


async def paginate_materials(db: AsyncSession, query, page: int, limit: int, order_by) -> MaterialListResponse:
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * limit
    result = await db.execute(query.order_by(*order_by).offset(offset).limit(limit))
    materials = result.scalars().all()

    return MaterialListResponse(
        materials=[to_material_response(m) for m in materials],
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if total else 0
    )


async def get_owned_material(db: AsyncSession, material_id: uuid.UUID, profile: UserProfile, action: str) -> Material:
    result = await db.execute(select(Material).where(Material.id == material_id))
    material = result.scalar_one_or_none()

    if not material:
        raise NotFoundError("Material")

    if material.supplier_id != profile.id:
        logger.warning(f"Supplier {profile.id} tried to {action} material {material_id} they do not own")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {action} this material"
        )

    return material


# =================
# PUBLIC CATALOG ROUTES
# =================

@router.get("/categories", response_model=List[str])
async def get_categories():
    """All material categories"""
    return [category.value for category in MaterialCategory]


@router.get("/search", response_model=MaterialSearchResponse)
async def search_materials(
    q: str = Query(..., description="Search text, at least 2 characters"),
    category: Optional[MaterialCategory] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """Search materials by name, description or category"""
    if len(q.strip()) < 2:
        raise ValidationFailedError("Search query must be at least 2 characters long")

    try:
        pattern = f"%{q.strip()}%"
        query = select(Material).where(
            or_(
                Material.name.ilike(pattern),
                Material.description.ilike(pattern),
                Material.category.ilike(pattern),
            )
        )
        if category:
            query = query.where(Material.category == category.value)
        query = apply_price_filters(query, min_price, max_price)

        result = await db.execute(query.order_by(Material.created_at.desc()).limit(50))
        materials = result.scalars().all()

        return MaterialSearchResponse(
            count=len(materials),
            materials=[to_material_response(m) for m in materials]
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error searching materials: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search materials"
        )


@router.get("/category/{category}", response_model=MaterialListResponse)
async def get_materials_by_category(
    category: MaterialCategory,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """Get materials of one category"""
    try:
        query = select(Material).where(Material.category == category.value)
        return await paginate_materials(db, query, page, limit, [Material.created_at.desc()])

    except Exception as e:
        logger.error(f"Error getting materials by category: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get materials by category"
        )


@router.get("/supplier/{supplier_id}", response_model=MaterialSearchResponse)
async def get_materials_by_supplier(
    supplier_id: uuid.UUID,
    db: AsyncSession = Depends(get_db)
):
    """Get every material listed by a supplier"""
    try:
        supplier_result = await db.execute(
            select(UserProfile).where(UserProfile.id == supplier_id)
        )
        supplier = supplier_result.scalar_one_or_none()
        if not supplier or supplier.role != "supplier":
            raise NotFoundError("Supplier")

        result = await db.execute(
            select(Material)
            .where(Material.supplier_id == supplier_id)
            .order_by(Material.created_at.desc())
        )
        materials = result.scalars().all()

        return MaterialSearchResponse(
            count=len(materials),
            materials=[to_material_response(m) for m in materials]
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting materials by supplier: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get materials by supplier"
        )


@router.get("/compare/{material_name}", response_model=PriceComparisonResponse)
async def compare_prices(
    material_name: str,
    db: AsyncSession = Depends(get_db)
):
    """Compare prices for a material across suppliers, cheapest first"""
    try:
        result = await db.execute(
            select(Material)
            .where(Material.name.ilike(f"%{material_name}%"))
            .order_by(Material.price.asc())
        )
        materials = result.scalars().all()

        if not materials:
            raise NotFoundError("Material with that name")

        comparisons = {}
        for material in materials:
            comparisons.setdefault(material.name.lower(), []).append(to_material_response(material))

        return PriceComparisonResponse(comparisons=comparisons)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error comparing prices: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compare prices"
        )


@router.get("", response_model=MaterialListResponse)
async def get_materials(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[MaterialCategory] = Query(None),
    supplier_id: Optional[uuid.UUID] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    available_only: bool = Query(False),
    sort_by: Optional[str] = Query(None),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db)
):
    """Get all materials with filtering, sorting and pagination"""
    if sort_by is not None and sort_by not in SORTABLE_FIELDS:
        raise ValidationFailedError(
            "Invalid sort field",
            [f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}"]
        )

    try:
        query = select(Material)
        if category:
            query = query.where(Material.category == category.value)
        if supplier_id:
            query = query.where(Material.supplier_id == supplier_id)
        if available_only:
            query = query.where(Material.is_available == True)
        query = apply_price_filters(query, min_price, max_price)

        if sort_by:
            column = SORTABLE_FIELDS[sort_by]
            order_by = [column.desc() if sort_order == "desc" else column.asc()]
        else:
            order_by = [Material.created_at.desc()]

        return await paginate_materials(db, query, page, limit, order_by)

    except Exception as e:
        logger.error(f"Error getting materials: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get materials"
        )


@router.get("/{material_id}", response_model=MaterialResponse)
async def get_material(
    material_id: uuid.UUID,
    db: AsyncSession = Depends(get_db)
):
    """Get a single material"""
    result = await db.execute(select(Material).where(Material.id == material_id))
    material = result.scalar_one_or_none()

    if not material:
        raise NotFoundError("Material")

    return to_material_response(material)


# =================
# SUPPLIER ROUTES
# =================

@router.post("", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
async def create_material(
    material_data: MaterialCreate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_material_write),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Create a new material (suppliers only)"""
    if profile.role != "supplier":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only suppliers can create materials"
        )

    if material_data.location:
        location = material_data.location.model_dump()
    elif profile.latitude is not None and profile.longitude is not None:
        location = {
            "latitude": profile.latitude,
            "longitude": profile.longitude,
            "address": profile.address,
            "city": profile.city,
            "state": profile.state,
            "pincode": profile.pincode,
        }
    else:
        raise ValidationFailedError(
            "Validation failed",
            ["location is required when the supplier profile has no location"]
        )

    try:
        data = material_data.model_dump(exclude={"location"})
        data["category"] = material_data.category.value
        data["unit"] = material_data.unit.value

        material = Material(
            **data,
            **location,
            supplier_id=profile.id,
            supplier_name=profile.name,
        )

        db.add(material)
        await db.commit()
        await db.refresh(material)

        logger.info(f"Supplier {profile.id} created material {material.id}")
        return to_material_response(material)

    except Exception as e:
        logger.error(f"Error creating material: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create material"
        )


@router.put("/{material_id}", response_model=MaterialResponse)
async def update_material(
    material_id: uuid.UUID,
    material_data: MaterialUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_material_write),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Update a material (owning supplier only)"""
    material = await get_owned_material(db, material_id, profile, "update")

    try:
        update_data = material_data.model_dump(exclude_unset=True)

        location = update_data.pop("location", None)
        if location:
            for field, value in location.items():
                setattr(material, field, value)

        for field, value in update_data.items():
            if hasattr(value, "value"):
                value = value.value
            setattr(material, field, value)

        await db.commit()
        await db.refresh(material)

        return to_material_response(material)

    except Exception as e:
        logger.error(f"Error updating material: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update material"
        )


@router.delete("/{material_id}")
async def delete_material(
    material_id: uuid.UUID,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_material_delete),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Delete a material (owning supplier only)"""
    material = await get_owned_material(db, material_id, profile, "delete")

    try:
        await db.delete(material)
        await db.commit()

        logger.info(f"Supplier {profile.id} deleted material {material_id}")
        return {"message": "Material deleted successfully"}

    except Exception as e:
        logger.error(f"Error deleting material: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete material"
        )
