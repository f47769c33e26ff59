from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db
from models import UserProfile, Material, CartItem
from routers.auth.auth import get_current_user, get_current_profile
from dependencies.rbac import require_cart_read, require_cart_write, require_cart_delete
from utils.errors import NotFoundError, InsufficientStockError
from .schemas import CartItemAdd, CartItemUpdate, CartResponse
from .helpers import (
    get_or_create_cart,
    load_cart,
    recalculate_cart_totals,
    empty_cart,
    cart_to_dict,
)
from datetime import datetime
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["Cart"])


def find_cart_item(cart, item_id: uuid.UUID) -> CartItem:
    for item in cart.items:
        if item.id == item_id:
            return item
    raise NotFoundError("Item in cart")


@router.get("", response_model=CartResponse)
async def get_cart(
    current_user = Depends(get_current_user),
    _: bool = Depends(require_cart_read),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's cart, creating it on first access"""
    try:
        cart = await get_or_create_cart(db, profile)
        return CartResponse.model_validate(cart_to_dict(cart))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting cart: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get cart"
        )


@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    item_data: CartItemAdd,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_cart_write),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a material to the cart
    Quantities are merged when the same material from the same supplier is already in the cart
    """
    try:
        material_result = await db.execute(
            select(Material).where(Material.id == item_data.material_id)
        )
        material = material_result.scalar_one_or_none()
        if not material:
            raise NotFoundError("Material")

        if not material.is_available:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Material is not available"
            )

        if item_data.quantity > material.quantity:
            raise InsufficientStockError(material.id, material.name, material.quantity)

        cart = await get_or_create_cart(db, profile)

        existing_item = next(
            (
                item for item in cart.items
                if item.material_id == material.id and item.supplier_id == material.supplier_id
            ),
            None
        )

        if existing_item:
            new_quantity = existing_item.quantity + item_data.quantity
            if new_quantity > material.quantity:
                raise InsufficientStockError(
                    material.id,
                    material.name,
                    material.quantity,
                    current_cart_quantity=existing_item.quantity
                )
            existing_item.quantity = new_quantity
            existing_item.price = material.price
            existing_item.total_price = round(material.price * new_quantity, 2)
            if item_data.notes is not None:
                existing_item.notes = item_data.notes
        else:
            cart.items.append(CartItem(
                material_id=material.id,
                supplier_id=material.supplier_id,
                quantity=item_data.quantity,
                price=material.price,
                total_price=round(material.price * item_data.quantity, 2),
                notes=item_data.notes,
                added_at=datetime.utcnow(),
                material=material,
            ))

        recalculate_cart_totals(cart)
        await db.commit()

        cart = await load_cart(db, profile.id)
        return CartResponse.model_validate(cart_to_dict(cart))

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error(f"Error adding item to cart: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add item to cart"
        )


@router.put("/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: uuid.UUID,
    item_data: CartItemUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_cart_write),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Set the absolute quantity of a cart line, 0 removes it"""
    try:
        cart = await load_cart(db, profile.id)
        if not cart:
            raise NotFoundError("Cart")

        item = find_cart_item(cart, item_id)
        material = item.material
        if not material:
            raise NotFoundError("Material")

        if item_data.quantity > material.quantity:
            raise InsufficientStockError(material.id, material.name, material.quantity)

        if item_data.quantity == 0:
            cart.items.remove(item)
        else:
            item.quantity = item_data.quantity
            item.price = material.price
            item.total_price = round(material.price * item_data.quantity, 2)

        recalculate_cart_totals(cart)
        await db.commit()

        cart = await load_cart(db, profile.id)
        return CartResponse.model_validate(cart_to_dict(cart))

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error(f"Error updating cart item: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update cart item"
        )


@router.delete("/{item_id}", response_model=CartResponse)
async def remove_from_cart(
    item_id: uuid.UUID,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_cart_delete),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Remove a line from the cart"""
    try:
        cart = await load_cart(db, profile.id)
        if not cart:
            raise NotFoundError("Cart")

        item = find_cart_item(cart, item_id)
        cart.items.remove(item)

        recalculate_cart_totals(cart)
        await db.commit()

        cart = await load_cart(db, profile.id)
        return CartResponse.model_validate(cart_to_dict(cart))

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error(f"Error removing cart item: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove item from cart"
        )


@router.delete("", response_model=CartResponse)
async def clear_cart(
    current_user = Depends(get_current_user),
    _: bool = Depends(require_cart_delete),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Empty the cart"""
    try:
        cart = await load_cart(db, profile.id)
        if not cart:
            raise NotFoundError("Cart")

        await empty_cart(db, profile.id)
        await db.commit()

        cart = await load_cart(db, profile.id)
        logger.info(f"Cleared cart of user {profile.id}")
        return CartResponse.model_validate(cart_to_dict(cart))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error clearing cart: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear cart"
        )
