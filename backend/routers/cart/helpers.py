from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, update
from sqlalchemy.orm import selectinload
from models import Cart, CartItem, UserProfile
from typing import Optional, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


async def load_cart(db: AsyncSession, user_id: uuid.UUID) -> Optional[Cart]:
    """Load a user's cart with items and their materials, overwriting stale state"""
    result = await db.execute(
        select(Cart)
        .options(selectinload(Cart.items).selectinload(CartItem.material))
        .where(Cart.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_cart(db: AsyncSession, profile: UserProfile) -> Cart:
    """Carts are created lazily on first access"""
    cart = await load_cart(db, profile.id)
    if cart:
        return cart

    db.add(Cart(user_id=profile.id, total_items=0, total_amount=0.0))
    await db.commit()
    logger.info(f"Created cart for user {profile.id}")

    return await load_cart(db, profile.id)


def recalculate_cart_totals(cart: Cart) -> None:
    """Recompute cached totals over the full item list"""
    cart.total_items = sum(item.quantity for item in cart.items)
    cart.total_amount = round(sum(item.total_price for item in cart.items), 2)


async def empty_cart(db: AsyncSession, user_id: uuid.UUID) -> None:
    """Delete every line of a user's cart without committing"""
    cart_ids = select(Cart.id).where(Cart.user_id == user_id).scalar_subquery()
    await db.execute(
        delete(CartItem)
        .where(CartItem.cart_id == cart_ids)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Cart)
        .where(Cart.user_id == user_id)
        .values(total_items=0, total_amount=0.0)
        .execution_options(synchronize_session=False)
    )


def cart_to_dict(cart: Cart) -> Dict[str, Any]:
    """Convert a loaded cart to a response dict with a per-supplier summary"""
    items = []
    suppliers: Dict[str, Dict[str, Any]] = {}

    for item in cart.items:
        material = item.material
        supplier_id = str(item.supplier_id)

        items.append({
            'id': str(item.id),
            'material_id': str(item.material_id),
            'supplier_id': supplier_id,
            'material_name': material.name if material else None,
            'category': material.category if material else None,
            'unit': material.unit if material else None,
            'image_url': material.image_url if material else None,
            'supplier_name': material.supplier_name if material else None,
            'available_quantity': material.quantity if material else None,
            'quantity': item.quantity,
            'price': item.price,
            'total_price': item.total_price,
            'notes': item.notes,
            'added_at': item.added_at,
        })

        summary = suppliers.setdefault(supplier_id, {
            'supplier_id': supplier_id,
            'supplier_name': material.supplier_name if material else None,
            'item_count': 0,
            'amount': 0.0,
        })
        summary['item_count'] += 1
        summary['amount'] = round(summary['amount'] + item.total_price, 2)

    return {
        'id': str(cart.id),
        'user_id': str(cart.user_id),
        'items': items,
        'total_items': cart.total_items,
        'total_amount': cart.total_amount,
        'suppliers': list(suppliers.values()),
        'updated_at': cart.updated_at,
    }
