"""
Order lifecycle helpers: numbering, stock reservation and restore, tracking and cancellation
None of these commit; the caller owns the transaction
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.orm import selectinload
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from models import Order, OrderTracking, OrderSequence, Material, UserProfile
from config import ORDER_NUMBER_PREFIX, DEFAULT_DELIVERY_LOCATION
from utils.errors import InsufficientStockError, InvalidTransitionError
from utils.response_helpers import convert_uuids_to_strings
from .schemas import OrderStatus, TERMINAL_STATUSES, CANCELLABLE_STATUSES
from datetime import datetime
from typing import Optional, Union, Dict, Any, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)

DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


async def get_order_with_details(db: AsyncSession, order_id: uuid.UUID) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.tracking))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def next_order_number(db: AsyncSession, now: Optional[datetime] = None) -> str:
    """
    Allocate the next order number of the day, e.g. IBP2510180007
    The per-day counter is bumped with a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING,
    so concurrent transactions never read the same value
    """
    now = now or datetime.utcnow()
    day = now.strftime("%y%m%d")

    dialect_name = db.get_bind().dialect.name
    insert = DIALECT_INSERTS.get(dialect_name)
    if insert is None:
        raise RuntimeError(f"Order numbering is not supported on {dialect_name}")

    stmt = (
        insert(OrderSequence)
        .values(day=day, last_value=1)
        .on_conflict_do_update(
            index_elements=[OrderSequence.day],
            set_={"last_value": OrderSequence.last_value + 1}
        )
        .returning(OrderSequence.last_value)
    )
    result = await db.execute(stmt)
    sequence = result.scalar_one()

    return f"{ORDER_NUMBER_PREFIX}{day}{sequence:04d}"


async def reserve_stock(db: AsyncSession, material: Material, quantity: int, now: datetime) -> None:
    """
    Decrement stock only if enough is left
    Zero affected rows means another order got there first
    """
    result = await db.execute(
        update(Material)
        .where(Material.id == material.id, Material.quantity >= quantity)
        .values(
            quantity=Material.quantity - quantity,
            order_count=Material.order_count + 1,
            last_order_date=now
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        available_result = await db.execute(
            select(Material.quantity).where(Material.id == material.id)
        )
        available = available_result.scalar_one_or_none() or 0
        logger.warning(f"Stock reservation failed for material {material.id}: requested {quantity}, available {available}")
        raise InsufficientStockError(material.id, material.name, available, requested_quantity=quantity)


async def restore_stock(db: AsyncSession, order: Order) -> None:
    """Put every line's quantity back onto its material"""
    for item in order.items:
        if item.material_id is None:
            # Material was deleted after the order was placed
            continue
        await db.execute(
            update(Material)
            .where(Material.id == item.material_id)
            .values(quantity=Material.quantity + item.quantity)
            .execution_options(synchronize_session=False)
        )
    logger.info(f"Restored stock for order {order.order_number}")


def append_tracking(
    db: AsyncSession,
    order: Order,
    status: str,
    updated_by: Optional[uuid.UUID],
    notes: Optional[str] = None,
    location: Optional[str] = None
) -> OrderTracking:
    entry = OrderTracking(
        order_id=order.id,
        status=status,
        updated_by=updated_by,
        notes=notes,
        location=location,
        created_at=datetime.utcnow()
    )
    db.add(entry)
    return entry


def normalize_delivery_address(delivery_address: Union[str, Any]) -> Dict[str, Any]:
    """Expand a plain-text address with the default city, pass a location through"""
    if isinstance(delivery_address, str):
        return {"address": delivery_address, **DEFAULT_DELIVERY_LOCATION}
    return delivery_address.model_dump()


def order_parties(order: Order, profile: UserProfile) -> Tuple[bool, bool]:
    """(is the owning vendor, is a supplier with a line in the order)"""
    is_vendor = order.vendor_id == profile.id
    is_supplier = profile.role == "supplier" and any(
        item.supplier_id == profile.id for item in order.items
    )
    return is_vendor, is_supplier


def can_be_cancelled(status: str) -> bool:
    return status in CANCELLABLE_STATUSES


async def cancel_order(db: AsyncSession, order: Order, actor: UserProfile, reason: Optional[str] = None) -> None:
    """
    Flip an order to cancelled and give its stock back
    Both happen in the caller's transaction, so a repeated cancel sees "cancelled" and is rejected
    """
    if not can_be_cancelled(order.status):
        raise_cancel_rejected(order.status, order.order_number)

    # Guarded flip: only one of two racing cancels can match a cancellable status
    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status.in_(CANCELLABLE_STATUSES))
        .values(
            status=OrderStatus.CANCELLED.value,
            cancellation_reason=reason,
            cancelled_at=datetime.utcnow(),
            cancelled_by=actor.id
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current_status = (await db.execute(
            select(Order.status).where(Order.id == order.id)
        )).scalar_one()
        raise_cancel_rejected(current_status, order.order_number)

    await restore_stock(db, order)
    append_tracking(db, order, OrderStatus.CANCELLED.value, actor.id, notes=reason)


async def advance_status(db: AsyncSession, order: Order, new_status: str) -> None:
    """
    Move a non-cancel transition forward only from the status the caller saw
    A cancel committed in between leaves zero matched rows and the update is rejected
    """
    expected_status = order.status
    values: Dict[str, Any] = {"status": new_status}
    if new_status == OrderStatus.DELIVERED.value:
        values["actual_delivery"] = datetime.utcnow()

    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current_status = (await db.execute(
            select(Order.status).where(Order.id == order.id)
        )).scalar_one()
        logger.warning(
            f"Order {order.order_number} changed from {expected_status} to {current_status} "
            f"before it could move to {new_status}"
        )
        raise InvalidTransitionError(
            f"Order is already {current_status} and cannot be updated",
            current_status,
            new_status
        )


def raise_cancel_rejected(current_status: str, order_number: str):
    logger.warning(f"Rejected cancellation of order {order_number} in status {current_status}")
    if current_status in (OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value):
        message = "Cannot cancel order that has been shipped or delivered"
    else:
        message = f"Cannot cancel order in status {current_status}"
    raise InvalidTransitionError(message, current_status, OrderStatus.CANCELLED.value)


def ensure_transition_allowed(order: Order, new_status: str) -> None:
    if order.status in TERMINAL_STATUSES:
        logger.warning(f"Rejected transition of order {order.order_number} from {order.status} to {new_status}")
        raise InvalidTransitionError(
            f"Order is already {order.status} and cannot be updated",
            order.status,
            new_status
        )


def order_to_dict(order: Order) -> Dict[str, Any]:
    """Convert a loaded Order with items and tracking to a response dict"""
    return convert_uuids_to_strings({
        'id': order.id,
        'order_number': order.order_number,
        'vendor_id': order.vendor_id,
        'vendor_name': order.vendor_name,
        'items': [
            {
                'id': item.id,
                'material_id': item.material_id,
                'material_name': item.material_name,
                'category': item.category,
                'unit': item.unit,
                'quantity': item.quantity,
                'price': item.price,
                'total_price': item.total_price,
                'supplier_id': item.supplier_id,
                'supplier_name': item.supplier_name,
            }
            for item in order.items
        ],
        'total_items': order.total_items,
        'subtotal': order.subtotal,
        'delivery_fee': order.delivery_fee,
        'discount': order.discount,
        'taxes': order.taxes,
        'total_amount': order.total_amount,
        'status': order.status,
        'delivery_address': order.delivery_address,
        'delivery_instructions': order.delivery_instructions,
        'tracking_number': order.tracking_number,
        'estimated_delivery': order.estimated_delivery,
        'actual_delivery': order.actual_delivery,
        'payment_method': order.payment_method,
        'payment_status': order.payment_status,
        'payment_amount': order.payment_amount,
        'currency': order.currency,
        'notes': order.notes,
        'cancellation_reason': order.cancellation_reason,
        'cancelled_at': order.cancelled_at,
        'cancelled_by': order.cancelled_by,
        'tracking': [
            {
                'id': entry.id,
                'status': entry.status,
                'updated_by': entry.updated_by,
                'notes': entry.notes,
                'location': entry.location,
                'created_at': entry.created_at,
            }
            for entry in order.tracking
        ],
        'created_at': order.created_at,
        'updated_at': order.updated_at,
    })


def notification_payload(order: Order) -> Dict[str, Any]:
    return {
        'order_number': order.order_number,
        'vendor_name': order.vendor_name,
        'total_amount': order.total_amount,
        'payment_method': order.payment_method,
        'delivery_city': (order.delivery_address or {}).get('city', ''),
    }
