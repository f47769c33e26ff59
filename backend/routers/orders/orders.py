from fastapi import APIRouter, Depends, HTTPException, status, Query, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update, true
from sqlalchemy.orm import selectinload
from config import get_db, DELIVERY_FEE, CURRENCY
from models import UserProfile, Material, Order, OrderItem
from routers.auth.auth import get_current_user, get_current_profile
from routers.cart.helpers import empty_cart
from dependencies.rbac import (
    require_order_read,
    require_order_write,
    require_order_status_write,
    require_vendor,
    require_supplier,
)
from utils.errors import NotFoundError, InsufficientStockError
from utils.notifications import (
    send_email, send_sms,
    get_new_order_email, get_new_order_sms,
    get_order_status_email, get_order_status_sms,
)
from .schemas import (
    OrderCreate, OrderStatusUpdate, OrderCancel, OrderResponse,
    OrderListResponse, OrderStatsResponse, OrderStatus, UPDATABLE_STATUSES,
)
from .helpers import (
    get_order_with_details,
    next_order_number,
    reserve_stock,
    append_tracking,
    normalize_delivery_address,
    order_parties,
    cancel_order,
    advance_status,
    ensure_transition_allowed,
    order_to_dict,
    notification_payload,
)
from typing import Optional
from datetime import datetime
import logging
import math
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def orders_visible_to(profile: UserProfile):
    """Vendors see their own orders, suppliers the orders containing their materials"""
    if profile.role == "supplier":
        return Order.id.in_(
            select(OrderItem.order_id).where(OrderItem.supplier_id == profile.id)
        )
    if profile.role == "admin":
        return true()
    return Order.vendor_id == profile.id


async def list_orders(
    db: AsyncSession,
    visibility,
    order_status: Optional[OrderStatus],
    page: int,
    limit: int
) -> OrderListResponse:
    query = select(Order).where(visibility)
    if order_status:
        query = query.where(Order.status == order_status.value)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * limit
    result = await db.execute(
        query.options(selectinload(Order.items), selectinload(Order.tracking))
        .order_by(Order.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    orders = result.scalars().all()

    return OrderListResponse(
        orders=[OrderResponse.model_validate(order_to_dict(o)) for o in orders],
        count=len(orders),
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if total else 0
    )


async def load_order_for(db: AsyncSession, order_id: uuid.UUID) -> Order:
    order = await get_order_with_details(db, order_id)
    if not order:
        raise NotFoundError("Order")
    return order


# =================
# NOTIFICATIONS
# =================

async def send_new_order_notifications(order: Order, background_tasks: BackgroundTasks, db: AsyncSession):
    """Tell every supplier in the order about their lines"""
    try:
        items_by_supplier = {}
        for item in order.items:
            items_by_supplier.setdefault(item.supplier_id, []).append({
                "material_name": item.material_name,
                "quantity": item.quantity,
                "unit": item.unit,
                "price": item.price,
                "total_price": item.total_price,
            })

        supplier_result = await db.execute(
            select(UserProfile).where(UserProfile.id.in_(list(items_by_supplier.keys())))
        )
        order_data = notification_payload(order)

        for supplier in supplier_result.scalars().all():
            items = items_by_supplier[supplier.id]
            if supplier.email:
                subject, body = get_new_order_email(order_data, supplier.name, items)
                background_tasks.add_task(send_email, supplier.email, subject, body)
            if supplier.phone:
                background_tasks.add_task(send_sms, supplier.phone, get_new_order_sms(order_data, len(items)))

    except Exception as e:
        logger.error(f"Error scheduling new order notifications for {order.order_number}: {str(e)}")


async def send_status_notifications(order: Order, background_tasks: BackgroundTasks, db: AsyncSession, note: str = None):
    """Tell the vendor their order moved"""
    try:
        vendor_result = await db.execute(
            select(UserProfile).where(UserProfile.id == order.vendor_id)
        )
        vendor = vendor_result.scalar_one_or_none()
        if not vendor:
            return

        order_data = notification_payload(order)
        if vendor.email:
            subject, body = get_order_status_email(order_data, order.status, note)
            background_tasks.add_task(send_email, vendor.email, subject, body)
        if vendor.phone:
            background_tasks.add_task(send_sms, vendor.phone, get_order_status_sms(order_data, order.status))

    except Exception as e:
        logger.error(f"Error scheduling status notifications for {order.order_number}: {str(e)}")


# =================
# ORDER ROUTES
# =================

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    background_tasks: BackgroundTasks,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_write),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    Place an order for one or more materials

    Stock decrements, the order number and the order row are written in one transaction:
    if any line cannot be reserved nothing is persisted
    """
    if profile.role != "vendor":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only vendors can place orders"
        )

    try:
        material_ids = [line.material_id for line in order_data.materials]
        material_result = await db.execute(
            select(Material).where(Material.id.in_(material_ids))
        )
        materials = {m.id: m for m in material_result.scalars().all()}

        items = []
        subtotal = 0.0
        for line in order_data.materials:
            material = materials.get(line.material_id)
            if not material:
                raise NotFoundError(f"Material {line.material_id}")

            if not material.is_available:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{material.name} is not available"
                )

            if line.quantity > material.quantity:
                raise InsufficientStockError(
                    material.id, material.name, material.quantity,
                    requested_quantity=line.quantity
                )

            item_total = round(material.price * line.quantity, 2)
            subtotal += item_total

            items.append(OrderItem(
                material_id=material.id,
                material_name=material.name,
                category=material.category,
                unit=material.unit,
                quantity=line.quantity,
                price=material.price,
                total_price=item_total,
                supplier_id=material.supplier_id,
                supplier_name=material.supplier_name,
            ))

        subtotal = round(subtotal, 2)
        discount = 0.0
        taxes = 0.0
        total_amount = round(subtotal + DELIVERY_FEE - discount + taxes, 2)

        now = datetime.utcnow()
        for line in order_data.materials:
            await reserve_stock(db, materials[line.material_id], line.quantity, now)

        order_number = await next_order_number(db, now)

        payment_method = "cod" if order_data.payment_method.value == "cash" else order_data.payment_method.value

        order = Order(
            order_number=order_number,
            vendor_id=profile.id,
            vendor_name=profile.name,
            items=items,
            total_items=sum(line.quantity for line in order_data.materials),
            subtotal=subtotal,
            delivery_fee=DELIVERY_FEE,
            discount=discount,
            taxes=taxes,
            total_amount=total_amount,
            status=OrderStatus.PENDING.value,
            delivery_address=normalize_delivery_address(order_data.delivery_address),
            delivery_instructions=order_data.delivery_instructions or order_data.notes,
            payment_method=payment_method,
            payment_status="pending",
            payment_amount=total_amount,
            currency=CURRENCY,
            notes=order_data.notes,
        )
        db.add(order)
        await db.flush()

        append_tracking(db, order, OrderStatus.PENDING.value, profile.id, notes="Order placed")

        if order_data.clear_cart:
            await empty_cart(db, profile.id)

        await db.execute(
            update(UserProfile)
            .where(UserProfile.id == profile.id)
            .values(total_orders=UserProfile.total_orders + 1)
            .execution_options(synchronize_session=False)
        )

        await db.commit()
        logger.info(f"Order {order_number} placed by vendor {profile.id} for {total_amount} {CURRENCY}")

        order = await get_order_with_details(db, order.id)
        await send_new_order_notifications(order, background_tasks, db)

        return OrderResponse.model_validate(order_to_dict(order))

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error(f"Error creating order: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order"
        )


@router.get("", response_model=OrderListResponse)
async def get_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_read),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Orders visible to the caller, newest first"""
    try:
        return await list_orders(db, orders_visible_to(profile), order_status, page, limit)

    except Exception as e:
        logger.error(f"Error getting orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve orders"
        )


@router.get("/stats", response_model=OrderStatsResponse)
async def get_order_stats(
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_read),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Order counts per status and the amount ordered (vendor) or sold (supplier)"""
    try:
        visibility = orders_visible_to(profile)

        status_result = await db.execute(
            select(Order.status, func.count(Order.id))
            .where(visibility)
            .group_by(Order.status)
        )
        by_status = {row[0]: row[1] for row in status_result.all()}

        if profile.role == "supplier":
            # Only the supplier's own lines count towards their revenue
            amount_query = (
                select(func.coalesce(func.sum(OrderItem.total_price), 0))
                .join(Order, Order.id == OrderItem.order_id)
                .where(
                    OrderItem.supplier_id == profile.id,
                    Order.status != OrderStatus.CANCELLED.value
                )
            )
        else:
            amount_query = (
                select(func.coalesce(func.sum(Order.total_amount), 0))
                .where(visibility, Order.status != OrderStatus.CANCELLED.value)
            )
        total_amount = (await db.execute(amount_query)).scalar() or 0

        return OrderStatsResponse(
            total_orders=sum(by_status.values()),
            total_amount=round(float(total_amount), 2),
            by_status=by_status
        )

    except Exception as e:
        logger.error(f"Error getting order stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get order statistics"
        )


@router.get("/vendor/my-orders", response_model=OrderListResponse)
async def get_vendor_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    current_user = Depends(get_current_user),
    _: bool = Depends(require_vendor),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Orders placed by the calling vendor"""
    try:
        return await list_orders(db, Order.vendor_id == profile.id, order_status, page, limit)

    except Exception as e:
        logger.error(f"Error getting vendor orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get vendor orders"
        )


@router.get("/supplier/my-orders", response_model=OrderListResponse)
async def get_supplier_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    current_user = Depends(get_current_user),
    _: bool = Depends(require_supplier),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Orders containing the calling supplier's materials"""
    try:
        return await list_orders(db, orders_visible_to(profile), order_status, page, limit)

    except Exception as e:
        logger.error(f"Error getting supplier orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get supplier orders"
        )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_read),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Get an order (owning vendor or a supplier in the order)"""
    order = await load_order_for(db, order_id)

    is_vendor, is_supplier = order_parties(order, profile)
    if not (is_vendor or is_supplier or profile.role == "admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this order"
        )

    return OrderResponse.model_validate(order_to_dict(order))


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_status_write),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Move an order along its lifecycle (suppliers with items in the order)"""
    new_status = status_update.status
    if new_status not in UPDATABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid status", "valid_statuses": UPDATABLE_STATUSES}
        )

    order = await load_order_for(db, order_id)

    _, is_supplier = order_parties(order, profile)
    if not is_supplier:
        logger.warning(f"User {profile.id} tried to update order {order.order_number} without items in it")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to update this order"
        )

    ensure_transition_allowed(order, new_status)

    try:
        previous_status = order.status

        if new_status == OrderStatus.CANCELLED.value:
            await cancel_order(db, order, profile, reason=status_update.notes)
        else:
            await advance_status(db, order, new_status)
            append_tracking(
                db, order, new_status, profile.id,
                notes=status_update.notes,
                location=status_update.location
            )

        if status_update.estimated_delivery:
            order.estimated_delivery = status_update.estimated_delivery
        if status_update.tracking_number:
            order.tracking_number = status_update.tracking_number
        if status_update.notes:
            order.notes = status_update.notes

        await db.commit()
        logger.info(f"Order {order.order_number} moved from {previous_status} to {new_status} by {profile.id}")

        order = await get_order_with_details(db, order.id)
        await send_status_notifications(order, background_tasks, db, status_update.notes)

        return OrderResponse.model_validate(order_to_dict(order))

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error(f"Error updating order status: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update order status"
        )


@router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order_route(
    order_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    cancel_data: Optional[OrderCancel] = None,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_write),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Cancel an order and give its stock back (owning vendor or a supplier in the order)"""
    order = await load_order_for(db, order_id)

    is_vendor, is_supplier = order_parties(order, profile)
    if not (is_vendor or is_supplier):
        logger.warning(f"User {profile.id} tried to cancel order {order.order_number}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to cancel this order"
        )

    reason = cancel_data.reason if cancel_data else None

    try:
        await cancel_order(db, order, profile, reason=reason)
        await db.commit()
        logger.info(f"Order {order.order_number} cancelled by {profile.id}")

        order = await get_order_with_details(db, order.id)
        await send_status_notifications(order, background_tasks, db, reason)

        return OrderResponse.model_validate(order_to_dict(order))

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error(f"Error cancelling order: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel order"
        )
