from pydantic import BaseModel, Field
from typing import Optional, List, Union, Dict
from datetime import datetime
from enum import Enum
from routers.auth.schemas import LocationInput
import uuid


class PaymentMethod(str, Enum):
    CASH = "cash"
    ONLINE = "online"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    PACKED = "packed"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


# Values accepted by PUT /orders/{id}/status
UPDATABLE_STATUSES = [
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PROCESSING.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
]

TERMINAL_STATUSES = {
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.RETURNED.value,
}

CANCELLABLE_STATUSES = {
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PROCESSING.value,
}


class OrderMaterialInput(BaseModel):
    material_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    materials: List[OrderMaterialInput] = Field(..., min_length=1)
    # Plain text is expanded with the default city
    delivery_address: Union[LocationInput, str]
    delivery_instructions: Optional[str] = Field(None, max_length=500)
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = Field(None, max_length=1000)
    clear_cart: bool = False


class OrderStatusUpdate(BaseModel):
    # Validated in the handler so unknown values get the list of valid ones
    status: str
    estimated_delivery: Optional[datetime] = None
    tracking_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=255)


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderItemResponse(BaseModel):
    id: str
    material_id: Optional[str] = None
    material_name: str
    category: str
    unit: str
    quantity: int
    price: float
    total_price: float
    supplier_id: str
    supplier_name: str


class OrderTrackingResponse(BaseModel):
    id: str
    status: str
    updated_by: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime


class OrderResponse(BaseModel):
    id: str
    order_number: str
    vendor_id: str
    vendor_name: str
    items: List[OrderItemResponse]
    total_items: int
    subtotal: float
    delivery_fee: float
    discount: float
    taxes: float
    total_amount: float
    status: str
    delivery_address: dict
    delivery_instructions: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    payment_method: str
    payment_status: str
    payment_amount: float
    currency: str
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    tracking: List[OrderTrackingResponse] = []
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    count: int
    page: int
    limit: int
    total: int
    pages: int


class OrderStatsResponse(BaseModel):
    total_orders: int
    total_amount: float
    by_status: Dict[str, int]
