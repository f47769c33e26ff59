from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid


class CartItemAdd(BaseModel):
    material_id: uuid.UUID
    quantity: int = Field(1, ge=1)
    notes: Optional[str] = Field(None, max_length=500)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0)  # 0 removes the line


class CartItemResponse(BaseModel):
    id: str
    material_id: str
    supplier_id: str
    material_name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    image_url: Optional[str] = None
    supplier_name: Optional[str] = None
    available_quantity: Optional[int] = None
    quantity: int
    price: float
    total_price: float
    notes: Optional[str] = None
    added_at: datetime


class SupplierCartSummary(BaseModel):
    supplier_id: str
    supplier_name: Optional[str] = None
    item_count: int
    amount: float


class CartResponse(BaseModel):
    id: str
    user_id: str
    items: List[CartItemResponse]
    total_items: int
    total_amount: float
    suppliers: List[SupplierCartSummary]
    updated_at: Optional[datetime] = None
