from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from routers.materials.schemas import MaterialResponse


class SupplierResponse(BaseModel):
    id: str
    name: str
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[dict] = None
    delivery_radius: float
    average_delivery_time: str
    minimum_order_amount: float
    specialties: List[str] = []
    operating_hours: Optional[dict] = None
    rating: float
    total_orders: int
    is_verified: bool
    created_at: datetime
    distance: Optional[float] = None  # km, only on proximity searches


class SupplierDetailResponse(SupplierResponse):
    materials_count: int
    categories: List[str]
    average_price: float


class SupplierListResponse(BaseModel):
    suppliers: List[SupplierResponse]
    count: int
    page: int
    limit: int
    total: int
    pages: int


class SupplierSearchResponse(BaseModel):
    count: int
    suppliers: List[SupplierResponse]


class SupplierSummary(BaseModel):
    id: str
    name: str
    location: Optional[dict] = None
    rating: float
    specialties: List[str] = []


class SupplierMaterialsResponse(BaseModel):
    supplier: SupplierSummary
    materials: List[MaterialResponse]
    count: int
    page: int
    limit: int
    total: int
    pages: int
