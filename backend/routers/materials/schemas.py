from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum
from routers.auth.schemas import LocationInput


class MaterialCategory(str, Enum):
    SPICES = "Spices"
    VEGETABLES = "Vegetables"
    RICE_AND_GRAINS = "Rice & Grains"
    PULSES_AND_LENTILS = "Pulses & Lentils"
    OIL_AND_GHEE = "Oil & Ghee"
    DAIRY_PRODUCTS = "Dairy Products"
    DRY_FRUITS = "Dry Fruits"
    HERBS = "Herbs"
    FLOURS = "Flours"
    SEASONINGS = "Seasonings"
    OTHERS = "Others"


class MaterialUnit(str, Enum):
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PIECE = "piece"
    PACKET = "packet"
    BAG = "bag"
    BOX = "box"
    DOZEN = "dozen"


class MaterialCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    category: MaterialCategory
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=0)
    unit: MaterialUnit
    min_order_quantity: int = Field(1, ge=1)
    bulk_discount: float = Field(0, ge=0, le=50)
    location: Optional[LocationInput] = None  # defaults to the supplier's own location
    image_url: Optional[str] = Field(None, pattern=r"(?i)^https?://.+\.(jpg|jpeg|png|webp|gif)$")
    delivery_time: str = Field("Same day", max_length=50)
    is_available: bool = True
    is_organic: bool = False
    tags: Optional[List[str]] = None

    @field_validator("price")
    @classmethod
    def round_price(cls, v):
        return round(v, 2)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        if v is None:
            return v
        return [tag.strip().lower() for tag in v if tag.strip()]


class MaterialUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[MaterialCategory] = None
    price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    unit: Optional[MaterialUnit] = None
    min_order_quantity: Optional[int] = Field(None, ge=1)
    bulk_discount: Optional[float] = Field(None, ge=0, le=50)
    location: Optional[LocationInput] = None
    image_url: Optional[str] = Field(None, pattern=r"(?i)^https?://.+\.(jpg|jpeg|png|webp|gif)$")
    delivery_time: Optional[str] = Field(None, max_length=50)
    is_available: Optional[bool] = None
    is_organic: Optional[bool] = None
    tags: Optional[List[str]] = None

    @field_validator("price")
    @classmethod
    def round_price(cls, v):
        return round(v, 2) if v is not None else v


class MaterialResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category: str
    unit: str
    price: float
    quantity: int
    min_order_quantity: int
    bulk_discount: float
    discount_price: float
    supplier_id: str
    supplier_name: str
    location: Optional[dict] = None
    image_url: Optional[str] = None
    delivery_time: str
    tags: List[str] = []
    rating: float
    total_reviews: int
    is_available: bool
    is_organic: bool
    is_low_stock: bool
    stock_value: float
    order_count: int
    last_order_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class MaterialListResponse(BaseModel):
    materials: List[MaterialResponse]
    page: int
    limit: int
    total: int
    pages: int


class MaterialSearchResponse(BaseModel):
    count: int
    materials: List[MaterialResponse]


class PriceComparisonResponse(BaseModel):
    comparisons: Dict[str, List[MaterialResponse]]
