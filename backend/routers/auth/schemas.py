from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    VENDOR = "vendor"
    SUPPLIER = "supplier"


class LocationInput(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=r"^[1-9][0-9]{5}$")


class OperatingHours(BaseModel):
    open: str = Field(..., pattern=r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
    close: str = Field(..., pattern=r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
    days: List[str] = []


# Request schemas
class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=100)
    role: UserRole
    phone: Optional[str] = Field(None, pattern=r"^[+]?[0-9][\d\-\(\)\s]{8,15}$")
    business_name: Optional[str] = Field(None, max_length=200)
    business_type: Optional[str] = Field(None, max_length=100)
    location: Optional[LocationInput] = None
    delivery_radius: Optional[float] = Field(None, ge=1, le=100)
    operating_hours: Optional[OperatingHours] = None
    specialties: Optional[List[str]] = None

    @model_validator(mode="after")
    def supplier_needs_location(self):
        if self.role == UserRole.SUPPLIER and self.location is None:
            raise ValueError("Suppliers must provide a location")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


# Response schemas
class UserResponse(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    name: str
    role: str
    phone: Optional[str] = None
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    location: Optional[dict] = None
    delivery_radius: Optional[float] = None
    average_delivery_time: Optional[str] = None
    minimum_order_amount: Optional[float] = None
    specialties: Optional[List[str]] = None
    operating_hours: Optional[dict] = None
    rating: float = 0.0
    total_orders: int = 0
    is_verified: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None
    message: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str


class RefreshRequest(BaseModel):
    refresh_token: str
