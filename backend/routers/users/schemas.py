from pydantic import BaseModel, Field
from typing import Optional, List
from routers.auth.schemas import LocationInput, OperatingHours


class UserProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, pattern=r"^[+]?[0-9][\d\-\(\)\s]{8,15}$")
    business_name: Optional[str] = Field(None, max_length=200)
    business_type: Optional[str] = Field(None, max_length=100)
    location: Optional[LocationInput] = None

    # Supplier settings
    delivery_radius: Optional[float] = Field(None, ge=1, le=100)
    average_delivery_time: Optional[str] = Field(None, max_length=50)
    minimum_order_amount: Optional[float] = Field(None, ge=0)
    specialties: Optional[List[str]] = None
    operating_hours: Optional[OperatingHours] = None

    # Vendor settings
    preferences: Optional[dict] = None
