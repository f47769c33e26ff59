from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from routers.suppliers.schemas import SupplierResponse


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class DistanceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: Coordinates = Field(..., alias="from")
    to: Coordinates


class DistanceResponse(BaseModel):
    distance: float
    unit: str = "km"
    delivery_fee: float
    estimated_delivery_time: str


class SearchCriteria(BaseModel):
    latitude: float
    longitude: float
    radius: float


class NearbySuppliersResponse(BaseModel):
    count: int
    suppliers: List[SupplierResponse]
    search_criteria: SearchCriteria


class LocationSearchResult(BaseModel):
    city: str
    state: Optional[str] = None
    suppliers_count: int
    coordinates: Coordinates


class LocationSearchResponse(BaseModel):
    count: int
    locations: List[LocationSearchResult]


class PincodeInfo(BaseModel):
    city: str
    state: str
    district: str


class PincodeValidationResponse(BaseModel):
    valid: bool
    pincode: str
    location_info: Optional[PincodeInfo] = None
    suppliers_count: int
    service_available: bool
