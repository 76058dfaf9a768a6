from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any

from . import models


class Location(BaseModel):
    address: Optional[str] = Field(None, max_length=500)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RideRequest(BaseModel):
    customer_id: str = Field(..., min_length=1, max_length=50)
    pickup: Location
    destination: Location
    ride_type: Optional[str] = Field("standard", max_length=50)
    payment_method: Optional[str] = Field("cash", max_length=50)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('ride_type')
    @classmethod
    def validate_ride_type(cls, v):
        if v is not None and v not in models.RIDE_TYPES:
            raise ValueError(f"ride_type must be one of {', '.join(models.RIDE_TYPES)}")
        return v


class FareEstimate(BaseModel):
    pickup: Location
    destination: Location
    ride_type: str = Field("standard", max_length=50)

    @field_validator('ride_type')
    @classmethod
    def validate_ride_type(cls, v):
        if v not in models.RIDE_TYPES:
            raise ValueError(f"ride_type must be one of {', '.join(models.RIDE_TYPES)}")
        return v


class AcceptRide(BaseModel):
    driver_id: str = Field(..., min_length=1, max_length=50)
    negotiated_fare: Optional[float] = Field(None, gt=0)


class StatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=50)
    location: Optional[Location] = None


class AssignDriver(BaseModel):
    driver_id: str = Field(..., min_length=1, max_length=50)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    cancelled_by: Optional[str] = Field(None, max_length=50)


class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=255)


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)


class PasswordReset(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=255)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)


class Vehicle(BaseModel):
    make: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    year: int = Field(..., ge=1980, le=2100)
    license_plate: str = Field(..., min_length=2, max_length=10)
    color: Optional[str] = Field(None, max_length=30)


class DriverCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str = Field(..., min_length=10, max_length=20)
    vehicle: Vehicle


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    vehicle: Optional[Vehicle] = None


class DriverStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)
    location: Optional[Location] = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        if v not in models.DRIVER_STATUSES:
            raise ValueError(f"status must be one of {', '.join(models.DRIVER_STATUSES)}")
        return v


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)


class CustomerStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        if v not in models.CUSTOMER_STATUSES:
            raise ValueError(f"status must be one of {', '.join(models.CUSTOMER_STATUSES)}")
        return v


class LocationUpdate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    heading: Optional[float] = None
    speed: Optional[float] = None


class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    type: Optional[str] = Field("info", max_length=20)
    audience: Optional[str] = Field("all", max_length=20)


class PushMessage(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    title: Optional[str] = Field(None, max_length=200)
    driver_id: Optional[str] = None
    customer_id: Optional[str] = None
    type: Optional[str] = Field("info", max_length=20)


class ReportRequest(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    params: Dict[str, Any] = Field(default_factory=dict)


class ReportSchedule(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    frequency: str = Field("weekly", max_length=20)
    recipients: List[str] = Field(default_factory=list)
    params: Dict[str, Any] = Field(default_factory=dict)


class PayoutRequest(BaseModel):
    driver_ids: List[str] = Field(..., min_length=1)


class RefundRequest(BaseModel):
    ride_id: str = Field(..., min_length=1)
    amount: Optional[float] = Field(None, gt=0)
    reason: str = Field(..., min_length=1, max_length=500)


class LoginResponse(BaseModel):
    success: bool
    token: str
    user: dict
