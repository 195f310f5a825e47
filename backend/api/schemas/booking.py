"""
Booking request schemas.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class BookingCreateRequest(BaseModel):
    hospital_id: str = Field(..., min_length=1)
    package_id: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=1, max_length=50)
    start_date: date
    special_requests: Optional[str] = Field(None, max_length=2000)
    payment_method: Optional[str] = Field(None, max_length=50)


class BulkBookingUpdateRequest(BaseModel):
    """
    Admin bulk status change.

    Both fields are optional here so the route can answer a missing field
    with its own message.
    """

    action: Optional[str] = None
    booking_ids: Optional[list[str]] = Field(None, alias="bookingIds")

    model_config = ConfigDict(populate_by_name=True)
