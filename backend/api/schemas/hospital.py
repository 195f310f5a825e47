"""
Hospital, package and promotion request schemas.
"""

from datetime import UTC, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from infrastructure.database.models.hospital import DiscountType, HospitalStatus

_STATUSES = {s.value for s in HospitalStatus}


def _check_status(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in _STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(sorted(_STATUSES))}")
    return v


class HospitalCreateRequest(BaseModel):
    """Admin hospital creation. Status defaults to approved."""

    hospital_name: str = Field(..., min_length=1, max_length=255)
    hospital_name_english: Optional[str] = Field(None, max_length=255)
    contact_name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    location: str = Field(..., min_length=1, max_length=500)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    services: Optional[list[str]] = None
    images: Optional[list[str]] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    owner_id: Optional[str] = None
    status: str = HospitalStatus.APPROVED.value

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return _check_status(v)


class HospitalUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are written."""

    hospital_name: Optional[str] = Field(None, min_length=1, max_length=255)
    hospital_name_english: Optional[str] = Field(None, max_length=255)
    contact_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    location: Optional[str] = Field(None, min_length=1, max_length=500)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    services: Optional[list[str]] = None
    images: Optional[list[str]] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        return _check_status(v)


class PromotionCreateRequest(BaseModel):
    """Admin promotion creation. Without a discount type it is listed nowhere."""

    hospital_id: str = Field(..., min_length=1)
    title: str
    description: Optional[str] = Field(None, max_length=2000)
    is_active: bool = True
    discount_type: Optional[str] = None
    discount_value: Optional[float] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_uses: Optional[int] = Field(None, ge=1)
    priority: int = Field(0, ge=0)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Title is required")
        if len(v) > 255:
            raise ValueError("Title must be at most 255 characters")
        return v

    @field_validator("discount_type")
    @classmethod
    def validate_discount_type(cls, v: Optional[str]) -> Optional[str]:
        allowed = [t.value for t in DiscountType]
        if v is not None and v not in allowed:
            raise ValueError(f"discount_type must be one of: {', '.join(allowed)}")
        return v

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @model_validator(mode="after")
    def check_discount_and_window(self) -> "PromotionCreateRequest":
        if self.discount_type is None:
            self.discount_value = None
        elif self.discount_value is None:
            raise ValueError("discount_value is required when discount_type is set")
        elif self.discount_type == DiscountType.PERCENTAGE.value and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValueError("End date must be after start date")
        return self
