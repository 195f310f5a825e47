"""
Affiliate program schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.affiliate import RECORDABLE_CONVERSION_TYPES


class ReferralRedeemRequest(BaseModel):
    referral_code: Optional[str] = Field(None, alias="referralCode")

    model_config = ConfigDict(populate_by_name=True)


class ConversionCreateRequest(BaseModel):
    affiliate_user_id: str = Field(..., min_length=1)
    referred_user_id: str = Field(..., min_length=1)
    conversion_type: str
    conversion_value: float = Field(0, ge=0)
    reference_id: Optional[str] = Field(None, max_length=255)
    reference_type: Optional[str] = Field(None, max_length=50)
    metadata: Optional[dict] = None

    @field_validator("conversion_type")
    @classmethod
    def validate_conversion_type(cls, v: str) -> str:
        if v not in RECORDABLE_CONVERSION_TYPES:
            raise ValueError(
                f"conversion_type must be one of: {', '.join(RECORDABLE_CONVERSION_TYPES)}"
            )
        return v


class PayoutUpdateRequest(BaseModel):
    action: str
    rejection_reason: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = Field(None, max_length=2000)
    transaction_id: Optional[str] = Field(None, max_length=255)
    payment_reference: Optional[str] = Field(None, max_length=255)


class CommissionRateCreateRequest(BaseModel):
    conversion_type: str = Field(..., min_length=1, max_length=50)
    commission_rate: float = Field(..., ge=0, le=100)
    description: Optional[str] = None
    is_active: bool = True


class CommissionRateUpdateRequest(BaseModel):
    """Addressed by ``id`` or ``conversion_type``."""

    id: Optional[str] = None
    conversion_type: Optional[str] = None
    commission_rate: Optional[float] = Field(None, ge=0, le=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None
