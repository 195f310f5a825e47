"""
API request and response schemas.
"""

from .affiliate import (
    CommissionRateCreateRequest,
    CommissionRateUpdateRequest,
    ConversionCreateRequest,
    PayoutUpdateRequest,
    ReferralRedeemRequest,
)
from .auth import (
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from .booking import BookingCreateRequest, BulkBookingUpdateRequest
from .engagement import (
    ContactRequest,
    ContentFlagCreateRequest,
    ContentFlagReviewRequest,
    FavoriteCreateRequest,
    NewsletterSubscribeRequest,
    NewsletterUnsubscribeRequest,
)
from .hospital import HospitalCreateRequest, HospitalUpdateRequest
from .payment import CreatePaymentIntentRequest

__all__ = [
    "LoginRequest",
    "RegisterRequest",
    "RefreshTokenRequest",
    "TokenResponse",
    "UserResponse",
    "HospitalCreateRequest",
    "HospitalUpdateRequest",
    "BookingCreateRequest",
    "BulkBookingUpdateRequest",
    "NewsletterSubscribeRequest",
    "NewsletterUnsubscribeRequest",
    "ContentFlagCreateRequest",
    "ContentFlagReviewRequest",
    "FavoriteCreateRequest",
    "ContactRequest",
    "ReferralRedeemRequest",
    "ConversionCreateRequest",
    "PayoutUpdateRequest",
    "CommissionRateCreateRequest",
    "CommissionRateUpdateRequest",
    "CreatePaymentIntentRequest",
]
