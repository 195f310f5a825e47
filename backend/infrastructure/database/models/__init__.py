"""
SQLAlchemy database models.
"""

from .admin import AdminAuditLog, AuditAction, AuditTargetType
from .affiliate import (
    AffiliateCommissionRate,
    AffiliateConversion,
    AffiliatePayout,
    ConversionStatus,
    ConversionType,
    PayoutStatus,
)
from .base import Base, TimestampMixin
from .booking import Booking, BookingStatus, PaymentStatus
from .engagement import (
    DEFAULT_NEWSLETTER_PREFERENCES,
    ContactMessage,
    ContentFlag,
    FavoriteItemType,
    FlagStatus,
    NewsletterSubscription,
    Notification,
    UserFavorite,
)
from .gamification import Challenge, PointsHistory, UserChallenge, UserPoints
from .hospital import DiscountType, Hospital, HospitalPackage, HospitalStatus, PackageType, Promotion
from .user import User, UserRole, UserRoleAssignment, UserStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "UserRole",
    "UserRoleAssignment",
    "UserStatus",
    "Hospital",
    "HospitalPackage",
    "HospitalStatus",
    "PackageType",
    "Promotion",
    "DiscountType",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "ContentFlag",
    "FlagStatus",
    "NewsletterSubscription",
    "DEFAULT_NEWSLETTER_PREFERENCES",
    "UserFavorite",
    "FavoriteItemType",
    "Notification",
    "ContactMessage",
    "AffiliateConversion",
    "AffiliatePayout",
    "AffiliateCommissionRate",
    "ConversionType",
    "ConversionStatus",
    "PayoutStatus",
    "UserPoints",
    "PointsHistory",
    "Challenge",
    "UserChallenge",
    "AdminAuditLog",
    "AuditAction",
    "AuditTargetType",
]
