"""
Affiliate / referral database models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ConversionType(str, Enum):
    SIGNUP = "signup"
    BOOKING = "booking"
    PRODUCT_PURCHASE = "product_purchase"
    EVENT_TICKET_PURCHASE = "event_ticket_purchase"
    SUBSCRIPTION = "subscription"
    REFERRAL = "referral"


class ConversionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELLED = "cancelled"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AffiliateConversion(Base, TimestampMixin):
    """A commissionable event attributed to a referring user."""

    __tablename__ = "affiliate_conversions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    affiliate_user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referred_user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    conversion_type: Mapped[str] = mapped_column(String(50), nullable=False)
    conversion_value: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    commission_rate: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    commission_amount: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ConversionStatus.PENDING.value,
        nullable=False,
    )
    reference_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    affiliate_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    referral_source: Mapped[str] = mapped_column(String(50), default="direct", nullable=False)
    extra_data: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_affiliate_conversions_affiliate_status", "affiliate_user_id", "status"),
        Index("ix_affiliate_conversions_reference", "reference_type", "reference_id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "affiliate_user_id": self.affiliate_user_id,
            "referred_user_id": self.referred_user_id,
            "conversion_type": self.conversion_type,
            "conversion_value": self.conversion_value,
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "status": self.status,
            "reference_id": self.reference_id,
            "reference_type": self.reference_type,
            "affiliate_code": self.affiliate_code,
            "referral_source": self.referral_source,
            "metadata": self.extra_data or {},
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class AffiliatePayout(Base, TimestampMixin):
    """A payout request grouping confirmed conversions."""

    __tablename__ = "affiliate_payouts"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    affiliate_user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    total_amount: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    platform_fee: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    net_amount: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="thb", nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=PayoutStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    related_conversion_ids: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    payout_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    processed_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "affiliate_user_id": self.affiliate_user_id,
            "total_amount": self.total_amount,
            "platform_fee": self.platform_fee,
            "net_amount": self.net_amount,
            "currency": self.currency,
            "status": self.status,
            "related_conversion_ids": self.related_conversion_ids or [],
            "payout_method": self.payout_method,
            "rejection_reason": self.rejection_reason,
            "notes": self.notes,
            "transaction_id": self.transaction_id,
            "payment_reference": self.payment_reference,
            "processed_by": self.processed_by,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class AffiliateCommissionRate(Base, TimestampMixin):
    """Admin-managed override of the default commission rate for a conversion type."""

    __tablename__ = "affiliate_commission_rates"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    conversion_type: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    commission_rate: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "conversion_type": self.conversion_type,
            "commission_rate": self.commission_rate,
            "is_active": self.is_active,
            "description": self.description,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
