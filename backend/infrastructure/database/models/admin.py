"""
Admin database models.
"""

from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Index, String, JSON, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class AuditAction(str, Enum):
    """Admin audit log action types."""

    # Hospital management
    HOSPITAL_CREATED = "hospital_created"
    HOSPITAL_UPDATED = "hospital_updated"
    HOSPITAL_DELETED = "hospital_deleted"

    # Promotions
    PROMOTION_CREATED = "promotion_created"

    # Bookings
    BOOKINGS_BULK_UPDATED = "bookings_bulk_updated"

    # Content moderation
    FLAG_REVIEWED = "flag_reviewed"

    # Affiliate program
    PAYOUT_APPROVED = "payout_approved"
    PAYOUT_REJECTED = "payout_rejected"
    PAYOUT_COMPLETED = "payout_completed"
    PAYOUT_FAILED = "payout_failed"
    COMMISSION_RATE_CHANGED = "commission_rate_changed"


class AuditTargetType(str, Enum):
    """Admin audit log target types."""

    HOSPITAL = "hospital"
    PROMOTION = "promotion"
    BOOKING = "booking"
    CONTENT_FLAG = "content_flag"
    PAYOUT = "payout"
    COMMISSION_RATE = "commission_rate"


class AdminAuditLog(Base, TimestampMixin):
    """Admin audit log model for tracking administrative actions."""

    __tablename__ = "admin_audit_logs"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Admin who performed the action
    admin_user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    # Target resource; bulk actions leave target_id empty and list ids in details
    target_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    target_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Request tracking
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # IPv6 max length
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_admin_audit_admin_action", "admin_user_id", "action"),
        Index("ix_admin_audit_target", "target_type", "target_id"),
    )

    def __repr__(self) -> str:
        return f"<AdminAuditLog(id={self.id}, action={self.action}, admin_id={self.admin_user_id})>"
