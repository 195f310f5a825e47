"""
Hospital, package and promotion database models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class HospitalStatus(str, Enum):
    """Partner application / listing status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class PackageType(str, Enum):
    ONE_TIME = "one_time"
    PACKAGE = "package"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Hospital(Base, TimestampMixin):
    """A hospital or clinic listed on the marketplace."""

    __tablename__ = "hospitals"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    owner_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    hospital_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hospital_name_english: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    location: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    services: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    images: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        default=HospitalStatus.PENDING.value,
        nullable=False,
    )

    packages: Mapped[list["HospitalPackage"]] = relationship(
        "HospitalPackage",
        back_populates="hospital",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    __table_args__ = (Index("ix_hospitals_status_created", "status", "created_at"),)

    @property
    def is_approved(self) -> bool:
        return self.status == HospitalStatus.APPROVED.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "hospital_name": self.hospital_name,
            "hospital_name_english": self.hospital_name_english,
            "slug": self.slug,
            "contact_name": self.contact_name,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "location": self.location,
            "description": self.description,
            "services": self.services or [],
            "images": self.images or [],
            "latitude": self.latitude,
            "longitude": self.longitude,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Hospital(id={self.id}, slug={self.slug}, status={self.status})>"


class HospitalPackage(Base, TimestampMixin):
    """A bookable treatment package offered by a hospital."""

    __tablename__ = "hospital_packages"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    hospital_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("hospitals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_english: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    package_type: Mapped[str] = mapped_column(
        String(20),
        default=PackageType.ONE_TIME.value,
        nullable=False,
    )
    duration_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    features: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    hospital: Mapped["Hospital"] = relationship("Hospital", back_populates="packages")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hospital_id": self.hospital_id,
            "name": self.name,
            "name_english": self.name_english,
            "description": self.description,
            "package_type": self.package_type,
            "duration_months": self.duration_months,
            "price": self.price,
            "features": self.features or [],
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<HospitalPackage(id={self.id}, type={self.package_type})>"


class Promotion(Base, TimestampMixin):
    """A time-boxed discount attached to a hospital."""

    __tablename__ = "promotions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    hospital_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("hospitals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    discount_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    discount_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    max_uses: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    current_uses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hospital_id": self.hospital_id,
            "title": self.title,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "is_active": self.is_active,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "max_uses": self.max_uses,
            "current_uses": self.current_uses,
            "priority": self.priority,
        }
