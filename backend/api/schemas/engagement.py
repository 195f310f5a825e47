"""
Newsletter, moderation, favorites, contact and challenge progress schemas.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from infrastructure.database.models.engagement import FavoriteItemType, FlagStatus

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

FLAG_REVIEW_STATUSES = (
    FlagStatus.REVIEWED.value,
    FlagStatus.APPROVED.value,
    FlagStatus.REJECTED.value,
    FlagStatus.RESOLVED.value,
)

FAVORITE_ITEM_TYPES = tuple(t.value for t in FavoriteItemType)


def normalize_email(v: str) -> str:
    v = (v or "").strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email address")
    return v


# ============================================================================
# Newsletter
# ============================================================================


class NewsletterSubscribeRequest(BaseModel):
    email: str = Field(..., max_length=255)
    source: Optional[str] = Field(None, max_length=50)
    preferences: Optional[dict[str, bool]] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class NewsletterUnsubscribeRequest(BaseModel):
    token: Optional[str] = None
    email: Optional[str] = None


# ============================================================================
# Moderation
# ============================================================================


class ContentFlagCreateRequest(BaseModel):
    content_type: str = Field(..., min_length=1, max_length=50)
    content_id: str = Field(..., min_length=1, max_length=255)
    reason: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)


class ContentFlagReviewRequest(BaseModel):
    status: str
    review_notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in FLAG_REVIEW_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(FLAG_REVIEW_STATUSES)}")
        return v


# ============================================================================
# Favorites
# ============================================================================


class FavoriteCreateRequest(BaseModel):
    item_type: str
    item_id: str = Field(..., min_length=1, max_length=255)

    @field_validator("item_type")
    @classmethod
    def validate_item_type(cls, v: str) -> str:
        if v not in FAVORITE_ITEM_TYPES:
            raise ValueError(f"item_type must be one of: {', '.join(FAVORITE_ITEM_TYPES)}")
        return v


# ============================================================================
# Contact
# ============================================================================


class ContactRequest(BaseModel):
    name: str
    email: str
    message: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not 2 <= len(v) <= 100:
            raise ValueError("Name must be between 2 and 100 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if not 10 <= len(v) <= 5000:
            raise ValueError("Message must be between 10 and 5000 characters")
        return v


class ChallengeProgressRequest(BaseModel):
    progress: int = Field(..., ge=0)
