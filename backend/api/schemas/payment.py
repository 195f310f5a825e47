"""
Payment request schemas.
"""

from pydantic import BaseModel, Field


class CreatePaymentIntentRequest(BaseModel):
    booking_id: str = Field(..., min_length=1)
