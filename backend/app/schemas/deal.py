from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DealBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

    discount: Optional[Decimal] = Field(None, ge=0)
    discount_type: Literal["percentage", "fixed"] = "percentage"

    required_plan_priority: Optional[int] = Field(
        None, ge=0, description="Minimum member plan priority; null = open to all members"
    )
    member_limit: Optional[int] = Field(None, ge=1, description="Max approved redemptions; null = unlimited")

    valid_from: date
    valid_until: date


class DealCreate(DealBase):
    pass


class DealUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None

    discount: Optional[Decimal] = Field(None, ge=0)
    discount_type: Optional[Literal["percentage", "fixed"]] = None

    required_plan_priority: Optional[int] = Field(None, ge=0)
    member_limit: Optional[int] = Field(None, ge=1)

    valid_from: Optional[date] = None
    valid_until: Optional[date] = None


class DealReview(BaseModel):
    action: Literal["approve", "reject"]
    reason: Optional[str] = Field(None, max_length=1000)


class DealOut(DealBase):
    id: uuid.UUID
    merchant_id: uuid.UUID
    status: str
    rejection_reason: Optional[str] = None
    redemptions_count: int

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DealAccessOut(BaseModel):
    deal_id: uuid.UUID
    allowed: bool
    required_tier: str
    reason: Optional[str] = None
    error: Optional[str] = None
