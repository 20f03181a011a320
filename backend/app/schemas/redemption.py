from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class RedemptionOut(BaseModel):
    id: UUID
    deal_id: UUID
    user_id: UUID
    merchant_id: UUID
    status: str
    redemption_code: str
    requested_at: datetime
    resolved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class RejectRedemption(BaseModel):
    reason: str = Field(..., max_length=1000, description="Shown to the member")


class BulkResolve(BaseModel):
    request_ids: List[UUID] = Field(..., min_length=1, max_length=200)
    action: Literal["approve", "reject"]
    reason: Optional[str] = Field(None, max_length=1000)


class ResolutionOutcomeOut(BaseModel):
    request_id: UUID
    ok: bool
    status: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None

    model_config = {"from_attributes": True}


class BulkResolveOut(BaseModel):
    succeeded: int
    failed: int
    results: List[ResolutionOutcomeOut]


QuotaValue = Union[int, Literal["unlimited"]]


class RedemptionLimitsOut(BaseModel):
    limit: QuotaValue
    used_this_month: int
    pending_this_month: int
    remaining: QuotaValue


class DealPostLimitsOut(BaseModel):
    limit: QuotaValue
    remaining: QuotaValue


class MyLimitsOut(BaseModel):
    email: EmailStr
    membership_type: Optional[str] = None
    plan_priority: Optional[int] = None
    redemptions: RedemptionLimitsOut
    deal_posts: Optional[DealPostLimitsOut] = None
