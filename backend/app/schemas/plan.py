from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PlanOut(BaseModel):
    id: UUID
    key: str
    name: str
    type: str
    priority: int
    is_active: bool
    deal_posting_limit: Optional[int] = Field(None, description="-1 = unlimited")
    max_redemptions_per_month: Optional[int] = Field(None, description="-1 = unlimited")
    features: List[str] = Field(default_factory=list)
    price: Decimal
    currency: str
    billing_cycle: str

    model_config = {"from_attributes": True}
