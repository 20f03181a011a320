# backend/app/models/plan.py

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Plan(Base):
    """
    Membership / merchant plan definition. Owned by admin tooling; the
    access core only ever reads it.
    """

    __tablename__ = "plans"
    __table_args__ = (
        Index("ix_plans_type_priority", "type", "priority"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)

    key: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    # user | merchant | membership
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="user")

    # Higher = broader deal access
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # -1 = unlimited
    deal_posting_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_redemptions_per_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="GHS")
    billing_cycle: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
