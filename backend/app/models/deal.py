# backend/app/models/deal.py

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base

DEAL_STATUSES = {"pending_approval", "active", "rejected", "expired", "inactive"}

# Statuses in which the owning merchant may still edit a deal
EDITABLE_DEAL_STATUSES = {"pending_approval", "rejected", "active", "expired"}


class Deal(Base):
    __tablename__ = "deals"
    __table_args__ = (
        Index("ix_deals_merchant_created_at", "merchant_id", "created_at"),
        Index("ix_deals_status_valid_until", "status", "valid_until"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)

    merchant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("merchants.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    discount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    # percentage | fixed
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False, default="percentage")

    # Minimum member plan priority; null = open to every member
    required_plan_priority: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Cap on approved redemptions; null = unlimited
    member_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending_approval")
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    valid_from: Mapped[date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[date] = mapped_column(Date, nullable=False)

    redemptions_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
