# backend/app/models/merchant.py

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.plan_tiers import canonical_plan_key
from app.db.base import Base


class Merchant(Base):
    __tablename__ = "merchants"
    __table_args__ = (
        # One merchant profile per user account
        UniqueConstraint("owner_user_id", name="uq_merchants_owner_user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)

    owner_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    business_name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Merchant plan key (may be a legacy alias such as "gold_business")
    plan_key: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # null = plan default, -1 = unlimited
    custom_deal_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Bumped on every deal post; posting-limit checks serialize on this row
    post_serial: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def canonical_plan_key(self) -> str:
        return canonical_plan_key(self.plan_key)
