# backend/app/models/user.py
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.plan_tiers import canonical_plan_key
from app.db.base import Base

USER_STATUSES = {"pending", "approved", "suspended"}


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    membership_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Plan key as stored by registration / admin assignment (may be a legacy alias)
    membership_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # null = plan default, -1 = unlimited, otherwise admin override
    custom_redemption_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Admin review: pending | approved | suspended
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    # Membership expiry; null = never expires
    plan_valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Bumped on every approved redemption; approvals for one user serialize on this row
    redemption_serial: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def plan_key(self) -> str:
        return canonical_plan_key(self.membership_type)

    def plan_expired(self, today: date) -> bool:
        return self.plan_valid_until is not None and self.plan_valid_until < today
