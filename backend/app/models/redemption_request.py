import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base

REDEMPTION_STATUSES = {"pending", "approved", "rejected"}


class RedemptionRequest(Base):
    __tablename__ = "redemption_requests"
    __table_args__ = (
        UniqueConstraint("redemption_code", name="uq_redemption_requests_code"),
        # At most one in-flight request per (user, deal)
        Index(
            "uq_redemption_requests_pending_user_deal",
            "user_id",
            "deal_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        # Monthly quota window lookups
        Index("ix_redemption_requests_user_status_resolved", "user_id", "status", "resolved_at"),
        Index("ix_redemption_requests_merchant_status", "merchant_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)

    deal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("deals.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    merchant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("merchants.id", ondelete="CASCADE"),
        nullable=False,
    )

    # pending | approved | rejected
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    redemption_code: Mapped[str] = mapped_column(String(40), nullable=False)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
