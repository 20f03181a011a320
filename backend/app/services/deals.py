"""Merchant deal lifecycle: post, edit, admin review and lazy expiry."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    AccountNotActive,
    AlreadyResolved,
    DealNotRedeemable,
    EmptyReason,
    InvalidArgument,
    NotFound,
    NotOwner,
    QuotaExceeded,
)
from app.core.plan_tiers import PlanType
from app.models.deal import EDITABLE_DEAL_STATUSES, Deal
from app.models.merchant import Merchant
from app.services.limits import (
    has_quota,
    lock_merchant_quota,
    merchant_deal_limit,
    quota_to_json,
    remaining_deal_posts,
    utcnow,
)
from app.services.plan_catalog import PlanCatalog

logger = logging.getLogger(__name__)

REVIEW_ACTIONS = {"approve", "reject"}
EDITABLE_FIELDS = {
    "title",
    "description",
    "discount",
    "discount_type",
    "required_plan_priority",
    "member_limit",
    "valid_from",
    "valid_until",
}
# Columns a PATCH may not clear
REQUIRED_FIELDS = {"title", "discount_type", "valid_from", "valid_until"}


def local_today(now: Optional[datetime] = None) -> date:
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(settings.limits_zone).date()


def effective_deal_status(deal: Deal, today: date) -> str:
    """
    Expiry is evaluated on read: an active deal past valid_until is expired.
    """
    if deal.status == "active" and deal.valid_until < today:
        return "expired"
    return deal.status


def redeemability_problem(deal: Deal, today: date) -> Optional[DealNotRedeemable]:
    status = effective_deal_status(deal, today)
    if status == "expired":
        return DealNotRedeemable("This deal has expired.", deal_status=status)
    if status != "active":
        return DealNotRedeemable(deal_status=status)
    if today < deal.valid_from:
        return DealNotRedeemable("This deal is not yet available.", valid_from=deal.valid_from.isoformat())
    if deal.member_limit is not None and deal.redemptions_count >= deal.member_limit:
        return DealNotRedeemable(
            "This deal has reached its maximum redemption limit.",
            member_limit=deal.member_limit,
        )
    return None


async def _validate_terms(catalog: PlanCatalog, values: dict[str, Any]) -> None:
    valid_from = values.get("valid_from")
    valid_until = values.get("valid_until")
    if valid_from is not None and valid_until is not None and valid_until < valid_from:
        raise InvalidArgument("valid_until must not be before valid_from.")

    member_limit = values.get("member_limit")
    if member_limit is not None and member_limit < 1:
        raise InvalidArgument("member_limit must be at least 1 when set.")

    priority = values.get("required_plan_priority")
    if priority is not None:
        if priority < 0:
            raise InvalidArgument("required_plan_priority must be >= 0.", value=priority)
        if not await catalog.priority_exists(PlanType.USER, priority):
            raise InvalidArgument(
                "required_plan_priority must match an active member plan.",
                value=priority,
            )


async def get_owned_deal(db: AsyncSession, deal_id: uuid.UUID, merchant: Merchant) -> Deal:
    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise NotFound("Deal not found.")
    if deal.merchant_id != merchant.id:
        logger.warning("merchant %s tried to modify deal %s owned by %s", merchant.id, deal.id, deal.merchant_id)
        raise NotOwner("This deal belongs to another merchant.")
    return deal


async def create_deal(
    db: AsyncSession,
    merchant: Merchant,
    values: dict[str, Any],
    now: Optional[datetime] = None,
) -> Deal:
    """
    Post a deal for admin review, enforcing the merchant's monthly posting limit.
    """
    now = now or utcnow()
    if not merchant.is_active:
        raise AccountNotActive("Your merchant account is not active.")

    catalog = PlanCatalog(db)
    await _validate_terms(catalog, values)

    # Serialize posts per merchant, then count inside the same transaction
    await lock_merchant_quota(db, merchant.id)
    remaining = await remaining_deal_posts(db, merchant, catalog, now)
    if not has_quota(remaining):
        limit = await merchant_deal_limit(merchant, catalog)
        await db.rollback()
        raise QuotaExceeded(
            "You've reached this month's deal posting limit. Upgrade your plan to post more deals.",
            limit=quota_to_json(limit),
        )

    fields = {k: v for k, v in values.items() if k in EDITABLE_FIELDS}
    deal = Deal(
        merchant_id=merchant.id,
        status="pending_approval",
        redemptions_count=0,
        created_at=now,
        updated_at=now,
        **fields,
    )
    db.add(deal)
    await db.commit()
    await db.refresh(deal)

    logger.info("deal %s posted by merchant %s (pending approval)", deal.id, merchant.id)
    return deal


async def update_deal(
    db: AsyncSession,
    merchant: Merchant,
    deal_id: uuid.UUID,
    changes: dict[str, Any],
    now: Optional[datetime] = None,
) -> Deal:
    deal = await get_owned_deal(db, deal_id, merchant)

    status = effective_deal_status(deal, local_today(now))
    if status not in EDITABLE_DEAL_STATUSES:
        raise InvalidArgument(f"A deal in status {status!r} can no longer be edited.", deal_status=status)

    changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
    cleared = sorted(k for k in REQUIRED_FIELDS if k in changes and changes[k] is None)
    if cleared:
        raise InvalidArgument(f"{', '.join(cleared)} cannot be empty.", fields=cleared)

    merged = {field: getattr(deal, field) for field in EDITABLE_FIELDS}
    merged.update(changes)

    # Only re-validate a priority the merchant actually touched; admins may
    # have reshuffled plan priorities since the deal was created.
    if "required_plan_priority" not in changes:
        merged.pop("required_plan_priority", None)
    await _validate_terms(PlanCatalog(db), merged)

    for field, value in changes.items():
        setattr(deal, field, value)

    # Editing a rejected deal resubmits it for review
    if deal.status == "rejected":
        deal.status = "pending_approval"
        deal.rejection_reason = None

    await db.commit()
    await db.refresh(deal)
    return deal


async def review_deal(
    db: AsyncSession,
    deal_id: uuid.UUID,
    action: str,
    reason: Optional[str] = None,
) -> Deal:
    """
    Admin transition pending_approval -> active | rejected.
    """
    action = (action or "").strip().lower()
    if action not in REVIEW_ACTIONS:
        raise InvalidArgument(f"Invalid action. Allowed: {', '.join(sorted(REVIEW_ACTIONS))}")

    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise NotFound("Deal not found.")
    if deal.status != "pending_approval":
        raise AlreadyResolved("This deal has already been reviewed.", deal_status=deal.status)

    if action == "approve":
        deal.status = "active"
        deal.rejection_reason = None
    else:
        reason = (reason or "").strip()
        if not reason:
            raise EmptyReason()
        deal.status = "rejected"
        deal.rejection_reason = reason

    await db.commit()
    await db.refresh(deal)

    logger.info("deal %s reviewed: %s", deal.id, deal.status)
    return deal


async def list_merchant_deals(
    db: AsyncSession,
    merchant_id: uuid.UUID,
    status: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[Deal]:
    """
    A merchant's own deals, newest first. `status` filters on the effective
    status, so "expired" also matches active deals past their end date.
    """
    stmt = select(Deal).where(Deal.merchant_id == merchant_id)
    if status:
        today = local_today(now)
        if status == "expired":
            stmt = stmt.where(
                or_(Deal.status == "expired", and_(Deal.status == "active", Deal.valid_until < today))
            )
        elif status == "active":
            stmt = stmt.where(Deal.status == "active", Deal.valid_until >= today)
        else:
            stmt = stmt.where(Deal.status == status)
    stmt = stmt.order_by(Deal.created_at.desc())
    return list((await db.execute(stmt)).scalars().all())
