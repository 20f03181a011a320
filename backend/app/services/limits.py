"""Monthly redemption and deal-posting quotas.

Counts are always recomputed from timestamps inside the current calendar
month (approval time for redemptions, creation time for deals); there is no
stored per-period counter that would need a reset job.

Check-then-act sequences must first take the row lock returned by
``lock_user_quota`` / ``lock_merchant_quota`` in the same transaction, so two
concurrent approvals (or posts) for one owner cannot both pass the check.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.plan_tiers import PlanType
from app.models.deal import Deal
from app.models.merchant import Merchant
from app.models.redemption_request import RedemptionRequest
from app.models.user import User
from app.services.plan_catalog import PlanCatalog

logger = logging.getLogger(__name__)

UNLIMITED_MARKER = -1


class Unlimited(enum.Enum):
    UNLIMITED = "unlimited"

    def __repr__(self) -> str:
        return "UNLIMITED"


UNLIMITED = Unlimited.UNLIMITED

Quota = Union[int, Unlimited]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def effective_limit(custom: Optional[int], plan_default: Optional[int]) -> Quota:
    """
    Admin override wins over the plan default; -1 means unlimited.
    A missing value or any other negative number enforces zero.
    """
    raw = custom if custom is not None else plan_default
    if raw is None:
        return 0
    if raw == UNLIMITED_MARKER:
        return UNLIMITED
    return max(0, int(raw))


def remaining_from(limit: Quota, used: int) -> Quota:
    if limit is UNLIMITED:
        return UNLIMITED
    return max(0, limit - used)


def has_quota(remaining: Quota) -> bool:
    return remaining is UNLIMITED or remaining > 0


def quota_to_json(value: Quota) -> Union[int, str]:
    return value.value if value is UNLIMITED else value


def month_window(now: Optional[datetime] = None, zone: Optional[ZoneInfo] = None) -> tuple[datetime, datetime]:
    """
    [start, end) of the calendar month containing `now`, measured in the
    reference zone and returned in UTC. Naive datetimes are taken as UTC.
    """
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    zone = zone or settings.limits_zone

    local = now.astimezone(zone)
    start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


# ---------------------------------------------------------
# Counters
# ---------------------------------------------------------
async def count_approved_this_month(db: AsyncSession, user_id: uuid.UUID, now: Optional[datetime] = None) -> int:
    start, end = month_window(now)
    stmt = select(func.count(RedemptionRequest.id)).where(
        RedemptionRequest.user_id == user_id,
        RedemptionRequest.status == "approved",
        RedemptionRequest.resolved_at >= start,
        RedemptionRequest.resolved_at < end,
    )
    return int((await db.execute(stmt)).scalar() or 0)


async def count_pending_this_month(db: AsyncSession, user_id: uuid.UUID, now: Optional[datetime] = None) -> int:
    start, end = month_window(now)
    stmt = select(func.count(RedemptionRequest.id)).where(
        RedemptionRequest.user_id == user_id,
        RedemptionRequest.status == "pending",
        RedemptionRequest.requested_at >= start,
        RedemptionRequest.requested_at < end,
    )
    return int((await db.execute(stmt)).scalar() or 0)


async def count_deals_posted_this_month(
    db: AsyncSession, merchant_id: uuid.UUID, now: Optional[datetime] = None
) -> int:
    start, end = month_window(now)
    stmt = select(func.count(Deal.id)).where(
        Deal.merchant_id == merchant_id,
        Deal.created_at >= start,
        Deal.created_at < end,
    )
    return int((await db.execute(stmt)).scalar() or 0)


async def lock_user_quota(db: AsyncSession, user_id: uuid.UUID) -> None:
    """
    Write-touch the user row so the quota check that follows holds the row
    lock until commit/rollback.
    """
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(redemption_serial=User.redemption_serial + 1)
        .execution_options(synchronize_session=False)
    )


async def lock_merchant_quota(db: AsyncSession, merchant_id: uuid.UUID) -> None:
    await db.execute(
        update(Merchant)
        .where(Merchant.id == merchant_id)
        .values(post_serial=Merchant.post_serial + 1)
        .execution_options(synchronize_session=False)
    )


# ---------------------------------------------------------
# Redemptions (members)
# ---------------------------------------------------------
async def user_redemption_limit(user: User, catalog: PlanCatalog) -> Quota:
    if user.custom_redemption_limit is not None:
        return effective_limit(user.custom_redemption_limit, None)

    plan = await catalog.find_plan_by_key(user.membership_type, PlanType.USER)
    if plan is None:
        logger.warning(
            "data integrity: user %s has membership_type=%r with no matching plan; enforcing a limit of 0",
            user.id,
            user.membership_type,
        )
        return 0
    return effective_limit(None, plan.max_redemptions_per_month)


async def remaining_redemptions(
    db: AsyncSession,
    user: User,
    catalog: Optional[PlanCatalog] = None,
    now: Optional[datetime] = None,
) -> Quota:
    limit = await user_redemption_limit(user, catalog or PlanCatalog(db))
    if limit is UNLIMITED:
        return UNLIMITED
    used = await count_approved_this_month(db, user.id, now)
    return remaining_from(limit, used)


async def can_redeem(
    db: AsyncSession,
    user: User,
    catalog: Optional[PlanCatalog] = None,
    now: Optional[datetime] = None,
) -> bool:
    return has_quota(await remaining_redemptions(db, user, catalog, now))


@dataclass(frozen=True)
class RedemptionSummary:
    limit: Quota
    used: int
    pending: int
    remaining: Quota


async def redemption_summary(
    db: AsyncSession,
    user: User,
    catalog: Optional[PlanCatalog] = None,
    now: Optional[datetime] = None,
) -> RedemptionSummary:
    limit = await user_redemption_limit(user, catalog or PlanCatalog(db))
    used = await count_approved_this_month(db, user.id, now)
    pending = await count_pending_this_month(db, user.id, now)
    return RedemptionSummary(limit=limit, used=used, pending=pending, remaining=remaining_from(limit, used))


# ---------------------------------------------------------
# Deal posts (merchants)
# ---------------------------------------------------------
async def merchant_deal_limit(merchant: Merchant, catalog: PlanCatalog) -> Quota:
    if merchant.custom_deal_limit is not None:
        return effective_limit(merchant.custom_deal_limit, None)

    plan = await catalog.find_plan_by_key(merchant.plan_key, PlanType.MERCHANT)
    if plan is None:
        logger.warning(
            "data integrity: merchant %s has plan_key=%r with no matching plan; enforcing a limit of 0",
            merchant.id,
            merchant.plan_key,
        )
        return 0
    return effective_limit(None, plan.deal_posting_limit)


async def remaining_deal_posts(
    db: AsyncSession,
    merchant: Merchant,
    catalog: Optional[PlanCatalog] = None,
    now: Optional[datetime] = None,
) -> Quota:
    limit = await merchant_deal_limit(merchant, catalog or PlanCatalog(db))
    if limit is UNLIMITED:
        return UNLIMITED
    used = await count_deals_posted_this_month(db, merchant.id, now)
    return remaining_from(limit, used)


async def can_post_deal(
    db: AsyncSession,
    merchant: Merchant,
    catalog: Optional[PlanCatalog] = None,
    now: Optional[datetime] = None,
) -> bool:
    return has_quota(await remaining_deal_posts(db, merchant, catalog, now))
