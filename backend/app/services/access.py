from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    AccessDenied,
    AccountNotActive,
    DealNotRedeemable,
    DealsError,
    InvalidArgument,
    NotFound,
    PlanExpired,
)
from app.core.plan_tiers import PlanType
from app.models.deal import Deal
from app.models.user import User
from app.services.deals import effective_deal_status, local_today, redeemability_problem
from app.services.plan_catalog import PlanCatalog, PlanNotFound

OPEN_ACCESS_LABEL = "All members"


def can_access(user_plan_priority: Optional[int], deal_required_priority: Optional[int]) -> bool:
    """
    A plan of priority N sees every deal requiring N or less.

    Deals without a required priority are open to every member, including
    users whose plan could not be resolved (priority None).
    """
    if deal_required_priority is not None and deal_required_priority < 0:
        raise InvalidArgument("deal_required_priority must be >= 0", value=deal_required_priority)
    if user_plan_priority is not None and user_plan_priority < 0:
        raise InvalidArgument("user_plan_priority must be >= 0", value=user_plan_priority)

    if deal_required_priority is None:
        return True
    if user_plan_priority is None:
        return False
    return user_plan_priority >= deal_required_priority


async def describe_required_tier(deal_required_priority: Optional[int], catalog: PlanCatalog) -> str:
    """
    Display label only; access decisions never depend on it.
    """
    if deal_required_priority is None:
        return OPEN_ACCESS_LABEL
    try:
        plan = await catalog.get_plan_by_priority(PlanType.USER, deal_required_priority)
    except PlanNotFound:
        return f"Priority {deal_required_priority}"
    return plan.name


async def user_plan_priority(user: User, catalog: PlanCatalog) -> Optional[int]:
    plan = await catalog.find_plan_by_key(user.membership_type, PlanType.USER)
    return plan.priority if plan is not None else None


def check_account(user: User, today: date) -> None:
    """
    Account-level gates that apply before any deal rule.
    """
    if not user.is_active or user.status == "suspended":
        raise AccountNotActive("Your profile is temporarily suspended by admin.", status=user.status)
    if user.status != "approved":
        raise AccountNotActive(status=user.status)
    if user.plan_expired(today):
        raise PlanExpired(plan_valid_until=user.plan_valid_until.isoformat())


async def ensure_deal_access(user: User, deal: Deal, catalog: PlanCatalog) -> Optional[int]:
    """
    Raises AccessDenied when the user's plan ranks below the deal's tier.
    Returns the user's plan priority.
    """
    priority = await user_plan_priority(user, catalog)
    if not can_access(priority, deal.required_plan_priority):
        required_tier = await describe_required_tier(deal.required_plan_priority, catalog)
        raise AccessDenied(
            f"Your plan doesn't include this deal. It requires the {required_tier} plan or higher.",
            required_tier=required_tier,
            required_priority=deal.required_plan_priority,
            user_plan=user.membership_type,
            upgrade_required=True,
        )
    return priority


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    required_tier: str
    reason: Optional[str] = None
    error: Optional[str] = None


async def evaluate_deal_access(
    db: AsyncSession,
    user_id: uuid.UUID,
    deal_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> AccessDecision:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise NotFound("Deal not found.")

    catalog = PlanCatalog(db)
    today = local_today(now)
    required_tier = await describe_required_tier(deal.required_plan_priority, catalog)

    try:
        check_account(user, today)
        await ensure_deal_access(user, deal, catalog)
        problem = redeemability_problem(deal, today)
        if problem is not None:
            raise problem
    except DealsError as exc:
        return AccessDecision(allowed=False, required_tier=required_tier, reason=exc.message, error=exc.code)

    return AccessDecision(allowed=True, required_tier=required_tier)


# =========================================================
# BROWSING
# =========================================================
async def list_visible_deals(
    db: AsyncSession,
    user: User,
    now: Optional[datetime] = None,
) -> list[Deal]:
    """
    Active, unexpired deals the member's plan can see, newest first.
    Same rule as can_access: open deals plus every tier at or below the plan.
    """
    today = local_today(now)
    check_account(user, today)

    priority = await user_plan_priority(user, PlanCatalog(db))
    gate = Deal.required_plan_priority.is_(None)
    if priority is not None:
        gate = or_(gate, Deal.required_plan_priority <= priority)

    stmt = (
        select(Deal)
        .where(Deal.status == "active", Deal.valid_until >= today, gate)
        .order_by(Deal.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_visible_deal(
    db: AsyncSession,
    user: User,
    deal_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Deal:
    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise NotFound("Deal not found.")

    today = local_today(now)
    check_account(user, today)
    await ensure_deal_access(user, deal, PlanCatalog(db))

    status = effective_deal_status(deal, today)
    if status == "expired":
        raise DealNotRedeemable("This deal has expired.", deal_status=status)
    if status != "active":
        raise DealNotRedeemable(deal_status=status)
    return deal
