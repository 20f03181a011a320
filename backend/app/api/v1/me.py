from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.merchant import get_merchant_for_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.redemption import DealPostLimitsOut, MyLimitsOut, RedemptionLimitsOut
from app.services.access import user_plan_priority
from app.services.limits import (
    merchant_deal_limit,
    quota_to_json,
    redemption_summary,
    remaining_deal_posts,
)
from app.services.plan_catalog import PlanCatalog

router = APIRouter(prefix="/me", tags=["me"])


@router.get("/limits", response_model=MyLimitsOut)
async def my_limits(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MyLimitsOut:
    """
    This month's redemption quota, plus the deal-posting quota for merchants.
    """
    catalog = PlanCatalog(db)
    summary = await redemption_summary(db, user, catalog)

    deal_posts = None
    merchant = await get_merchant_for_user(db, user)
    if merchant is not None:
        deal_posts = DealPostLimitsOut(
            limit=quota_to_json(await merchant_deal_limit(merchant, catalog)),
            remaining=quota_to_json(await remaining_deal_posts(db, merchant, catalog)),
        )

    return MyLimitsOut(
        email=user.email,
        membership_type=user.membership_type,
        plan_priority=await user_plan_priority(user, catalog),
        redemptions=RedemptionLimitsOut(
            limit=quota_to_json(summary.limit),
            used_this_month=summary.used,
            pending_this_month=summary.pending,
            remaining=quota_to_json(summary.remaining),
        ),
        deal_posts=deal_posts,
    )
