# tests/factories.py
from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from app.core.security import create_access_token
from app.models.deal import Deal
from app.models.merchant import Merchant
from app.models.plan import Plan
from app.models.redemption_request import RedemptionRequest
from app.models.user import User
from app.services.redemptions import generate_redemption_code


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return utcnow().date()


async def create_plan(
    db,
    key: str,
    priority: int,
    type: str = "user",
    max_redemptions_per_month: Optional[int] = 5,
    deal_posting_limit: Optional[int] = None,
    name: Optional[str] = None,
    is_active: bool = True,
) -> Plan:
    plan = Plan(
        key=key,
        name=name or key.replace("_", " ").title(),
        type=type,
        priority=priority,
        is_active=is_active,
        max_redemptions_per_month=max_redemptions_per_month,
        deal_posting_limit=deal_posting_limit,
        features=[],
    )
    db.add(plan)
    await db.flush()
    return plan


async def seed_plans(db) -> dict[str, Plan]:
    """
    Member tiers bronze(1) < silver(2) < gold(3) and two merchant plans.
    """
    plans = {
        "bronze": await create_plan(db, "bronze", 1, max_redemptions_per_month=2),
        "silver": await create_plan(db, "silver", 2, max_redemptions_per_month=5),
        "gold": await create_plan(db, "gold", 3, max_redemptions_per_month=-1),
        "basic_business": await create_plan(
            db, "basic_business", 1, type="merchant", max_redemptions_per_month=None, deal_posting_limit=2
        ),
        "premium_business": await create_plan(
            db, "premium_business", 2, type="merchant", max_redemptions_per_month=None, deal_posting_limit=-1
        ),
    }
    return plans


async def create_user(
    db,
    email: Optional[str] = None,
    membership_type: Optional[str] = "silver",
    status: str = "approved",
    custom_redemption_limit: Optional[int] = None,
    is_admin: bool = False,
    plan_valid_until: Optional[date] = None,
) -> User:
    user = User(
        email=(email or f"member_{uuid.uuid4().hex[:8]}@example.com").lower().strip(),
        full_name="Test Member",
        membership_type=membership_type,
        status=status,
        custom_redemption_limit=custom_redemption_limit,
        is_admin=is_admin,
        is_active=True,
        plan_valid_until=plan_valid_until,
    )
    db.add(user)
    await db.flush()
    return user


async def create_merchant(
    db,
    owner: Optional[User] = None,
    plan_key: Optional[str] = "basic_business",
    custom_deal_limit: Optional[int] = None,
) -> Merchant:
    if owner is None:
        owner = await create_user(db, email=f"shop_{uuid.uuid4().hex[:8]}@example.com", membership_type=None)
    merchant = Merchant(
        owner_user_id=owner.id,
        business_name=f"Test Shop {uuid.uuid4().hex[:6]}",
        plan_key=plan_key,
        custom_deal_limit=custom_deal_limit,
        is_active=True,
    )
    db.add(merchant)
    await db.flush()
    return merchant


async def create_deal(
    db,
    merchant: Merchant,
    required_plan_priority: Optional[int] = 1,
    member_limit: Optional[int] = None,
    status: str = "active",
    valid_from: Optional[date] = None,
    valid_until: Optional[date] = None,
    redemptions_count: int = 0,
    created_at: Optional[datetime] = None,
) -> Deal:
    deal = Deal(
        merchant_id=merchant.id,
        title="10% off dinner",
        description="Weekday dinners only",
        required_plan_priority=required_plan_priority,
        member_limit=member_limit,
        status=status,
        valid_from=valid_from or today() - timedelta(days=1),
        valid_until=valid_until or today() + timedelta(days=30),
        redemptions_count=redemptions_count,
    )
    if created_at is not None:
        deal.created_at = created_at
    db.add(deal)
    await db.flush()
    return deal


async def create_request(
    db,
    deal: Deal,
    user: User,
    status: str = "pending",
    requested_at: Optional[datetime] = None,
    resolved_at: Optional[datetime] = None,
) -> RedemptionRequest:
    req = RedemptionRequest(
        deal_id=deal.id,
        user_id=user.id,
        merchant_id=deal.merchant_id,
        status=status,
        redemption_code=generate_redemption_code(),
        requested_at=requested_at or utcnow(),
        resolved_at=resolved_at,
    )
    db.add(req)
    await db.flush()
    return req


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
