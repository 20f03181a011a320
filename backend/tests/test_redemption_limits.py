# tests/test_redemption_limits.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.core.plan_tiers import PlanType
from app.services.access import user_plan_priority
from app.services.limits import (
    UNLIMITED,
    can_post_deal,
    can_redeem,
    effective_limit,
    month_window,
    redemption_summary,
    remaining_deal_posts,
    remaining_redemptions,
)
from app.services.plan_catalog import PlanCatalog
from tests.factories import (
    create_deal,
    create_merchant,
    create_plan,
    create_request,
    create_user,
    seed_plans,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
EARLIER_THIS_MONTH = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
LAST_MONTH = datetime(2026, 2, 27, 18, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "custom, plan_default, expected",
    [
        (None, 5, 5),
        (3, 5, 3),
        (0, 5, 0),
        (-1, 5, UNLIMITED),
        (None, -1, UNLIMITED),
        (7, -1, 7),
        (None, None, 0),
        (-5, 5, 0),
    ],
)
def test_effective_limit(custom, plan_default, expected):
    assert effective_limit(custom, plan_default) == expected


def test_month_window_utc():
    start, end = month_window(NOW, ZoneInfo("UTC"))
    assert start == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 4, 1, tzinfo=timezone.utc)


def test_month_window_december_rolls_into_next_year():
    start, end = month_window(datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc), ZoneInfo("UTC"))
    assert start == datetime(2026, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2027, 1, 1, tzinfo=timezone.utc)


def test_month_window_follows_reference_zone():
    # 23:30 UTC on Mar 31 is already April 1st in Lagos (UTC+1)
    start, end = month_window(datetime(2026, 3, 31, 23, 30, tzinfo=timezone.utc), ZoneInfo("Africa/Lagos"))
    assert start == datetime(2026, 3, 31, 23, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 4, 30, 23, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_plan_default_applies_without_override(db):
    await seed_plans(db)
    user = await create_user(db, membership_type="silver", custom_redemption_limit=None)

    assert await remaining_redemptions(db, user, now=NOW) == 5


@pytest.mark.asyncio
async def test_unlimited_override_ignores_plan_default(db):
    await seed_plans(db)
    user = await create_user(db, membership_type="silver", custom_redemption_limit=-1)

    assert await remaining_redemptions(db, user, now=NOW) is UNLIMITED
    assert await can_redeem(db, user, now=NOW) is True


@pytest.mark.asyncio
async def test_only_this_months_approvals_count(db):
    await seed_plans(db)
    user = await create_user(db, membership_type="silver")
    merchant = await create_merchant(db)
    deal = await create_deal(db, merchant, required_plan_priority=1)

    await create_request(db, deal, user, status="approved", resolved_at=EARLIER_THIS_MONTH)
    await create_request(db, deal, user, status="approved", resolved_at=EARLIER_THIS_MONTH)
    await create_request(db, deal, user, status="approved", resolved_at=LAST_MONTH)
    await create_request(db, deal, user, status="rejected", resolved_at=EARLIER_THIS_MONTH)
    await create_request(db, deal, user, status="pending", requested_at=EARLIER_THIS_MONTH)

    assert await remaining_redemptions(db, user, now=NOW) == 3

    summary = await redemption_summary(db, user, now=NOW)
    assert summary.limit == 5
    assert summary.used == 2
    assert summary.pending == 1
    assert summary.remaining == 3


@pytest.mark.asyncio
async def test_remaining_never_goes_negative_after_limit_lowered(db):
    await seed_plans(db)
    user = await create_user(db, membership_type="silver", custom_redemption_limit=1)
    merchant = await create_merchant(db)
    deal = await create_deal(db, merchant)
    for _ in range(3):
        await create_request(db, deal, user, status="approved", resolved_at=EARLIER_THIS_MONTH)

    assert await remaining_redemptions(db, user, now=NOW) == 0
    assert await can_redeem(db, user, now=NOW) is False


@pytest.mark.asyncio
async def test_missing_plan_enforces_zero_and_warns(db, caplog):
    await seed_plans(db)
    user = await create_user(db, membership_type="platinum")

    caplog.set_level(logging.WARNING, logger="app.services.limits")
    assert await remaining_redemptions(db, user, now=NOW) == 0
    assert any("no matching plan" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_legacy_membership_spelling_resolves_plan(db):
    await seed_plans(db)
    user = await create_user(db, membership_type="Bronze Member")

    assert await remaining_redemptions(db, user, now=NOW) == 2


@pytest.mark.asyncio
async def test_deal_posting_quota_counts_deals_created_this_month(db):
    await seed_plans(db)
    merchant = await create_merchant(db, plan_key="basic_business")
    await create_deal(db, merchant, created_at=EARLIER_THIS_MONTH)
    await create_deal(db, merchant, created_at=LAST_MONTH)

    assert await remaining_deal_posts(db, merchant, now=NOW) == 1

    await create_deal(db, merchant, created_at=EARLIER_THIS_MONTH)
    assert await remaining_deal_posts(db, merchant, now=NOW) == 0
    assert await can_post_deal(db, merchant, now=NOW) is False


@pytest.mark.asyncio
async def test_merchant_override_and_unlimited_plan(db):
    await seed_plans(db)
    premium = await create_merchant(db, plan_key="premium_business")
    capped = await create_merchant(db, plan_key="premium_business", custom_deal_limit=0)

    assert await remaining_deal_posts(db, premium, now=NOW) is UNLIMITED
    assert await can_post_deal(db, capped, now=NOW) is False


@pytest.mark.asyncio
async def test_member_and_merchant_keys_resolve_within_their_own_family(db):
    await seed_plans(db)
    await create_plan(
        db, "silver_business", 5, type="merchant", max_redemptions_per_month=None, deal_posting_limit=10
    )
    member = await create_user(db, membership_type="silver_business")
    merchant = await create_merchant(db, plan_key="silver")
    catalog = PlanCatalog(db)

    # the member folds to the member tier "silver", never the merchant plan
    assert await user_plan_priority(member, catalog) == 2
    assert await remaining_redemptions(db, member, now=NOW) == 5

    # the merchant folds to the merchant tier "silver_business", never the member plan
    assert await remaining_deal_posts(db, merchant, now=NOW) == 10
    assert (await catalog.get_plan_by_key("silver", PlanType.MERCHANT)).key == "silver_business"
    assert (await catalog.get_plan_by_key("silver_business", PlanType.USER)).key == "silver"


@pytest.mark.asyncio
async def test_merchant_key_never_grants_member_access(db):
    await seed_plans(db)
    await create_plan(db, "platinum_business", 9, type="merchant", deal_posting_limit=-1)
    member = await create_user(db, membership_type="platinum_business")

    assert await user_plan_priority(member, PlanCatalog(db)) is None
    assert await remaining_redemptions(db, member, now=NOW) == 0
