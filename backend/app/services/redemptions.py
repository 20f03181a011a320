"""Redemption request workflow: pending -> approved | rejected.

Submitting never touches a counter. Approval is the only transition that
consumes quota, and it does so inside one transaction that first locks the
member's row, so the quota check and the increment cannot interleave with
another approval for the same member.
"""

from __future__ import annotations

import logging
import secrets
import string
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    AlreadyResolved,
    DealNotRedeemable,
    DealsError,
    DuplicateRequest,
    EmptyReason,
    InvalidArgument,
    NotFound,
    NotOwner,
    QuotaExceeded,
)
from app.models.deal import Deal
from app.models.redemption_request import RedemptionRequest
from app.models.user import User
from app.services.access import check_account, ensure_deal_access
from app.services.deals import local_today, redeemability_problem
from app.services.limits import (
    UNLIMITED,
    count_approved_this_month,
    lock_user_quota,
    quota_to_json,
    user_redemption_limit,
    utcnow,
)
from app.services.plan_catalog import PlanCatalog

logger = logging.getLogger(__name__)

RESOLVE_ACTIONS = {"approve", "reject"}

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_BASE36 = string.digits + string.ascii_uppercase


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
        if n == 0:
            return out


def generate_redemption_code(now: Optional[datetime] = None) -> str:
    """
    "RDM" + base-36 millisecond timestamp + 5 random characters.
    """
    now = now or utcnow()
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(5))
    return f"RDM{_base36(int(now.timestamp() * 1000))}{suffix}"


async def _find_pending(db: AsyncSession, user_id: uuid.UUID, deal_id: uuid.UUID) -> Optional[RedemptionRequest]:
    stmt = select(RedemptionRequest).where(
        RedemptionRequest.user_id == user_id,
        RedemptionRequest.deal_id == deal_id,
        RedemptionRequest.status == "pending",
    )
    return (await db.execute(stmt)).scalars().first()


async def _get_request_for_merchant(
    db: AsyncSession,
    request_id: uuid.UUID,
    merchant_id: uuid.UUID,
) -> RedemptionRequest:
    req = await db.get(RedemptionRequest, request_id)
    if req is None:
        raise NotFound("Redemption request not found.")
    if req.merchant_id != merchant_id:
        logger.warning(
            "merchant %s tried to resolve redemption %s owned by merchant %s",
            merchant_id,
            req.id,
            req.merchant_id,
        )
        raise NotOwner()
    if req.status != "pending":
        raise AlreadyResolved(request_status=req.status)
    return req


# =========================================================
# SUBMIT (member)
# =========================================================
async def submit_redemption(
    db: AsyncSession,
    user_id: uuid.UUID,
    deal_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> RedemptionRequest:
    now = now or utcnow()
    today = local_today(now)

    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise NotFound("Deal not found.")

    catalog = PlanCatalog(db)

    check_account(user, today)
    await ensure_deal_access(user, deal, catalog)

    problem = redeemability_problem(deal, today)
    if problem is not None:
        raise problem

    existing = await _find_pending(db, user.id, deal.id)
    if existing is not None:
        raise DuplicateRequest(request_id=str(existing.id))

    limit = await user_redemption_limit(user, catalog)
    if limit is not UNLIMITED:
        used = await count_approved_this_month(db, user.id, now)
        if used >= limit:
            raise QuotaExceeded(
                f"You've reached this month's redemption limit of {limit}. Upgrade your plan for more redemptions.",
                limit=limit,
                used=used,
            )

    req = RedemptionRequest(
        deal_id=deal.id,
        user_id=user.id,
        merchant_id=deal.merchant_id,
        status="pending",
        redemption_code=generate_redemption_code(now),
        requested_at=now,
    )
    db.add(req)
    try:
        await db.commit()
    except IntegrityError:
        # Lost the race against a concurrent submit for the same (user, deal)
        await db.rollback()
        raise DuplicateRequest()
    await db.refresh(req)

    logger.info("redemption %s submitted: user=%s deal=%s", req.id, user.id, deal.id)
    return req


# =========================================================
# APPROVE / REJECT (merchant)
# =========================================================
async def approve_redemption(
    db: AsyncSession,
    request_id: uuid.UUID,
    merchant_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> RedemptionRequest:
    now = now or utcnow()

    req = await _get_request_for_merchant(db, request_id, merchant_id)
    user = await db.get(User, req.user_id)
    if user is None:
        raise NotFound("User not found.")

    try:
        # 1) Serialize with other approvals for this member
        await lock_user_quota(db, req.user_id)

        # 2) Re-read the override and re-check quota under the lock
        await db.refresh(user)
        limit = await user_redemption_limit(user, PlanCatalog(db))
        if limit is not UNLIMITED:
            used = await count_approved_this_month(db, req.user_id, now)
            if used >= limit:
                raise QuotaExceeded(
                    "This member has reached this month's redemption limit.",
                    limit=quota_to_json(limit),
                    used=used,
                )

        # 3) pending -> approved, only if still pending
        claimed = await db.execute(
            update(RedemptionRequest)
            .where(RedemptionRequest.id == req.id, RedemptionRequest.status == "pending")
            .values(status="approved", resolved_at=now, rejection_reason=None)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise AlreadyResolved()

        # 4) Count the redemption against the deal, never past member_limit
        bumped = await db.execute(
            update(Deal)
            .where(
                Deal.id == req.deal_id,
                or_(Deal.member_limit.is_(None), Deal.redemptions_count < Deal.member_limit),
            )
            .values(redemptions_count=Deal.redemptions_count + 1)
            .execution_options(synchronize_session=False)
        )
        if bumped.rowcount != 1:
            raise DealNotRedeemable("This deal has reached its maximum redemption limit.")

        await db.commit()
    except DealsError:
        await db.rollback()
        raise

    await db.refresh(req)
    logger.info("redemption %s approved by merchant %s", req.id, merchant_id)
    return req


async def reject_redemption(
    db: AsyncSession,
    request_id: uuid.UUID,
    merchant_id: uuid.UUID,
    reason: Optional[str],
    now: Optional[datetime] = None,
) -> RedemptionRequest:
    now = now or utcnow()

    req = await _get_request_for_merchant(db, request_id, merchant_id)
    reason = (reason or "").strip()
    if not reason:
        raise EmptyReason()

    result = await db.execute(
        update(RedemptionRequest)
        .where(RedemptionRequest.id == req.id, RedemptionRequest.status == "pending")
        .values(status="rejected", resolved_at=now, rejection_reason=reason)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise AlreadyResolved()

    await db.commit()
    await db.refresh(req)

    logger.info("redemption %s rejected by merchant %s", req.id, merchant_id)
    return req


@dataclass(frozen=True)
class ResolutionOutcome:
    request_id: uuid.UUID
    ok: bool
    status: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None


async def bulk_resolve(
    db: AsyncSession,
    request_ids: Sequence[uuid.UUID],
    action: str,
    merchant_id: uuid.UUID,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[ResolutionOutcome]:
    """
    Best effort: each request is resolved in its own transaction and a failure
    never undoes the ones before it. Outcomes follow the input order.
    """
    action = (action or "").strip().lower()
    if action not in RESOLVE_ACTIONS:
        raise InvalidArgument(f"Invalid action. Allowed: {', '.join(sorted(RESOLVE_ACTIONS))}")
    if action == "reject" and not (reason or "").strip():
        raise EmptyReason()

    outcomes: list[ResolutionOutcome] = []
    for request_id in request_ids:
        try:
            if action == "approve":
                req = await approve_redemption(db, request_id, merchant_id, now)
            else:
                req = await reject_redemption(db, request_id, merchant_id, reason, now)
        except DealsError as exc:
            outcomes.append(
                ResolutionOutcome(request_id=request_id, ok=False, error=exc.code, message=exc.message)
            )
        else:
            outcomes.append(ResolutionOutcome(request_id=request_id, ok=True, status=req.status))

    ok = sum(1 for o in outcomes if o.ok)
    logger.info("bulk %s by merchant %s: %d/%d succeeded", action, merchant_id, ok, len(outcomes))
    return outcomes


# =========================================================
# LISTS
# =========================================================
async def list_user_redemptions(db: AsyncSession, user_id: uuid.UUID) -> list[RedemptionRequest]:
    stmt = (
        select(RedemptionRequest)
        .where(RedemptionRequest.user_id == user_id)
        .order_by(RedemptionRequest.requested_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def list_merchant_redemptions(
    db: AsyncSession,
    merchant_id: uuid.UUID,
    status: Optional[str] = None,
) -> list[RedemptionRequest]:
    stmt = select(RedemptionRequest).where(RedemptionRequest.merchant_id == merchant_id)
    if status:
        stmt = stmt.where(RedemptionRequest.status == status)
    stmt = stmt.order_by(RedemptionRequest.requested_at.desc())
    return list((await db.execute(stmt)).scalars().all())
