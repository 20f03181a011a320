from __future__ import annotations

import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user, require_admin
from app.api.deps.merchant import require_merchant
from app.db.session import get_db
from app.models.deal import Deal
from app.models.merchant import Merchant
from app.models.user import User
from app.schemas.deal import DealAccessOut, DealCreate, DealOut, DealReview, DealUpdate
from app.schemas.redemption import RedemptionOut
from app.services.access import evaluate_deal_access, get_visible_deal, list_visible_deals
from app.services.deals import (
    create_deal,
    effective_deal_status,
    list_merchant_deals,
    local_today,
    review_deal,
    update_deal,
)
from app.services.redemptions import submit_redemption

router = APIRouter(prefix="/deals", tags=["deals"])


def _deal_out(deal: Deal, today=None) -> DealOut:
    # Stored status is never rewritten on expiry; report what members see
    out = DealOut.model_validate(deal)
    out.status = effective_deal_status(deal, today or local_today())
    return out


# =========================================================
# MEMBER
# =========================================================
@router.get("", response_model=List[DealOut])
async def browse_deals(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Active deals the current member's plan can see.
    """
    today = local_today()
    return [_deal_out(d, today) for d in await list_visible_deals(db, user)]


@router.get("/{deal_id}/access", response_model=DealAccessOut)
async def get_deal_access(
    deal_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Can the current member redeem this deal, and if not, why.
    """
    decision = await evaluate_deal_access(db, user.id, deal_id)
    return DealAccessOut(
        deal_id=deal_id,
        allowed=decision.allowed,
        required_tier=decision.required_tier,
        reason=decision.reason,
        error=decision.error,
    )


@router.post("/{deal_id}/redemptions", response_model=RedemptionOut, status_code=status.HTTP_201_CREATED)
async def request_redemption(
    deal_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Submit a redemption request; the merchant approves or rejects it later.
    """
    return await submit_redemption(db, user.id, deal_id)


# =========================================================
# MERCHANT
# =========================================================
@router.get("/mine", response_model=List[DealOut])
async def my_deals(
    status: Optional[Literal["pending_approval", "active", "rejected", "expired", "inactive"]] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
):
    today = local_today()
    return [_deal_out(d, today) for d in await list_merchant_deals(db, merchant.id, status)]


@router.post("", response_model=DealOut, status_code=status.HTTP_201_CREATED)
async def post_deal(
    payload: DealCreate,
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
):
    return _deal_out(await create_deal(db, merchant, payload.model_dump()))


@router.patch("/{deal_id}", response_model=DealOut)
async def edit_deal(
    deal_id: uuid.UUID,
    payload: DealUpdate,
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
):
    return _deal_out(await update_deal(db, merchant, deal_id, payload.model_dump(exclude_unset=True)))


# =========================================================
# ADMIN
# =========================================================
@router.post("/{deal_id}/review", response_model=DealOut)
async def review(
    deal_id: uuid.UUID,
    payload: DealReview,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return _deal_out(await review_deal(db, deal_id, payload.action, payload.reason))


# =========================================================
# DETAIL (after /mine so the literal path wins)
# =========================================================
@router.get("/{deal_id}", response_model=DealOut)
async def get_deal(
    deal_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    One deal, if the member's plan can see it and it is still running.
    """
    return _deal_out(await get_visible_deal(db, user, deal_id))
