from __future__ import annotations

import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.merchant import require_merchant
from app.db.session import get_db
from app.models.merchant import Merchant
from app.models.user import User
from app.schemas.redemption import (
    BulkResolve,
    BulkResolveOut,
    RedemptionOut,
    RejectRedemption,
    ResolutionOutcomeOut,
)
from app.services.redemptions import (
    approve_redemption,
    bulk_resolve,
    list_merchant_redemptions,
    list_user_redemptions,
    reject_redemption,
)

router = APIRouter(prefix="/redemptions", tags=["redemptions"])


@router.get("/mine", response_model=List[RedemptionOut])
async def my_redemptions(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await list_user_redemptions(db, user.id)


@router.get("/merchant", response_model=List[RedemptionOut])
async def merchant_redemptions(
    status: Optional[Literal["pending", "approved", "rejected"]] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
):
    return await list_merchant_redemptions(db, merchant.id, status)


@router.post("/bulk", response_model=BulkResolveOut)
async def resolve_many(
    payload: BulkResolve,
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
):
    """
    Approve or reject several requests; each one succeeds or fails on its own.

    The action and, for rejects, a non-blank reason are checked once up
    front: a blank reason fails the whole call with EMPTY_REASON and no
    request is touched.
    """
    merchant_id = merchant.id
    outcomes = await bulk_resolve(db, payload.request_ids, payload.action, merchant_id, payload.reason)
    results = [ResolutionOutcomeOut.model_validate(o) for o in outcomes]
    succeeded = sum(1 for r in results if r.ok)
    return BulkResolveOut(succeeded=succeeded, failed=len(results) - succeeded, results=results)


@router.post("/{request_id}/approve", response_model=RedemptionOut)
async def approve(
    request_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
):
    return await approve_redemption(db, request_id, merchant.id)


@router.post("/{request_id}/reject", response_model=RedemptionOut)
async def reject(
    request_id: uuid.UUID,
    payload: RejectRedemption,
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(require_merchant),
):
    return await reject_redemption(db, request_id, merchant.id, payload.reason)
