from __future__ import annotations

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.db.session import get_db
from app.models.merchant import Merchant
from app.models.user import User


async def get_merchant_for_user(db: AsyncSession, user: User) -> Merchant | None:
    stmt = select(Merchant).where(Merchant.owner_user_id == user.id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def require_merchant(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Merchant:
    merchant = await get_merchant_for_user(db, user)
    if merchant is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a merchant")
    if merchant.is_active is not True:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Merchant account is inactive")
    return merchant
