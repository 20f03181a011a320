from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.plan import PlanOut
from app.services.plan_catalog import PlanCatalog

router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("", response_model=List[PlanOut])
async def list_plans(
    type: str = Query(default="user", description="user | merchant | membership"),
    db: AsyncSession = Depends(get_db),
):
    """
    Active plans of one family, lowest priority first (public).
    """
    try:
        return await PlanCatalog(db).list_active_plans(type)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.get("/{key}", response_model=PlanOut)
async def get_plan(key: str, db: AsyncSession = Depends(get_db)):
    return await PlanCatalog(db).get_plan_by_key(key)
