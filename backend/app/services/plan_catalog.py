"""Read-only plan lookups.

This is the single place that turns a priority or a stored membership type
into a Plan; nothing else keeps its own priority -> name table.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound
from app.core.plan_tiers import canonical_plan_key, normalize_plan_key, plan_types_for
from app.models.plan import Plan


class PlanNotFound(NotFound):
    default_message = "Plan not found."


class PlanCatalog:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _by_exact_key(self, key: str, types: Optional[tuple[str, ...]]) -> Optional[Plan]:
        if not key:
            return None
        stmt = select(Plan).where(Plan.key == key)
        if types is not None:
            stmt = stmt.where(Plan.type.in_(types))
        return (await self.db.execute(stmt.order_by(Plan.type).limit(1))).scalar_one_or_none()

    async def _by_tier(self, canonical: str, types: Optional[tuple[str, ...]]) -> Optional[Plan]:
        # Plan tables are small; fold every stored key the same way as the input.
        stmt = select(Plan).order_by(Plan.is_active.desc(), Plan.sort_order, Plan.key)
        if types is not None:
            stmt = stmt.where(Plan.type.in_(types))
        for plan in (await self.db.execute(stmt)).scalars():
            if canonical_plan_key(plan.key) == canonical:
                return plan
        return None

    async def get_plan_by_key(self, key: Optional[str], plan_type=None) -> Plan:
        """
        Exact key first, then the canonical tier key, then any plan whose own
        key folds to the same tier. With `plan_type` every step stays inside
        that family, so "silver_business" finds the member plan "silver" for
        a member and the merchant plan "silver_business" for a merchant.
        """
        types = plan_types_for(plan_type) if plan_type is not None else None
        normalized = normalize_plan_key(key)
        canonical = canonical_plan_key(key)

        plan = await self._by_exact_key(normalized, types)
        if plan is None and canonical != normalized:
            plan = await self._by_exact_key(canonical, types)
        if plan is None and canonical:
            plan = await self._by_tier(canonical, types)
        if plan is None:
            raise PlanNotFound(f"No plan with key {key!r}.", plan_key=key)
        return plan

    async def find_plan_by_key(self, key: Optional[str], plan_type=None) -> Optional[Plan]:
        try:
            return await self.get_plan_by_key(key, plan_type)
        except PlanNotFound:
            return None

    async def get_plan_by_priority(self, plan_type, priority: int, *, active_only: bool = True) -> Plan:
        """
        Lowest-sorted plan of the given type family holding exactly `priority`.
        """
        stmt = select(Plan).where(
            Plan.type.in_(plan_types_for(plan_type)),
            Plan.priority == priority,
        )
        if active_only:
            stmt = stmt.where(Plan.is_active.is_(True))
        stmt = stmt.order_by(Plan.sort_order, Plan.key).limit(1)

        plan = (await self.db.execute(stmt)).scalar_one_or_none()
        if plan is None:
            raise PlanNotFound(f"No {plan_type} plan with priority {priority}.", priority=priority)
        return plan

    async def list_active_plans(self, plan_type) -> list[Plan]:
        stmt = (
            select(Plan)
            .where(Plan.type.in_(plan_types_for(plan_type)), Plan.is_active.is_(True))
            .order_by(Plan.priority.asc(), Plan.sort_order.asc(), Plan.key.asc())
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def priority_exists(self, plan_type, priority: int) -> bool:
        try:
            await self.get_plan_by_priority(plan_type, priority)
        except PlanNotFound:
            return False
        return True
