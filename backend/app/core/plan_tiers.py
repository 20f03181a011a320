# ============================
# FILE: app/core/plan_tiers.py
# Canonical plan types and plan-key normalization
# ============================
from __future__ import annotations

import enum
import re


class PlanType(str, enum.Enum):
    USER = "user"
    MERCHANT = "merchant"
    MEMBERSHIP = "membership"


# "user" and "membership" plans are the same family of member tiers.
MEMBER_PLAN_TYPES: tuple[str, ...] = (PlanType.USER.value, PlanType.MEMBERSHIP.value)

# Legacy spellings seen in stored membership types:
# "silver_merchant", "silver_business", "Silver Member", "silver-plan"
_ROLE_SUFFIXES = ("merchant", "business", "member", "membership", "plan", "user")
_SEPARATORS_RE = re.compile(r"[\s\-]+")


def plan_type_to_str(value) -> str:
    """
    Supports PlanType members or plain strings.
    """
    v = getattr(value, "value", value)
    return str(v or "").strip().lower()


def plan_types_for(value) -> tuple[str, ...]:
    """
    Stored plan types that answer a lookup for `value`.
    """
    t = plan_type_to_str(value)
    if t in MEMBER_PLAN_TYPES:
        return MEMBER_PLAN_TYPES
    try:
        return (PlanType(t).value,)
    except ValueError:
        raise ValueError(f"Unknown plan type {value!r}. Allowed: {', '.join(p.value for p in PlanType)}")


def normalize_plan_key(value: str | None) -> str:
    return _SEPARATORS_RE.sub("_", (value or "").strip().lower())


def canonical_plan_key(value: str | None) -> str:
    """
    Fold a stored membership type into its tier key, once, at the data boundary.

    "silver_merchant" -> "silver", "Silver Business" -> "silver", "gold" -> "gold".
    A bare suffix ("merchant") is kept as-is.
    """
    key = normalize_plan_key(value)
    parts = key.split("_")
    while len(parts) > 1 and parts[-1] in _ROLE_SUFFIXES:
        parts.pop()
    return "_".join(parts)
