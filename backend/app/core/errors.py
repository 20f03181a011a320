"""Business-rule errors for deal access, quotas and the redemption workflow.

Every kind carries a stable error code, an HTTP status and a distinct
user-facing message so the UI can explain *why* a request was refused.
The API renders them as ``{"detail": {"error": CODE, "message": ..., ...}}``.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import status

ACCESS_DENIED = "ACCESS_DENIED"
QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
DEAL_NOT_REDEEMABLE = "DEAL_NOT_REDEEMABLE"
DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
ALREADY_RESOLVED = "ALREADY_RESOLVED"
NOT_OWNER = "NOT_OWNER"
EMPTY_REASON = "EMPTY_REASON"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
NOT_FOUND = "NOT_FOUND"
ACCOUNT_NOT_ACTIVE = "ACCOUNT_NOT_ACTIVE"
PLAN_EXPIRED = "PLAN_EXPIRED"


class DealsError(Exception):
    code: str = "DEALS_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "The request could not be completed."

    def __init__(self, message: Optional[str] = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_detail(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.extra}


class AccessDenied(DealsError):
    code = ACCESS_DENIED
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Your plan doesn't include this deal. Upgrade your plan to access this exclusive offer."


class QuotaExceeded(DealsError):
    code = QUOTA_EXCEEDED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "You've reached this month's redemption limit."


class DealNotRedeemable(DealsError):
    code = DEAL_NOT_REDEEMABLE
    status_code = status.HTTP_409_CONFLICT
    default_message = "This deal is not currently available."


class DuplicateRequest(DealsError):
    code = DUPLICATE_REQUEST
    status_code = status.HTTP_409_CONFLICT
    default_message = (
        "You already have a pending redemption request for this deal. Please wait for merchant approval."
    )


class AlreadyResolved(DealsError):
    code = ALREADY_RESOLVED
    status_code = status.HTTP_409_CONFLICT
    default_message = "This redemption request has already been resolved. Refresh to see its current state."


class NotOwner(DealsError):
    code = NOT_OWNER
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "This redemption request belongs to another merchant."


class EmptyReason(DealsError):
    code = EMPTY_REASON
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "A rejection reason is required."


class InvalidArgument(DealsError):
    code = INVALID_ARGUMENT
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid argument."


class NotFound(DealsError):
    code = NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class AccountNotActive(DealsError):
    code = ACCOUNT_NOT_ACTIVE
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Your profile is not yet accepted by the admin."


class PlanExpired(DealsError):
    code = PLAN_EXPIRED
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Your plan has expired. Please renew your plan to redeem deals."
