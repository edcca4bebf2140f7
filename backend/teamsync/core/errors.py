"""
Error taxonomy for membership, invite and quota operations.

Every business-rule failure is raised as a subclass of MembershipError. The
API layer turns them into JSON responses with a display-safe reason; the
HTTP status lives on the class so services never import FastAPI.
"""
from typing import Any, Optional
from fastapi import status


class MembershipError(Exception):
    """Base class for errors that are reported to the caller."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, reason: str, **extra: Any):
        super().__init__(reason)
        self.reason = reason
        self.extra = extra

    def to_dict(self) -> dict:
        payload = {"success": False, "error": self.reason, "code": self.code}
        payload.update(self.extra)
        return payload


class Unauthorized(MembershipError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class Forbidden(MembershipError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFound(MembershipError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Conflict(MembershipError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class NoOpError(Conflict):
    """The requested change is already in effect (e.g. move to the current team)."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "no_op"


class Gone(MembershipError):
    """The invite exists but has already been used."""
    status_code = status.HTTP_410_GONE
    code = "gone"


class QuotaExceeded(MembershipError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "quota_exceeded"

    def __init__(self, reason: str, quota: Optional[dict] = None, **extra: Any):
        if quota is not None:
            extra["quotaInfo"] = {
                "currentUsage": quota.get("currentUsage"),
                "limits": quota.get("limits"),
            }
        super().__init__(reason, **extra)


class ValidationError(MembershipError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class Unexpected(MembershipError):
    """Store or identity provider failure not covered by business rules."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "unexpected"
