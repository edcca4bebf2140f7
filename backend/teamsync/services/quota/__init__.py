"""
Quota service for tier limits on members and teams.
"""
from teamsync.services.quota.quota_service import (
    check_quota,
    evaluate_quota,
    get_quota_info,
    get_usage,
)
from teamsync.services.quota.quota_models import (
    QuotaCheckResult,
    QuotaInfo,
    QuotaLimits,
    QuotaUsage,
    UNLIMITED,
)

__all__ = [
    "check_quota",
    "evaluate_quota",
    "get_quota_info",
    "get_usage",
    "QuotaCheckResult",
    "QuotaInfo",
    "QuotaLimits",
    "QuotaUsage",
    "UNLIMITED",
]
