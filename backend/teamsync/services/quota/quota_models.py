"""
Quota model classes.
"""
from dataclasses import dataclass, field
from typing import Optional

UNLIMITED = -1


def is_unlimited(limit: Optional[int]) -> bool:
    """Tier limits of -1 or NULL mean no cap."""
    return limit is None or limit < 0


@dataclass(frozen=True)
class QuotaUsage:
    """Current counts for an organization."""
    members: int
    teams: int


@dataclass(frozen=True)
class QuotaLimits:
    """Tier limits. -1 means unlimited."""
    max_members: int
    max_teams: int

    @classmethod
    def from_tier(cls, tier) -> "QuotaLimits":
        """Create QuotaLimits from a Tier row (NULL limits become -1)."""
        return cls(
            max_members=UNLIMITED if is_unlimited(tier.max_members) else tier.max_members,
            max_teams=UNLIMITED if is_unlimited(tier.max_teams) else tier.max_teams,
        )


@dataclass(frozen=True)
class QuotaCheckResult:
    """Outcome of a quota check for a requested growth."""
    allowed: bool
    kind: str  # 'member' or 'team'
    requested: int
    current_usage: QuotaUsage
    limits: QuotaLimits
    reason: Optional[str] = None

    @property
    def remaining(self) -> Optional[int]:
        """Free slots for the checked kind, or None when unlimited."""
        if self.kind == "member":
            limit, used = self.limits.max_members, self.current_usage.members
        else:
            limit, used = self.limits.max_teams, self.current_usage.teams
        if is_unlimited(limit):
            return None
        return max(0, limit - used)

    def to_dict(self) -> dict:
        """Response shape shared with the quota endpoint and error payloads."""
        payload = {
            "allowed": self.allowed,
            "currentUsage": {
                "members": self.current_usage.members,
                "teams": self.current_usage.teams,
            },
            "limits": {
                "max_members": self.limits.max_members,
                "max_teams": self.limits.max_teams,
            },
        }
        if self.reason:
            payload["reason"] = self.reason
        return payload


@dataclass(frozen=True)
class QuotaInfo:
    """Tier name, usage and limits for display."""
    tier: str
    usage: QuotaUsage
    limits: QuotaLimits
    usage_percent: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "tier": self.tier,
            "usage": {"members": self.usage.members, "teams": self.usage.teams},
            "limits": {"max_members": self.limits.max_members, "max_teams": self.limits.max_teams},
            "usagePercent": self.usage_percent,
        }
