"""
Quota evaluator: decides whether an organization may grow by N members or
one team under its tier limits.

The check does not lock. It must run immediately before the write that grows
the count; two concurrent requests can both pass at N-1/N. Tier limits are
soft business limits, so that window is accepted.
"""
from sqlalchemy.orm import Session
from teamsync.core.errors import NotFound, ValidationError
from teamsync.models.organization import Organization, Tier
from teamsync.models.team import Team
from teamsync.models.user import User
from teamsync.services.quota.quota_models import (
    QuotaCheckResult,
    QuotaInfo,
    QuotaLimits,
    QuotaUsage,
    is_unlimited,
)

QUOTA_KINDS = ("member", "team")


def _load_tier(db: Session, organization_id: int) -> Tier:
    row = db.query(Organization, Tier).join(Tier, Organization.tier_id == Tier.id).filter(
        Organization.id == organization_id
    ).first()
    if not row:
        raise NotFound("Organization not found")
    return row[1]


def get_usage(db: Session, organization_id: int) -> QuotaUsage:
    """Count users and teams currently in the organization."""
    members = db.query(User).filter(User.organization_id == organization_id).count()
    teams = db.query(Team).filter(Team.organization_id == organization_id).count()
    return QuotaUsage(members=members, teams=teams)


def evaluate_quota(
    kind: str,
    usage: QuotaUsage,
    limits: QuotaLimits,
    batch_size: int = 1,
) -> QuotaCheckResult:
    """
    Pure allow/deny decision.

    A batch is admitted only if all of it fits: current + batch_size must not
    exceed the limit.
    """
    if kind not in QUOTA_KINDS:
        raise ValidationError(f"Unknown quota kind '{kind}'")
    if batch_size < 1:
        raise ValidationError("Batch size must be at least 1")

    if kind == "member":
        current, limit, label = usage.members, limits.max_members, "Member"
        hint = "remove members"
    else:
        current, limit, label = usage.teams, limits.max_teams, "Team"
        hint = "remove teams"

    if is_unlimited(limit) or current + batch_size <= limit:
        return QuotaCheckResult(
            allowed=True,
            kind=kind,
            requested=batch_size,
            current_usage=usage,
            limits=limits,
        )

    if batch_size == 1:
        reason = (
            f"{label} limit reached ({current}/{limit}). "
            f"Upgrade your plan or {hint} to continue."
        )
    else:
        reason = (
            f"Quota exceeded: trying to add {batch_size} {kind}s, "
            f"but only {max(0, limit - current)} slots remaining ({current}/{limit} used)."
        )
    return QuotaCheckResult(
        allowed=False,
        kind=kind,
        requested=batch_size,
        current_usage=usage,
        limits=limits,
        reason=reason,
    )


def check_quota(
    db: Session,
    organization_id: int,
    kind: str,
    batch_size: int = 1
) -> QuotaCheckResult:
    """
    Check whether the organization can grow by batch_size members or teams.

    Args:
        db: Database session
        organization_id: Organization ID
        kind: 'member' or 'team'
        batch_size: Number of rows the caller is about to add

    Returns:
        QuotaCheckResult with usage and limits filled in either way
    """
    tier = _load_tier(db, organization_id)
    return evaluate_quota(
        kind,
        get_usage(db, organization_id),
        QuotaLimits.from_tier(tier),
        batch_size=batch_size,
    )


def _percent(used: int, limit: int) -> float:
    if is_unlimited(limit) or limit == 0:
        return 0.0
    return round(used * 100.0 / limit, 1)


def get_quota_info(db: Session, organization_id: int) -> QuotaInfo:
    """Usage and limits for the organization's tier."""
    tier = _load_tier(db, organization_id)
    usage = get_usage(db, organization_id)
    limits = QuotaLimits.from_tier(tier)
    return QuotaInfo(
        tier=tier.name,
        usage=usage,
        limits=limits,
        usage_percent={
            "members": _percent(usage.members, limits.max_members),
            "teams": _percent(usage.teams, limits.max_teams),
        },
    )
