"""
The caller's own profile and the role-dependent dashboard summary.
"""
import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from teamsync.core.errors import NotFound, Unexpected, ValidationError
from teamsync.models.organization import Organization
from teamsync.models.team import Team
from teamsync.models.user import User, ROLE_ADMIN, ROLE_MEMBER, ROLE_OWNER
from teamsync.services.audit import list_activity
from teamsync.services.quota import get_quota_info

logger = logging.getLogger(__name__)

DISPLAY_NAME_MIN_LENGTH = 2
DISPLAY_NAME_MAX_LENGTH = 100
RECENT_ACTIVITY_LIMIT = 5


def _team_of(db: Session, user: User) -> Optional[Team]:
    if user.team_id is None:
        return None
    return db.query(Team).filter(Team.id == user.team_id).first()


def _organization_of(db: Session, user: User) -> Organization:
    organization = db.query(Organization).filter(Organization.id == user.organization_id).first()
    if not organization:
        raise NotFound("Organization not found")
    return organization


def get_profile(db: Session, user: User, email: str) -> dict:
    organization = _organization_of(db, user)
    team = _team_of(db, user)
    return {
        "id": user.id,
        "email": email,
        "displayName": user.display_name,
        "avatarUrl": user.avatar_url,
        "role": user.role,
        "createdAt": user.created_at,
        "organization": {"id": organization.id, "name": organization.name},
        "team": {"id": team.id, "name": team.name} if team else None,
    }


def update_profile(db: Session, user: User, email: str, display_name: str) -> dict:
    """
    Change the caller's display name.

    Raises:
        ValidationError: name shorter than 2 or longer than 100 characters
        Unexpected: the store rejected the write
    """
    display_name = (display_name or "").strip()
    if len(display_name) < DISPLAY_NAME_MIN_LENGTH:
        raise ValidationError(f"Display name must be at least {DISPLAY_NAME_MIN_LENGTH} characters")
    if len(display_name) > DISPLAY_NAME_MAX_LENGTH:
        raise ValidationError(f"Display name must be less than {DISPLAY_NAME_MAX_LENGTH} characters")

    try:
        user.display_name = display_name
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update profile of user {user.id}: {e}", exc_info=True)
        raise Unexpected("Failed to update profile")
    db.refresh(user)
    return get_profile(db, user, email)


def _count_role(db: Session, organization_id: int, role: str) -> int:
    return db.query(User).filter(User.organization_id == organization_id, User.role == role).count()


def get_dashboard_stats(db: Session, user: User) -> dict:
    """
    Headline numbers for the dashboard.

    Owners and admins get role counts, quota usage and the latest activity.
    Members get the team count and their own team with its manager.
    """
    organization = _organization_of(db, user)
    info = get_quota_info(db, organization.id)

    payload = {
        "user": {"id": user.id, "displayName": user.display_name, "role": user.role},
        "organization": {"id": organization.id, "name": organization.name, "tier": info.tier},
    }

    if user.role == ROLE_MEMBER:
        team = _team_of(db, user)
        manager = None
        if team is not None and team.manager_id is not None:
            manager = db.query(User).filter(User.id == team.manager_id).first()
        payload["stats"] = {"teams": info.usage.teams}
        payload["userTeam"] = {
            "id": team.id,
            "name": team.name,
            "manager": {
                "id": manager.id,
                "display_name": manager.display_name,
                "avatar_url": manager.avatar_url,
            } if manager else None,
        } if team else None
        return payload

    stats = {
        "totalMembers": info.usage.members,
        "admins": _count_role(db, organization.id, ROLE_ADMIN),
        "members": _count_role(db, organization.id, ROLE_MEMBER),
        "teams": info.usage.teams,
    }
    if user.role == ROLE_OWNER:
        stats["owners"] = _count_role(db, organization.id, ROLE_OWNER)

    payload["stats"] = stats
    payload["quotas"] = {
        "maxMembers": info.limits.max_members,
        "maxTeams": info.limits.max_teams,
        "membersUsed": info.usage.members,
        "teamsUsed": info.usage.teams,
        "membersPercentage": info.usage_percent["members"],
        "teamsPercentage": info.usage_percent["teams"],
    }
    payload["recentActivities"] = list_activity(db, user, limit=RECENT_ACTIVITY_LIMIT)["activities"]
    return payload
