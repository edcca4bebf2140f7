"""
Audit recorder: append-only activity log for membership, team and
organization changes.
"""
import enum
import logging
import math
from datetime import datetime
from typing import Any, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from teamsync.core.errors import Forbidden, ValidationError
from teamsync.models.activity_log import ActivityLog
from teamsync.models.organization import Organization
from teamsync.models.team import Team
from teamsync.models.user import User

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class ActivityType(str, enum.Enum):
    """Stored action codes. Renaming one requires migrating historical rows."""
    USER_INVITED = "user_invited"
    USER_DELETED = "user_deleted"
    TEAM_CREATED = "team_created"
    TEAM_UPDATED = "team_updated"
    TEAM_DELETED = "team_deleted"
    MEMBER_MOVED = "member_moved"
    ROLE_CHANGED = "role_changed"
    ORGANIZATION_CREATED = "organization_created"
    ORGANIZATION_UPDATED = "organization_updated"


class TargetType(str, enum.Enum):
    USER = "user"
    TEAM = "team"
    ORGANIZATION = "organization"


def record_activity(
    db: Session,
    actor_id: int,
    organization_id: int,
    action_type: ActivityType,
    target_type: TargetType,
    target_id: int,
    details: Optional[dict[str, Any]] = None,
) -> Optional[ActivityLog]:
    """
    Append one activity entry and commit it.

    The entry is a side effect of an already-committed mutation, so a failure
    here is logged and reported as None rather than raised.

    Args:
        db: Database session
        actor_id: User who performed the action
        organization_id: Organization the action happened in
        action_type: One of ActivityType
        target_type: One of TargetType
        target_id: ID of the user, team or organization acted on
        details: Flat snapshot of context worth keeping after the target is gone

    Returns:
        Created ActivityLog row, or None if it could not be written
    """
    entry = ActivityLog(
        actor_id=actor_id,
        organization_id=organization_id,
        action_type=ActivityType(action_type).value,
        target_type=TargetType(target_type).value,
        target_id=target_id,
        details=details or None,
    )
    try:
        db.add(entry)
        db.commit()
        db.refresh(entry)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Failed to record activity {action_type} by {actor_id} on {target_type}:{target_id}: {e}",
            exc_info=True,
        )
        return None
    return entry


def _resolve_target_name(db: Session, entry: ActivityLog) -> Optional[str]:
    """Prefer the live row's name, fall back to the snapshot kept in details."""
    details = entry.details or {}
    if entry.target_type == TargetType.USER.value:
        target = db.query(User).filter(User.id == entry.target_id).first()
        if target:
            return target.display_name
        return details.get("user_name") or details.get("member_name") or details.get("admin_name") or details.get("email")
    if entry.target_type == TargetType.TEAM.value:
        team = db.query(Team).filter(Team.id == entry.target_id).first()
        return team.name if team else details.get("team_name")
    if entry.target_type == TargetType.ORGANIZATION.value:
        org = db.query(Organization).filter(Organization.id == entry.target_id).first()
        return org.name if org else details.get("organization_name")
    return None


def list_activity(
    db: Session,
    caller: User,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    action_type: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """
    Page through the caller's organization activity, newest first.

    Only owners and admins can read the log. Page is clamped to >= 1 and limit
    to 1..100.
    """
    if not caller.can_manage_members():
        raise Forbidden("Access denied. Only owners and admins can view activity logs.")

    if action_type is not None:
        try:
            action_type = ActivityType(action_type).value
        except ValueError:
            raise ValidationError(f"Unknown action type '{action_type}'")

    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))

    query = db.query(ActivityLog).filter(ActivityLog.organization_id == caller.organization_id)
    if start_date:
        query = query.filter(ActivityLog.created_at >= start_date)
    if end_date:
        query = query.filter(ActivityLog.created_at <= end_date)
    if action_type:
        query = query.filter(ActivityLog.action_type == action_type)

    total = query.count()
    entries = query.order_by(
        ActivityLog.created_at.desc(), ActivityLog.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()

    activities = []
    for entry in entries:
        actor = db.query(User).filter(User.id == entry.actor_id).first()
        activities.append({
            "id": entry.id,
            "actorId": entry.actor_id,
            "actorName": actor.display_name if actor else "Unknown User",
            "actorAvatarUrl": actor.avatar_url if actor else None,
            "organizationId": entry.organization_id,
            "actionType": entry.action_type,
            "targetType": entry.target_type,
            "targetId": entry.target_id,
            "targetName": _resolve_target_name(db, entry),
            "details": entry.details,
            "createdAt": entry.created_at,
        })

    return {
        "activities": activities,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if total else 0,
        },
    }
