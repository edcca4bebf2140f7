"""
Team management: create, read, update and delete teams of an organization.
"""
import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from teamsync.core.errors import (
    Conflict,
    Forbidden,
    NotFound,
    QuotaExceeded,
    Unexpected,
    ValidationError,
)
from teamsync.models.invite import Invite
from teamsync.models.team import Team
from teamsync.models.user import User, ROLE_ADMIN, ROLE_MEMBER, ROLE_OWNER
from teamsync.services.audit import ActivityType, TargetType, record_activity
from teamsync.services.membership.membership_service import get_team_in_org, get_user_in_org
from teamsync.services.quota import check_quota

logger = logging.getLogger(__name__)

TEAM_NAME_MIN_LENGTH = 2
TEAM_NAME_MAX_LENGTH = 50


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if len(name) < TEAM_NAME_MIN_LENGTH:
        raise ValidationError(f"Team name must be at least {TEAM_NAME_MIN_LENGTH} characters")
    if len(name) > TEAM_NAME_MAX_LENGTH:
        raise ValidationError(f"Team name must be at most {TEAM_NAME_MAX_LENGTH} characters")
    return name


def _get_admin_manager(db: Session, manager_id: int, organization_id: int) -> User:
    try:
        manager = get_user_in_org(db, manager_id, organization_id)
    except NotFound:
        raise NotFound("Specified manager not found in your organization")
    if manager.role != ROLE_ADMIN:
        raise ValidationError("Only admins can be assigned as team managers")
    return manager


def _require_team_write_access(actor: User, team: Team, action: str) -> None:
    """Owners write any team; admins only the teams they manage."""
    if actor.role == ROLE_OWNER:
        return
    if actor.role == ROLE_ADMIN and team.manager_id == actor.id:
        return
    raise Forbidden(f"You don't have permission to {action} this team")


def _summarize(db: Session, team: Team) -> dict:
    member_count = db.query(User).filter(User.team_id == team.id).count()
    pending_count = db.query(Invite).filter(
        Invite.team_id == team.id,
        Invite.accepted == False  # noqa: E712
    ).count()
    manager = db.query(User).filter(User.id == team.manager_id).first() if team.manager_id else None
    return {
        "id": team.id,
        "organization_id": team.organization_id,
        "name": team.name,
        "created_by": team.created_by,
        "manager_id": team.manager_id,
        "manager": {
            "id": manager.id,
            "display_name": manager.display_name,
            "avatar_url": manager.avatar_url,
        } if manager else None,
        "memberCount": member_count,
        "pendingCount": pending_count,
        "created_at": team.created_at,
    }


def create_team(db: Session, actor: User, name: str, manager_id: Optional[int] = None) -> dict:
    """
    Create a team in the actor's organization.

    An owner must name an admin as manager; an admin always manages the teams
    they create.

    Raises:
        Forbidden, ValidationError, NotFound, QuotaExceeded, Unexpected
    """
    if not actor.can_manage_members():
        raise Forbidden("You don't have permission to create teams")
    name = _clean_name(name)

    if actor.role == ROLE_OWNER:
        if manager_id is None:
            raise ValidationError("Owner must specify an admin as the team manager")
        manager = _get_admin_manager(db, manager_id, actor.organization_id)
    else:
        if manager_id is not None and manager_id != actor.id:
            raise Forbidden("Admins can only create teams they manage")
        manager = actor

    quota = check_quota(db, actor.organization_id, "team")
    if not quota.allowed:
        raise QuotaExceeded(quota.reason, quota=quota.to_dict())

    team = Team(
        organization_id=actor.organization_id,
        name=name,
        created_by=actor.id,
        manager_id=manager.id,
    )
    try:
        db.add(team)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create team '{name}' in org {actor.organization_id}: {e}", exc_info=True)
        raise Unexpected("Failed to create team")
    db.refresh(team)

    record_activity(
        db,
        actor_id=actor.id,
        organization_id=actor.organization_id,
        action_type=ActivityType.TEAM_CREATED,
        target_type=TargetType.TEAM,
        target_id=team.id,
        details={"team_name": team.name, "manager_id": manager.id, "manager_name": manager.display_name},
    )
    logger.info(f"User {actor.id} created team {team.id} '{team.name}' managed by {manager.id}")
    return _summarize(db, team)


def list_teams(db: Session, actor: User) -> list[dict]:
    """
    Teams visible to the actor, newest first.

    Owners see every team, admins the teams they manage and members their own
    team.
    """
    query = db.query(Team).filter(Team.organization_id == actor.organization_id)
    if actor.role == ROLE_ADMIN:
        query = query.filter(Team.manager_id == actor.id)
    elif actor.role == ROLE_MEMBER:
        if actor.team_id is None:
            return []
        query = query.filter(Team.id == actor.team_id)

    teams = query.order_by(Team.created_at.desc(), Team.id.desc()).all()
    return [_summarize(db, team) for team in teams]


def get_team(db: Session, actor: User, team_id: int) -> dict:
    """Team details with its members."""
    team = get_team_in_org(db, team_id, actor.organization_id)
    if actor.role == ROLE_MEMBER and actor.team_id != team.id:
        raise Forbidden("You can only view your own team")

    members = db.query(User).filter(User.team_id == team.id).order_by(User.created_at).all()
    summary = _summarize(db, team)
    summary["members"] = [
        {
            "id": m.id,
            "display_name": m.display_name,
            "avatar_url": m.avatar_url,
            "role": m.role,
            "created_at": m.created_at,
        }
        for m in members
    ]
    return summary


def update_team(
    db: Session,
    actor: User,
    team_id: int,
    name: Optional[str] = None,
    manager_id: Optional[int] = None,
) -> dict:
    """
    Rename a team or hand it to another admin.

    Only the owner changes the manager. A team_updated entry is recorded when
    something actually changed.
    """
    if not actor.can_manage_members():
        raise Forbidden("You don't have permission to update teams")
    team = get_team_in_org(db, team_id, actor.organization_id)
    _require_team_write_access(actor, team, "update")

    changes = {}
    if name is not None:
        name = _clean_name(name)
        if name != team.name:
            changes["old_name"] = team.name
            changes["new_name"] = name

    new_manager = None
    if manager_id is not None and manager_id != team.manager_id:
        if actor.role != ROLE_OWNER:
            raise Forbidden("Only organization owner can change team manager")
        new_manager = _get_admin_manager(db, manager_id, actor.organization_id)
        changes["old_manager_id"] = team.manager_id
        changes["new_manager_id"] = new_manager.id

    if not changes:
        return _summarize(db, team)

    try:
        if "new_name" in changes:
            team.name = changes["new_name"]
        if new_manager is not None:
            team.manager_id = new_manager.id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update team {team_id}: {e}", exc_info=True)
        raise Unexpected("Failed to update team")
    db.refresh(team)

    changes["team_name"] = team.name
    record_activity(
        db,
        actor_id=actor.id,
        organization_id=actor.organization_id,
        action_type=ActivityType.TEAM_UPDATED,
        target_type=TargetType.TEAM,
        target_id=team.id,
        details=changes,
    )
    return _summarize(db, team)


def delete_team(db: Session, actor: User, team_id: int) -> dict:
    """
    Delete an empty team.

    Pending invites into the team are deleted with it; accepted invites keep
    their history with the team reference cleared.

    Raises:
        Conflict: users still belong to the team (carries memberCount)
    """
    if not actor.can_manage_members():
        raise Forbidden("You don't have permission to delete teams")
    team = get_team_in_org(db, team_id, actor.organization_id)
    _require_team_write_access(actor, team, "delete")

    member_count = db.query(User).filter(User.team_id == team.id).count()
    if member_count > 0:
        raise Conflict(
            "Cannot delete team with members. Please remove all members first.",
            memberCount=member_count,
        )

    team_name = team.name
    try:
        revoked = db.query(Invite).filter(
            Invite.team_id == team.id,
            Invite.accepted == False  # noqa: E712
        ).delete(synchronize_session=False)
        db.query(Invite).filter(Invite.team_id == team.id).update(
            {Invite.team_id: None}, synchronize_session=False
        )
        db.delete(team)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete team {team_id}: {e}", exc_info=True)
        raise Unexpected("Failed to delete team")

    record_activity(
        db,
        actor_id=actor.id,
        organization_id=actor.organization_id,
        action_type=ActivityType.TEAM_DELETED,
        target_type=TargetType.TEAM,
        target_id=team_id,
        details={"team_name": team_name, "revoked_invites": revoked},
    )
    logger.info(f"User {actor.id} deleted team {team_id} '{team_name}'")
    return {"success": True, "message": "Team deleted successfully"}
