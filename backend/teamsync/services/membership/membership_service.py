"""
Membership mutations: remove a user, move a member between teams and change
roles. These are the only writers of User.role and User.team_id after a user
is created.
"""
import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from teamsync.core.errors import Forbidden, NotFound, Unexpected
from teamsync.models.organization import Organization
from teamsync.models.team import Team
from teamsync.models.user import User, ROLE_ADMIN, ROLE_OWNER
from teamsync.services.audit import ActivityType, TargetType, record_activity
from teamsync.services.email import notify_safely
from teamsync.services.membership.deletion_plan import (
    DeletionAborted,
    build_deletion_plan,
    execute_plan,
)
from teamsync.services.roles import validate_role_change, validate_team_move

logger = logging.getLogger(__name__)


def get_user_in_org(db: Session, user_id: int, organization_id: int) -> User:
    """Load a user of the organization; users of other tenants are reported as missing."""
    user = db.query(User).filter(
        User.id == user_id,
        User.organization_id == organization_id
    ).first()
    if not user:
        raise NotFound("User not found")
    return user


def get_team_in_org(db: Session, team_id: int, organization_id: int) -> Team:
    team = db.query(Team).filter(
        Team.id == team_id,
        Team.organization_id == organization_id
    ).first()
    if not team:
        raise NotFound("Team not found in your organization")
    return team


def _authorize_removal(db: Session, actor: User, target: User) -> Optional[Team]:
    """
    Check the removal matrix and return the target's team, if any.

    Owners remove admins and members; admins remove members of teams they
    manage; nobody removes the owner or themselves.
    """
    if target.id == actor.id:
        raise Forbidden("You cannot remove yourself")
    if target.role == ROLE_OWNER:
        raise Forbidden("Cannot remove the organization owner")
    if not actor.can_manage_members():
        raise Forbidden("You don't have permission to remove users")
    if target.role == ROLE_ADMIN and actor.role != ROLE_OWNER:
        raise Forbidden("Only the organization owner can remove admins")

    team = None
    if target.team_id is not None:
        team = db.query(Team).filter(Team.id == target.team_id).first()

    if actor.role == ROLE_ADMIN and (team is None or team.manager_id != actor.id):
        raise Forbidden("You can only remove members from teams you manage")
    return team


def remove_member(
    db: Session,
    actor: User,
    target_id: int,
    *,
    identity_provider,
    notifier,
) -> dict:
    """
    Remove a member or admin from the organization and delete their account.

    Runs the deletion plan, then sends a best-effort removal email to the
    address captured beforehand and records a user_deleted entry.

    Returns:
        {"success": True, "message": ...}
    """
    target = get_user_in_org(db, target_id, actor.organization_id)
    team = _authorize_removal(db, actor, target)

    # Everything needed after the row is gone has to be read now
    identity = identity_provider.get_identity(target.id)
    email = identity.email if identity else None
    target_name = target.display_name
    target_role = target.role
    team_id = team.id if team else None
    team_name = team.name if team else None
    organization = db.query(Organization).filter(Organization.id == actor.organization_id).first()
    organization_name = organization.name if organization else ""

    plan = build_deletion_plan(db, target_id, identity_provider)
    try:
        outcomes = execute_plan(plan)
    except DeletionAborted as e:
        db.rollback()
        logger.error(f"Removal of user {target_id} by {actor.id} aborted at '{e.step}': {e.cause}")
        raise Unexpected(f"Failed to remove {target_role}")

    failed = [o.name for o in outcomes if not o.ok]
    if failed:
        logger.warning(f"User {target_id} removed with failed advisory steps: {', '.join(failed)}")

    if email:
        notify_safely(
            "removed",
            notifier.send_removed,
            email,
            target_name,
            organization_name,
            actor.display_name,
            team_name,
        )

    name_key = "admin_name" if target_role == ROLE_ADMIN else "member_name"
    record_activity(
        db,
        actor_id=actor.id,
        organization_id=actor.organization_id,
        action_type=ActivityType.USER_DELETED,
        target_type=TargetType.USER,
        target_id=target_id,
        details={
            name_key: target_name,
            "email": email,
            "role": target_role,
            "team_id": team_id,
            "team_name": team_name,
            "reason": f"Removed by {actor.role}",
        },
    )

    logger.info(f"User {actor.id} removed {target_role} {target_id} from org {actor.organization_id}")
    return {"success": True, "message": f"{target_role.capitalize()} removed successfully"}


def move_member(db: Session, actor: User, target_id: int, new_team_id: Optional[int]) -> dict:
    """
    Move a member to another team of the same organization. Owner only.

    Returns:
        {"success": True, "message": ..., "user": {...}}
    """
    target = get_user_in_org(db, target_id, actor.organization_id)
    transition = validate_team_move(actor.role, target.role, target.team_id, new_team_id)
    new_team = get_team_in_org(db, transition.to_team_id, actor.organization_id)

    old_team = None
    if target.team_id is not None:
        old_team = db.query(Team).filter(Team.id == target.team_id).first()

    try:
        target.team_id = new_team.id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to move user {target_id} to team {new_team.id}: {e}", exc_info=True)
        raise Unexpected("Failed to move member")
    db.refresh(target)

    record_activity(
        db,
        actor_id=actor.id,
        organization_id=actor.organization_id,
        action_type=ActivityType.MEMBER_MOVED,
        target_type=TargetType.USER,
        target_id=target.id,
        details={
            "member_name": target.display_name,
            "from_team_id": old_team.id if old_team else None,
            "from_team_name": old_team.name if old_team else None,
            "to_team_id": new_team.id,
            "to_team_name": new_team.name,
        },
    )

    return {
        "success": True,
        "message": f"{target.display_name} moved to {new_team.name}",
        "user": {"id": target.id, "role": target.role, "team_id": target.team_id},
    }


def change_role(
    db: Session,
    actor: User,
    target_id: int,
    new_role: str,
    new_team_id: Optional[int] = None,
    *,
    identity_provider,
    notifier,
) -> dict:
    """
    Promote a member to admin or demote an admin to member of a team.

    Demotion leaves every team the admin managed without a manager.

    Returns:
        {"success": True, "message": ...}
    """
    target = get_user_in_org(db, target_id, actor.organization_id)
    if target.id == actor.id:
        raise Forbidden("You cannot change your own role")

    transition = validate_role_change(actor.role, target.role, new_role, target.team_id, new_team_id)
    team = None
    if transition.attaches_team:
        team = get_team_in_org(db, transition.to_team_id, actor.organization_id)

    unmanaged_team_ids = []
    try:
        if transition.leaves_management:
            managed = db.query(Team).filter(
                Team.organization_id == actor.organization_id,
                Team.manager_id == target.id
            ).all()
            for managed_team in managed:
                managed_team.manager_id = None
                unmanaged_team_ids.append(managed_team.id)
        target.role = transition.to_role
        target.team_id = transition.to_team_id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to change role of user {target_id} to {new_role}: {e}", exc_info=True)
        raise Unexpected("Failed to update user role")
    db.refresh(target)

    details = {
        "user_name": target.display_name,
        "old_role": transition.from_role,
        "new_role": transition.to_role,
        "team_id": team.id if team else None,
        "team_name": team.name if team else None,
    }
    if unmanaged_team_ids:
        details["unmanaged_team_ids"] = unmanaged_team_ids
    record_activity(
        db,
        actor_id=actor.id,
        organization_id=actor.organization_id,
        action_type=ActivityType.ROLE_CHANGED,
        target_type=TargetType.USER,
        target_id=target.id,
        details=details,
    )

    identity = identity_provider.get_identity(target.id)
    if identity:
        organization = db.query(Organization).filter(Organization.id == actor.organization_id).first()
        notify_safely(
            "role_changed",
            notifier.send_role_changed,
            identity.email,
            target.display_name,
            organization.name if organization else "",
            transition.from_role,
            transition.to_role,
            actor.display_name,
        )

    logger.info(
        f"User {actor.id} changed role of {target.id}: {transition.from_role} -> {transition.to_role}"
    )
    return {
        "success": True,
        "message": f"Role changed from {transition.from_role} to {transition.to_role}",
    }
