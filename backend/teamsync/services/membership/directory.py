"""
Read-only listings of the people in an organization: members with their
pending invites, admins, and manager candidates for team assignment.
"""
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from teamsync.core.errors import Forbidden, ValidationError
from teamsync.models.invite import Invite
from teamsync.models.team import Team
from teamsync.models.user import User, ROLE_ADMIN, ROLE_MEMBER, ROLE_OWNER

MEMBER_STATUSES = ("active", "pending")


def _team_names(db: Session, organization_id: int) -> dict[int, str]:
    teams = db.query(Team.id, Team.name).filter(Team.organization_id == organization_id).all()
    return {team_id: name for team_id, name in teams}


def _team_ref(team_id: Optional[int], names: dict[int, str]) -> Optional[dict]:
    if team_id is None or team_id not in names:
        return None
    return {"id": team_id, "name": names[team_id]}


def _email_of(identity_provider, user_id: int) -> str:
    identity = identity_provider.get_identity(user_id)
    return identity.email if identity else "Unknown"


def list_members(
    db: Session,
    caller: User,
    team_id: Optional[int] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    *,
    identity_provider,
) -> dict:
    """
    Members and pending member invites visible to the caller, newest first.

    Owners see the whole organization and may filter by team. Admins see only
    the teams they manage. Admins and admin invites are not listed here.

    Raises:
        Forbidden: caller is a member
        ValidationError: unknown status filter
    """
    if not caller.can_manage_members():
        raise Forbidden("Members cannot access this page")
    if status is not None and status not in MEMBER_STATUSES:
        raise ValidationError(f"Unknown status filter '{status}'")

    permissions = {
        "canMoveTeams": caller.is_owner(),
        "canRemove": True,
        "canResendInvite": True,
    }

    users = db.query(User).filter(
        User.organization_id == caller.organization_id,
        User.role == ROLE_MEMBER
    )
    invites = db.query(Invite).filter(
        Invite.organization_id == caller.organization_id,
        Invite.accepted == False,  # noqa: E712
        Invite.role == ROLE_MEMBER
    )

    if caller.role == ROLE_ADMIN:
        managed = [
            t.id for t in db.query(Team.id).filter(
                Team.organization_id == caller.organization_id,
                Team.manager_id == caller.id
            ).all()
        ]
        if not managed:
            return {
                "members": [],
                "counts": {"active": 0, "pending": 0, "total": 0},
                "permissions": dict(permissions, canMoveTeams=False),
            }
        users = users.filter(User.team_id.in_(managed))
        invites = invites.filter(Invite.team_id.in_(managed))
    elif team_id is not None:
        users = users.filter(User.team_id == team_id)
        invites = invites.filter(Invite.team_id == team_id)

    names = _team_names(db, caller.organization_id)
    active = [
        {
            "id": user.id,
            "displayName": user.display_name,
            "email": _email_of(identity_provider, user.id),
            "avatarUrl": user.avatar_url,
            "role": user.role,
            "team": _team_ref(user.team_id, names),
            "status": "active",
            "createdAt": user.created_at,
        }
        for user in users.all()
    ]
    pending = [
        {
            "id": invite.id,
            "displayName": None,
            "email": invite.email,
            "avatarUrl": None,
            "role": invite.role,
            "team": _team_ref(invite.team_id, names),
            "status": "pending",
            "createdAt": invite.created_at,
            "inviteId": invite.id,
        }
        for invite in invites.all()
    ]

    entries = active + pending
    if status is not None:
        entries = [e for e in entries if e["status"] == status]
    if search:
        needle = search.strip().lower()
        entries = [
            e for e in entries
            if needle in (e["displayName"] or "").lower() or needle in e["email"].lower()
        ]
    entries.sort(key=lambda e: (e["createdAt"] is not None, e["createdAt"]), reverse=True)

    return {
        "members": entries,
        "counts": {"active": len(active), "pending": len(pending), "total": len(entries)},
        "permissions": permissions,
    }


def _require_owner(caller: User) -> None:
    if caller.role != ROLE_OWNER:
        raise Forbidden("Only organization owner can view admin list")


def list_admins(db: Session, caller: User, *, identity_provider) -> list[dict]:
    """Admins of the caller's organization with their emails, newest first. Owner only."""
    _require_owner(caller)
    admins = db.query(User).filter(
        User.organization_id == caller.organization_id,
        User.role == ROLE_ADMIN
    ).order_by(User.created_at.desc(), User.id.desc()).all()

    managed_counts = dict(
        db.query(Team.manager_id, func.count(Team.id)).filter(
            Team.organization_id == caller.organization_id,
            Team.manager_id.isnot(None)
        ).group_by(Team.manager_id).all()
    )

    return [
        {
            "id": admin.id,
            "display_name": admin.display_name,
            "avatar_url": admin.avatar_url,
            "email": _email_of(identity_provider, admin.id),
            "managed_teams": managed_counts.get(admin.id, 0),
            "created_at": admin.created_at,
        }
        for admin in admins
    ]


def list_manager_candidates(db: Session, caller: User) -> list[dict]:
    """Admins who can be assigned as team manager, by name."""
    _require_owner(caller)
    admins = db.query(User).filter(
        User.organization_id == caller.organization_id,
        User.role == ROLE_ADMIN
    ).order_by(User.display_name).all()
    return [
        {
            "id": admin.id,
            "display_name": admin.display_name,
            "avatar_url": admin.avatar_url,
            "created_at": admin.created_at,
        }
        for admin in admins
    ]
