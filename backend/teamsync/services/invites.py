"""
Invite lifecycle: create, validate, accept, revoke, resend, list and bulk
create membership invites.

States: absent -> pending -> accepted (terminal), or pending -> revoked
(row deleted). Accepted invites are history and never reopened; a removed
user is re-invited with a fresh row.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from teamsync.core.config import BULK_INVITE_MAX_BATCH
from teamsync.core.errors import (
    Conflict,
    Forbidden,
    Gone,
    NotFound,
    QuotaExceeded,
    Unexpected,
    ValidationError,
)
from teamsync.models.invite import Invite
from teamsync.models.organization import Organization
from teamsync.models.team import Team
from teamsync.models.user import User, ROLE_ADMIN, ROLE_MEMBER, ROLE_OWNER
from teamsync.services.audit import ActivityType, TargetType, record_activity
from teamsync.services.email import notify_safely
from teamsync.services.identity import normalize_email
from teamsync.services.quota import QuotaCheckResult, check_quota

logger = logging.getLogger(__name__)

INVITE_ROLES = (ROLE_ADMIN, ROLE_MEMBER)


@dataclass
class InviteCreated:
    invite: Invite
    email_sent: bool


@dataclass
class BulkValidation:
    """Per-entry outcome of a bulk invite check."""
    valid: list[dict] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)
    quota: Optional[QuotaCheckResult] = None

    def quota_summary(self) -> dict:
        if self.quota is None:
            return {}
        return {
            "currentMembers": self.quota.current_usage.members,
            "maxMembers": self.quota.limits.max_members,
            "requestedCount": len(self.valid),
            "remainingSlots": self.quota.remaining,
            "canInvite": self.quota.allowed,
        }


@dataclass
class BulkSendResult:
    results: list[dict] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r["success"])

    @property
    def failed(self) -> int:
        return len(self.results) - self.successful


def _require_invite_authority(caller: User, role: str, action: str = "invite") -> None:
    """Only the owner handles admin invites; owners and admins handle member invites."""
    if role == ROLE_ADMIN and caller.role != ROLE_OWNER:
        raise Forbidden(f"Only organization owners can {action} admins")
    if role == ROLE_MEMBER and not caller.can_manage_members():
        raise Forbidden(f"You don't have permission to {action} members")


def _get_organization(db: Session, organization_id: int) -> Organization:
    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if not organization:
        raise NotFound("Organization not found")
    return organization


def _get_team_in_org(db: Session, team_id: int, organization_id: int) -> Team:
    team = db.query(Team).filter(
        Team.id == team_id,
        Team.organization_id == organization_id
    ).first()
    if not team:
        raise NotFound("Team not found in your organization")
    return team


def _get_invite_in_org(db: Session, invite_id: int, organization_id: int) -> Invite:
    invite = db.query(Invite).filter(Invite.id == invite_id).first()
    # Other tenants' invites are reported as missing
    if not invite or invite.organization_id != organization_id:
        raise NotFound("Invite not found")
    return invite


def get_pending_invite(db: Session, email: str, organization_id: int) -> Optional[Invite]:
    return db.query(Invite).filter(
        Invite.organization_id == organization_id,
        Invite.email == normalize_email(email),
        Invite.accepted == False  # noqa: E712
    ).first()


def _ensure_email_available(db: Session, identity_provider, email: str, organization_id: int) -> None:
    existing = identity_provider.find_identity_by_email(email)
    if existing:
        member = db.query(User).filter(
            User.id == existing.id,
            User.organization_id == organization_id
        ).first()
        if member:
            raise Conflict("User is already a member of this organization")
        raise Conflict("A user with this email already has an account. They should log in instead.")
    if get_pending_invite(db, email, organization_id):
        raise Conflict("An invite for this email is already pending")


def _insert_invite(db: Session, inviter: User, email: str, role: str, team_id: Optional[int]) -> Invite:
    invite = Invite(
        email=normalize_email(email),
        organization_id=inviter.organization_id,
        team_id=team_id,
        role=role,
        invited_by=inviter.id,
        accepted=False,
    )
    try:
        db.add(invite)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create invite for {email} in org {inviter.organization_id}: {e}", exc_info=True)
        raise Unexpected("Failed to create invite")
    db.refresh(invite)
    return invite


def create_invite(
    db: Session,
    inviter: User,
    email: str,
    role: str,
    team_id: Optional[int] = None,
    *,
    identity_provider,
    notifier,
) -> InviteCreated:
    """
    Create a pending invite for an email address.

    Args:
        db: Database session
        inviter: Calling user
        email: Invitee email (stored lower-case)
        role: 'admin' or 'member'
        team_id: Team for a member invite; must be None for admin invites
        identity_provider: Used to detect emails that already have an account
        notifier: Notification sender for the invitation email

    Returns:
        InviteCreated with the invite row and whether the email went out

    Raises:
        Forbidden, ValidationError, NotFound, Conflict, QuotaExceeded, Unexpected
    """
    if role not in INVITE_ROLES:
        raise ValidationError("Role must be either 'admin' or 'member'")
    _require_invite_authority(inviter, role)

    if role == ROLE_ADMIN and team_id is not None:
        raise ValidationError("Admin invites cannot be assigned to a team")

    organization = _get_organization(db, inviter.organization_id)
    team = _get_team_in_org(db, team_id, organization.id) if team_id is not None else None

    _ensure_email_available(db, identity_provider, email, organization.id)

    # Admin invites are not gated on the member quota
    if role == ROLE_MEMBER:
        quota = check_quota(db, organization.id, "member")
        if not quota.allowed:
            raise QuotaExceeded(quota.reason, quota=quota.to_dict())

    invite = _insert_invite(db, inviter, email, role, team.id if team else None)
    logger.info(f"User {inviter.id} invited {invite.email} as {role} to org {organization.id}")

    email_sent = notify_safely(
        "invite",
        notifier.send_invite,
        invite.email,
        inviter.display_name or "A team member",
        organization.name,
        invite.id,
        role,
        team.name if team else None,
    )

    record_activity(
        db,
        actor_id=inviter.id,
        organization_id=organization.id,
        action_type=ActivityType.USER_INVITED,
        target_type=TargetType.USER,
        target_id=invite.id,
        details={
            "email": invite.email,
            "role": role,
            "team_id": team.id if team else None,
            "invite_method": "email",
        },
    )

    return InviteCreated(invite=invite, email_sent=email_sent)


def validate_invite(db: Session, invite_id: int) -> tuple[Invite, Organization]:
    """
    Look up an invite for the signup flow.

    Raises:
        NotFound: no such invite
        Gone: the invite has already been accepted
    """
    invite = db.query(Invite).filter(Invite.id == invite_id).first()
    if not invite:
        raise NotFound("Invalid invite code")
    if invite.accepted:
        raise Gone("This invite has already been used")
    return invite, _get_organization(db, invite.organization_id)


def accept_invite(
    db: Session,
    invite_id: int,
    identity_id: int,
    display_name: str,
    avatar_url: Optional[str] = None,
) -> User:
    """
    Turn a pending invite into a User row.

    Called once the identity provider has created the credential. The invite
    is claimed with a conditional update, so of two concurrent accepts only
    one inserts a user and the other gets Gone.
    """
    invite, _ = validate_invite(db, invite_id)

    organization_id = invite.organization_id
    team_id = invite.team_id
    role = invite.role

    try:
        claimed = db.query(Invite).filter(
            Invite.id == invite_id,
            Invite.accepted == False  # noqa: E712
        ).update(
            {Invite.accepted: True, Invite.accepted_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
        if claimed != 1:
            db.rollback()
            raise Gone("This invite has already been used")

        user = User(
            id=identity_id,
            organization_id=organization_id,
            team_id=team_id,
            role=role,
            display_name=display_name,
            avatar_url=avatar_url,
        )
        db.add(user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to accept invite {invite_id} for identity {identity_id}: {e}", exc_info=True)
        raise Unexpected("Failed to create user profile")

    db.refresh(user)
    logger.info(f"Invite {invite_id} accepted: user {user.id} joined org {organization_id} as {role}")
    return user


def revoke_invite(db: Session, invite_id: int, caller: User) -> None:
    """Delete a pending invite. Accepted invites must be handled by member removal."""
    invite = _get_invite_in_org(db, invite_id, caller.organization_id)
    if invite.accepted:
        raise Conflict("Cannot revoke an accepted invitation. Remove the user instead.")
    _require_invite_authority(caller, invite.role, action="revoke invites for")

    try:
        db.delete(invite)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete invite {invite_id}: {e}", exc_info=True)
        raise Unexpected("Failed to delete invite")
    logger.info(f"User {caller.id} revoked invite {invite_id}")


def resend_invite(db: Session, invite_id: int, caller: User, notifier) -> bool:
    """Send the invitation email again. No state change and no audit entry."""
    invite = _get_invite_in_org(db, invite_id, caller.organization_id)
    if invite.accepted:
        raise Gone("This invite has already been used")
    _require_invite_authority(caller, invite.role, action="resend invites for")

    organization = _get_organization(db, invite.organization_id)
    team_name = None
    if invite.team_id is not None:
        team = db.query(Team).filter(Team.id == invite.team_id).first()
        team_name = team.name if team else None

    return notify_safely(
        "invite",
        notifier.send_invite,
        invite.email,
        caller.display_name or "A team member",
        organization.name,
        invite.id,
        invite.role,
        team_name,
    )


def list_invites(
    db: Session,
    caller: User,
    status: Optional[str] = None,
    role: Optional[str] = None,
) -> list[Invite]:
    """List the organization's invites, newest first. Owners and admins only."""
    if not caller.can_manage_members():
        raise Forbidden("You don't have permission to view invites")

    query = db.query(Invite).filter(Invite.organization_id == caller.organization_id)
    if status == "pending":
        query = query.filter(Invite.accepted == False)  # noqa: E712
    elif status == "accepted":
        query = query.filter(Invite.accepted == True)  # noqa: E712
    elif status is not None:
        raise ValidationError("Status must be 'pending' or 'accepted'")

    if role is not None:
        if role not in INVITE_ROLES:
            raise ValidationError("Role must be either 'admin' or 'member'")
        query = query.filter(Invite.role == role)

    return query.order_by(Invite.created_at.desc(), Invite.id.desc()).all()


def validate_bulk_invites(
    db: Session,
    caller: User,
    entries: list[dict],
    *,
    identity_provider,
) -> BulkValidation:
    """
    Check a batch of {email, role} entries before sending.

    Entries are sorted into valid and errors; the valid part is then checked
    against the member quota as one all-or-nothing batch.

    Raises:
        Forbidden: caller is not owner or admin
        ValidationError: empty or oversized batch
        QuotaExceeded: the valid entries do not all fit
    """
    if not caller.can_manage_members():
        raise Forbidden("Only owners and admins can bulk invite members")
    if not entries:
        raise ValidationError("No invites provided")
    if len(entries) > BULK_INVITE_MAX_BATCH:
        raise ValidationError(
            f"Maximum {BULK_INVITE_MAX_BATCH} invites per batch. Please split into multiple uploads."
        )

    result = BulkValidation()
    seen: set[str] = set()
    for entry in entries:
        email = normalize_email(entry.get("email") or "")
        role = entry.get("role") or ROLE_MEMBER

        if not email:
            result.errors.append({"email": email, "error": "Email is required"})
            continue
        if email in seen:
            result.errors.append({"email": email, "error": "Duplicate email in batch"})
            continue
        seen.add(email)

        if role != ROLE_MEMBER:
            result.errors.append({"email": email, "error": "Only member role allowed in bulk invites"})
            continue
        if identity_provider.find_identity_by_email(email):
            result.errors.append({"email": email, "error": "User already exists"})
            continue
        if get_pending_invite(db, email, caller.organization_id):
            result.errors.append({"email": email, "error": "Invite already sent"})
            continue

        result.valid.append({"email": email, "role": ROLE_MEMBER})

    result.quota = check_quota(db, caller.organization_id, "member", batch_size=max(1, len(result.valid)))
    if result.valid and not result.quota.allowed:
        raise QuotaExceeded(
            result.quota.reason,
            quota=result.quota.to_dict(),
            quotaCheck=result.quota_summary(),
        )
    return result


def send_bulk_invites(
    db: Session,
    caller: User,
    entries: list[dict],
    team_id: Optional[int] = None,
    *,
    identity_provider,
    notifier,
) -> BulkSendResult:
    """
    Create member invites for a batch, re-validating it first.

    Rejected entries are reported as failures; each created invite gets its
    own user_invited entry.
    """
    validation = validate_bulk_invites(db, caller, entries, identity_provider=identity_provider)
    organization = _get_organization(db, caller.organization_id)
    team = _get_team_in_org(db, team_id, organization.id) if team_id is not None else None

    outcome = BulkSendResult()
    for error in validation.errors:
        outcome.results.append({"email": error["email"], "success": False, "error": error["error"]})

    for entry in validation.valid:
        try:
            invite = _insert_invite(db, caller, entry["email"], ROLE_MEMBER, team.id if team else None)
        except Unexpected as e:
            outcome.results.append({"email": entry["email"], "success": False, "error": e.reason})
            continue

        email_sent = notify_safely(
            "bulk_invite",
            notifier.send_invite,
            invite.email,
            caller.display_name or "Team Admin",
            organization.name,
            invite.id,
            ROLE_MEMBER,
            team.name if team else None,
        )
        record_activity(
            db,
            actor_id=caller.id,
            organization_id=organization.id,
            action_type=ActivityType.USER_INVITED,
            target_type=TargetType.USER,
            target_id=invite.id,
            details={
                "email": invite.email,
                "role": ROLE_MEMBER,
                "team_id": team.id if team else None,
                "bulk_invite": True,
            },
        )
        result = {"email": invite.email, "success": True, "inviteId": invite.id, "emailSent": email_sent}
        outcome.results.append(result)

    logger.info(
        f"Bulk invite by user {caller.id} in org {organization.id}: "
        f"{outcome.successful} created, {outcome.failed} failed"
    )
    return outcome
