"""
Organization service: owner and invited signup, organization settings and
tier reference data.
"""
import logging
import re
from typing import Optional
from urllib.parse import quote
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from teamsync.core.config import DEFAULT_TIER_NAME
from teamsync.core.errors import Conflict, Forbidden, MembershipError, NotFound, Unexpected, ValidationError
from teamsync.models.organization import Organization, Tier
from teamsync.models.user import User, ROLE_OWNER
from teamsync.services.audit import ActivityType, TargetType, record_activity
from teamsync.services.identity import IdentityProviderError, normalize_email
from teamsync.services.invites import accept_invite, validate_invite
from teamsync.services.quota import get_quota_info

logger = logging.getLogger(__name__)

# name -> (max_members, max_teams); -1 is unlimited
DEFAULT_TIERS = {
    "free": (25, 5),
    "pro": (100, 20),
    "enterprise": (-1, -1),
}

DEFAULT_COLOR_PALETTE = {
    "primary": "#3B82F6",
    "accent": "#8B5CF6",
    "background": "#F3F4F6",
}
PALETTE_KEYS = ("primary", "accent", "background")
HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
ORGANIZATION_NAME_MAX_LENGTH = 100


def seed_default_tiers(db: Session) -> list[Tier]:
    """Insert the default tiers that are missing. Safe to run repeatedly."""
    existing = {tier.name for tier in db.query(Tier).all()}
    created = []
    for name, (max_members, max_teams) in DEFAULT_TIERS.items():
        if name in existing:
            continue
        tier = Tier(name=name, max_members=max_members, max_teams=max_teams)
        db.add(tier)
        created.append(tier)
    if created:
        db.commit()
    return created


def generate_avatar_url(first_name: str, last_name: str) -> str:
    username = f"{first_name}+{last_name}"
    return f"https://avatar.iran.liara.run/username?username={quote(username, safe='')}"


def validate_color_palette(color_palette: Optional[dict]) -> Optional[dict]:
    """Return the palette restricted to its three keys, or raise ValidationError."""
    if color_palette is None:
        return None
    if not isinstance(color_palette, dict) or not all(color_palette.get(k) for k in PALETTE_KEYS):
        raise ValidationError("Color palette must contain primary, accent, and background colors")
    if not all(HEX_COLOR_RE.match(str(color_palette[k])) for k in PALETTE_KEYS):
        raise ValidationError("All colors must be valid hex format (e.g., #3B82F6)")
    return {k: color_palette[k] for k in PALETTE_KEYS}


def _clean_organization_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Organization name must be a non-empty string")
    if len(name) > ORGANIZATION_NAME_MAX_LENGTH:
        raise ValidationError(f"Organization name must be {ORGANIZATION_NAME_MAX_LENGTH} characters or less")
    return name


def _create_owner_row(db: Session, identity_id: int, display_name: str, avatar_url: str) -> User:
    user = User(
        id=identity_id,
        organization_id=None,
        team_id=None,
        role=ROLE_OWNER,
        display_name=display_name,
        avatar_url=avatar_url,
    )
    db.add(user)
    db.commit()
    return user


def _create_organization_row(db: Session, name: str, tier: Tier, color_palette: Optional[dict]) -> Organization:
    organization = Organization(name=name, tier_id=tier.id, color_palette=color_palette)
    db.add(organization)
    db.commit()
    db.refresh(organization)
    return organization


def _link_owner(db: Session, user: User, organization: Organization) -> None:
    user.organization_id = organization.id
    db.commit()


def _compensate_owner_signup(
    db: Session,
    identity_provider,
    identity_id: int,
    organization_id: Optional[int],
) -> None:
    """Undo a partially completed owner signup; each step is attempted on its own."""
    try:
        db.query(User).filter(User.id == identity_id).delete(synchronize_session=False)
        if organization_id is not None:
            db.query(Organization).filter(Organization.id == organization_id).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Signup compensation failed for identity {identity_id}: {e}", exc_info=True)
    try:
        identity_provider.delete_identity(identity_id)
    except IdentityProviderError as e:
        logger.error(f"Signup compensation could not delete identity {identity_id}: {e}")


def signup_owner(
    db: Session,
    identity_provider,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    organization_name: str,
    color_palette: Optional[dict] = None,
) -> tuple[User, Organization]:
    """
    Create an identity, its owner row and a new organization on the default tier.

    The owner row is created first without an organization, then linked once
    the organization exists. Any failure after the identity is created undoes
    everything created so far.

    Returns:
        (owner, organization)

    Raises:
        Conflict: the email already has an account
        ValidationError: bad organization name or color palette
        Unexpected: store failure (after compensation)
    """
    organization_name = _clean_organization_name(organization_name)
    color_palette = validate_color_palette(color_palette)

    if identity_provider.find_identity_by_email(email):
        raise Conflict("An account with this email already exists")

    tier = db.query(Tier).filter(Tier.name == DEFAULT_TIER_NAME).first()
    if not tier:
        logger.error(f"Default tier '{DEFAULT_TIER_NAME}' is missing; run seed_default_tiers")
        raise Unexpected("Default tier is not configured")

    display_name = f"{first_name} {last_name}".strip()
    identity_id = identity_provider.create_identity(
        email,
        password,
        {"display_name": display_name, "first_name": first_name, "last_name": last_name},
    )

    organization_id = None
    try:
        user = _create_owner_row(db, identity_id, display_name, generate_avatar_url(first_name, last_name))
        organization = _create_organization_row(db, organization_name, tier, color_palette)
        organization_id = organization.id
        _link_owner(db, user, organization)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Owner signup failed for {email}: {e}", exc_info=True)
        _compensate_owner_signup(db, identity_provider, identity_id, organization_id)
        raise Unexpected("Failed to create organization")

    db.refresh(user)
    record_activity(
        db,
        actor_id=user.id,
        organization_id=organization.id,
        action_type=ActivityType.ORGANIZATION_CREATED,
        target_type=TargetType.ORGANIZATION,
        target_id=organization.id,
        details={"organization_name": organization.name},
    )
    logger.info(f"Owner {user.id} created organization {organization.id} '{organization.name}'")
    return user, organization


def signup_invited(
    db: Session,
    identity_provider,
    invite_id: int,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> tuple[User, Organization]:
    """
    Create an identity for an invited email and accept the invite with it.

    The identity is deleted again if acceptance fails, so a lost race leaves
    no orphaned credential.
    """
    invite, organization = validate_invite(db, invite_id)
    if normalize_email(email) != invite.email:
        raise Forbidden("Email does not match the invitation")
    if identity_provider.find_identity_by_email(email):
        raise Conflict("An account with this email already exists")

    display_name = f"{first_name} {last_name}".strip()
    identity_id = identity_provider.create_identity(
        email,
        password,
        {"display_name": display_name, "first_name": first_name, "last_name": last_name},
    )

    try:
        user = accept_invite(
            db,
            invite_id,
            identity_id,
            display_name,
            avatar_url=generate_avatar_url(first_name, last_name),
        )
    except MembershipError:
        try:
            identity_provider.delete_identity(identity_id)
        except IdentityProviderError as e:
            logger.error(f"Could not delete identity {identity_id} after failed invite acceptance: {e}")
        raise

    return user, organization


def _get_organization(db: Session, organization_id: int) -> Organization:
    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if not organization:
        raise NotFound("Organization not found")
    return organization


def get_organization_settings(db: Session, caller: User) -> dict:
    """Organization name, palette, tier and usage, plus what the caller may edit."""
    organization = _get_organization(db, caller.organization_id)
    owner = db.query(User).filter(
        User.organization_id == organization.id,
        User.role == ROLE_OWNER
    ).first()
    info = get_quota_info(db, organization.id)

    return {
        "organization": {
            "id": organization.id,
            "name": organization.name,
            "colorPalette": organization.color_palette or dict(DEFAULT_COLOR_PALETTE),
            "createdAt": organization.created_at,
            "ownerId": owner.id if owner else None,
            "tier": {
                "id": organization.tier.id,
                "name": organization.tier.name,
                "maxMembers": info.limits.max_members,
                "maxTeams": info.limits.max_teams,
            },
        },
        "usage": {
            "members": {
                "current": info.usage.members,
                "max": info.limits.max_members,
                "percentage": info.usage_percent["members"],
            },
            "teams": {
                "current": info.usage.teams,
                "max": info.limits.max_teams,
                "percentage": info.usage_percent["teams"],
            },
        },
        "permissions": {
            "canEdit": caller.is_owner(),
            "isOwner": caller.is_owner(),
        },
    }


def update_organization_settings(
    db: Session,
    caller: User,
    name: Optional[str] = None,
    color_palette: Optional[dict] = None,
) -> Organization:
    """Rename the organization or change its palette. Owner only."""
    if not caller.is_owner():
        raise Forbidden("Only organization owners can update settings")
    if name is None and color_palette is None:
        raise ValidationError("At least one field (name or colorPalette) must be provided")

    if name is not None:
        name = _clean_organization_name(name)
    if color_palette is not None:
        color_palette = validate_color_palette(color_palette)

    organization = _get_organization(db, caller.organization_id)
    details = {}
    try:
        if name is not None:
            organization.name = name
            details["name"] = name
        if color_palette is not None:
            organization.color_palette = color_palette
            details["color_palette_updated"] = True
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update organization {organization.id}: {e}", exc_info=True)
        raise Unexpected("Failed to update organization settings")
    db.refresh(organization)

    details["organization_name"] = organization.name
    record_activity(
        db,
        actor_id=caller.id,
        organization_id=organization.id,
        action_type=ActivityType.ORGANIZATION_UPDATED,
        target_type=TargetType.ORGANIZATION,
        target_id=organization.id,
        details=details,
    )
    return organization
