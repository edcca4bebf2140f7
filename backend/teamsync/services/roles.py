"""
Role transition validator.

One table decides which (from_role -> to_role) changes are legal and what
they imply for the target's team. Every mutation path that touches role or
team_id goes through validate_transition, so the rules live here only.
The validator is pure: team existence and org scoping are checked by the
membership service before it applies the result.
"""
from dataclasses import dataclass
from typing import Optional
from teamsync.core.errors import Forbidden, NoOpError, ValidationError
from teamsync.models.user import ROLE_ADMIN, ROLE_MEMBER, ROLE_OWNER, ROLES

PROMOTION = "promotion"
DEMOTION = "demotion"
TEAM_MOVE = "team_move"


@dataclass(frozen=True)
class RoleTransition:
    """Accepted change and the team assignment it requires."""
    kind: str
    from_role: str
    to_role: str
    from_team_id: Optional[int]
    to_team_id: Optional[int]

    @property
    def clears_team(self) -> bool:
        return self.to_team_id is None and self.from_team_id is not None

    @property
    def attaches_team(self) -> bool:
        return self.to_team_id is not None

    @property
    def leaves_management(self) -> bool:
        """The target stops being an admin, so it can no longer manage teams."""
        return self.from_role == ROLE_ADMIN and self.to_role != ROLE_ADMIN


def _promote(current_team_id: Optional[int], new_team_id: Optional[int]) -> tuple[str, Optional[int]]:
    # Admins do not belong to a team; any team affiliation is dropped
    return PROMOTION, None


def _demote(current_team_id: Optional[int], new_team_id: Optional[int]) -> tuple[str, Optional[int]]:
    if new_team_id is None:
        raise ValidationError("team required: a team must be assigned when demoting an admin to member")
    return DEMOTION, new_team_id


def _move(current_team_id: Optional[int], new_team_id: Optional[int]) -> tuple[str, Optional[int]]:
    if new_team_id is None:
        raise ValidationError("team required: a target team must be specified")
    if new_team_id == current_team_id:
        raise NoOpError("Member is already in this team")
    return TEAM_MOVE, new_team_id


# (from_role, to_role) -> rule. Pairs not listed are rejected.
TRANSITIONS = {
    (ROLE_MEMBER, ROLE_ADMIN): _promote,
    (ROLE_ADMIN, ROLE_MEMBER): _demote,
    (ROLE_MEMBER, ROLE_MEMBER): _move,
}


def validate_transition(
    caller_role: str,
    target_role: str,
    new_role: str,
    current_team_id: Optional[int] = None,
    new_team_id: Optional[int] = None,
) -> RoleTransition:
    """
    Decide whether the caller may move the target from target_role to new_role.

    Raises:
        Forbidden: caller is not the owner, or the owner role is involved
        ValidationError: unknown role, or a required team is missing
        NoOpError: the change is already in effect
    """
    if new_role not in ROLES:
        raise ValidationError(f"Unknown role '{new_role}'")
    if caller_role != ROLE_OWNER:
        raise Forbidden("Only organization owners can change roles or move members between teams")
    if target_role == ROLE_OWNER:
        raise Forbidden("Cannot change the organization owner's role")
    if new_role == ROLE_OWNER:
        raise Forbidden("Ownership cannot be assigned; an organization has exactly one owner")
    if target_role == new_role == ROLE_ADMIN:
        raise NoOpError(f"User is already {new_role}")

    rule = TRANSITIONS.get((target_role, new_role))
    if rule is None:
        raise ValidationError(f"Cannot change role from {target_role} to {new_role}")

    kind, to_team_id = rule(current_team_id, new_team_id)
    return RoleTransition(
        kind=kind,
        from_role=target_role,
        to_role=new_role,
        from_team_id=current_team_id,
        to_team_id=to_team_id,
    )


def validate_role_change(
    caller_role: str,
    target_role: str,
    new_role: str,
    current_team_id: Optional[int] = None,
    new_team_id: Optional[int] = None,
) -> RoleTransition:
    """Role change entry point: member->member is a team move, not a role change."""
    if target_role == new_role == ROLE_MEMBER:
        raise NoOpError(f"User is already {new_role}")
    return validate_transition(caller_role, target_role, new_role, current_team_id, new_team_id)


def validate_team_move(
    caller_role: str,
    target_role: str,
    current_team_id: Optional[int],
    new_team_id: Optional[int],
) -> RoleTransition:
    """Team move entry point: only members sit in a team."""
    if caller_role == ROLE_OWNER and target_role != ROLE_MEMBER:
        raise ValidationError("Can only move members between teams. Owners and admins cannot be moved.")
    return validate_transition(caller_role, target_role, ROLE_MEMBER, current_team_id, new_team_id)
