"""
Ordered deletion plan for removing a user from an organization.

The plan is data: a list of named steps, each either hard or advisory. The
executor runs them in order, aborts on the first hard failure and only logs
advisory failures. Hard steps share the caller's transaction; the membership
row step commits it, so a failure before that point leaves nothing behind
once the caller rolls back.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional
from sqlalchemy.orm import Session
from teamsync.models.activity_log import ActivityLog
from teamsync.models.invite import Invite
from teamsync.models.team import Team
from teamsync.models.user import User

logger = logging.getLogger(__name__)

CLEAR_AUTHORED_ROWS = "clear-authored-rows"
REASSIGN_CREATED_BY = "reassign-created-by"
DELETE_MEMBERSHIP_ROW = "delete-membership-row"
DELETE_IDENTITY = "delete-identity"


class StepFailed(Exception):
    """A step ran but did not achieve its effect."""


class DeletionAborted(Exception):
    """A hard step failed; later steps were not run."""

    def __init__(self, step: str, cause: BaseException):
        super().__init__(f"Deletion step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause


@dataclass(frozen=True)
class DeletionStep:
    name: str
    action: Callable[[], Any]
    advisory: bool = False


@dataclass(frozen=True)
class StepOutcome:
    name: str
    ok: bool
    error: Optional[str] = None


def execute_plan(steps: list[DeletionStep]) -> list[StepOutcome]:
    """
    Run steps in order.

    Returns:
        One outcome per step that ran

    Raises:
        DeletionAborted: a hard step raised
    """
    outcomes = []
    for step in steps:
        try:
            step.action()
        except Exception as e:
            if not step.advisory:
                logger.error(f"Deletion step '{step.name}' failed, aborting plan: {e}")
                raise DeletionAborted(step.name, e) from e
            logger.warning(f"Advisory deletion step '{step.name}' failed: {e}")
            outcomes.append(StepOutcome(name=step.name, ok=False, error=str(e)))
            continue
        outcomes.append(StepOutcome(name=step.name, ok=True))
    return outcomes


def _clear_authored_rows(db: Session, user_id: int) -> None:
    db.query(ActivityLog).filter(ActivityLog.actor_id == user_id).delete(synchronize_session=False)


def _reassign_created_by(db: Session, user_id: int) -> None:
    db.query(Team).filter(Team.created_by == user_id).update(
        {Team.created_by: None}, synchronize_session=False
    )
    db.query(Team).filter(Team.manager_id == user_id).update(
        {Team.manager_id: None}, synchronize_session=False
    )
    db.query(Invite).filter(
        Invite.invited_by == user_id,
        Invite.accepted == False  # noqa: E712
    ).delete(synchronize_session=False)
    db.query(Invite).filter(
        Invite.invited_by == user_id,
        Invite.accepted == True  # noqa: E712
    ).update({Invite.invited_by: None}, synchronize_session=False)


def _delete_membership_row(db: Session, user_id: int) -> None:
    deleted = db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    if deleted != 1:
        raise StepFailed(f"expected to delete 1 user row for {user_id}, deleted {deleted}")
    db.commit()


def build_deletion_plan(db: Session, user_id: int, identity_provider) -> list[DeletionStep]:
    """Steps that remove user_id and everything that points at it."""
    return [
        DeletionStep(CLEAR_AUTHORED_ROWS, lambda: _clear_authored_rows(db, user_id)),
        DeletionStep(REASSIGN_CREATED_BY, lambda: _reassign_created_by(db, user_id)),
        DeletionStep(DELETE_MEMBERSHIP_ROW, lambda: _delete_membership_row(db, user_id)),
        DeletionStep(DELETE_IDENTITY, lambda: identity_provider.delete_identity(user_id), advisory=True),
    ]
