"""
Admin listing endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_user_dependency, get_identity_provider
from teamsync.models.user import User
from teamsync.services.membership import list_admins

router = APIRouter()


@router.get("")
async def get_admins(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Owner only: every admin of the organization."""
    return {"success": True, "admins": list_admins(db, current_user, identity_provider=identity_provider)}
