"""
Profile endpoints for the signed-in user.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_identity, get_current_user_dependency
from teamsync.models.user import User
from teamsync.services.identity import IdentityRecord
from teamsync.services.membership import get_profile, update_profile

router = APIRouter()


class UpdateProfileRequest(BaseModel):
    display_name: str = Field(..., alias="displayName")

    class Config:
        populate_by_name = True


@router.get("")
async def get_profile_endpoint(
    identity: IdentityRecord = Depends(get_current_identity),
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    return {"success": True, "profile": get_profile(db, current_user, identity.email)}


@router.patch("")
async def patch_profile(
    request: UpdateProfileRequest,
    identity: IdentityRecord = Depends(get_current_identity),
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    """Change the display name."""
    profile = update_profile(db, current_user, identity.email, request.display_name)
    return {"success": True, "message": "Profile updated successfully", "profile": profile}
