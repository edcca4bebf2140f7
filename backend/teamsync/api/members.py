"""
Member endpoints: listing, role changes, team moves and removal.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel, Field
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_user_dependency, get_identity_provider
from teamsync.models.user import User
from teamsync.services.email import get_notifier
from teamsync.services.membership import change_role, list_members, move_member, remove_member

router = APIRouter()


class ChangeRoleRequest(BaseModel):
    role: str
    team_id: Optional[int] = Field(None, alias="teamId")

    class Config:
        populate_by_name = True


class MoveMemberRequest(BaseModel):
    team_id: int = Field(..., alias="teamId")

    class Config:
        populate_by_name = True


@router.get("")
async def get_members(
    team: Optional[int] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Members and pending member invites the caller may manage."""
    result = list_members(
        db,
        current_user,
        team_id=team,
        status=status_filter,
        search=search,
        identity_provider=identity_provider,
    )
    result["success"] = True
    return result


@router.patch("/{user_id}")
async def patch_member_role(
    user_id: int,
    request: ChangeRoleRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
    notifier=Depends(get_notifier),
):
    """Promote a member to admin, or demote an admin into a team."""
    return change_role(
        db,
        current_user,
        user_id,
        request.role,
        request.team_id,
        identity_provider=identity_provider,
        notifier=notifier,
    )


@router.patch("/{user_id}/team")
async def patch_member_team(
    user_id: int,
    request: MoveMemberRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    return move_member(db, current_user, user_id, request.team_id)


@router.delete("/{user_id}")
async def delete_member(
    user_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
    notifier=Depends(get_notifier),
):
    """Remove a member or admin and delete their account."""
    return remove_member(
        db,
        current_user,
        user_id,
        identity_provider=identity_provider,
        notifier=notifier,
    )
