"""
Team endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel, Field
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_user_dependency
from teamsync.models.user import User
from teamsync.services.membership import (
    create_team,
    delete_team,
    get_team,
    list_manager_candidates,
    list_teams,
    update_team,
)

router = APIRouter()


class CreateTeamRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    manager_id: Optional[int] = Field(None, alias="managerId")

    class Config:
        populate_by_name = True


class UpdateTeamRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    manager_id: Optional[int] = Field(None, alias="managerId")

    class Config:
        populate_by_name = True


@router.get("")
async def get_teams(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    return {"success": True, "teams": list_teams(db, current_user)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def post_team(
    request: CreateTeamRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    team = create_team(db, current_user, request.name, request.manager_id)
    return {"success": True, "message": "Team created successfully", "team": team}


@router.get("/admins")
async def get_manager_candidates(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    """Admins the owner can pick as team manager."""
    return {"success": True, "admins": list_manager_candidates(db, current_user)}


@router.get("/{team_id}")
async def get_team_details(
    team_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    return {"success": True, "team": get_team(db, current_user, team_id)}


@router.patch("/{team_id}")
async def patch_team(
    team_id: int,
    request: UpdateTeamRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    team = update_team(db, current_user, team_id, name=request.name, manager_id=request.manager_id)
    return {"success": True, "message": "Team updated successfully", "team": team}


@router.delete("/{team_id}")
async def delete_team_endpoint(
    team_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    return delete_team(db, current_user, team_id)
