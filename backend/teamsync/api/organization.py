"""
Organization settings endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel, Field
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_user_dependency
from teamsync.models.user import User
from teamsync.services.organization import get_organization_settings, update_organization_settings

router = APIRouter()


class UpdateSettingsRequest(BaseModel):
    name: Optional[str] = None
    color_palette: Optional[dict] = Field(None, alias="colorPalette")

    class Config:
        populate_by_name = True


@router.get("/settings")
async def get_settings_endpoint(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    return get_organization_settings(db, current_user)


@router.patch("/settings")
async def patch_settings(
    request: UpdateSettingsRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    """Owner only: rename the organization or change its colors."""
    organization = update_organization_settings(
        db,
        current_user,
        name=request.name,
        color_palette=request.color_palette,
    )
    return {
        "success": True,
        "message": "Organization settings updated successfully",
        "organization": {
            "id": organization.id,
            "name": organization.name,
            "colorPalette": organization.color_palette,
        },
    }
