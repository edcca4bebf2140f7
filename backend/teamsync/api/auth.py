"""
Authentication endpoints: signup (owner or invited), signin, logout and the
current user.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from teamsync.core.database import get_db
from teamsync.core.auth import (
    create_session,
    get_current_identity,
    get_current_user_dependency,
    get_identity_provider,
)
from teamsync.core.config import SESSION_COOKIE_NAME, SESSION_MAX_AGE_HOURS
from teamsync.core.errors import Unauthorized, ValidationError
from teamsync.models.organization import Organization
from teamsync.models.user import User
from teamsync.services.identity import IdentityRecord
from teamsync.services.organization import signup_invited, signup_owner

router = APIRouter()


class ColorPalette(BaseModel):
    primary: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    accent: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    background: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")


class SignupRequest(BaseModel):
    """Owner signup when invite_code is absent, invited signup otherwise."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=50, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=50, alias="lastName")
    organization_name: Optional[str] = Field(None, max_length=100, alias="organizationName")
    color_palette: Optional[ColorPalette] = Field(None, alias="colorPalette")
    invite_code: Optional[int] = Field(None, alias="inviteCode")

    class Config:
        populate_by_name = True


class SigninRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


def _user_payload(user: User, email: str) -> dict:
    return {
        "id": user.id,
        "email": email,
        "displayName": user.display_name,
        "avatarUrl": user.avatar_url,
        "role": user.role,
        "organizationId": user.organization_id,
        "teamId": user.team_id,
    }


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Create an account, either founding an organization or accepting an invite."""
    if request.invite_code is not None:
        user, organization = signup_invited(
            db,
            identity_provider,
            invite_id=request.invite_code,
            email=request.email,
            password=request.password,
            first_name=request.first_name,
            last_name=request.last_name,
        )
        message = "Account created successfully"
    else:
        if not request.organization_name or not request.organization_name.strip():
            raise ValidationError("Organization name is required")
        user, organization = signup_owner(
            db,
            identity_provider,
            email=request.email,
            password=request.password,
            first_name=request.first_name,
            last_name=request.last_name,
            organization_name=request.organization_name,
            color_palette=request.color_palette.model_dump() if request.color_palette else None,
        )
        message = "Account and organization created successfully"

    return {
        "success": True,
        "message": message,
        "user": _user_payload(user, request.email.lower()),
        "organization": {"id": organization.id, "name": organization.name},
    }


@router.post("/signin")
async def signin(
    request: SigninRequest,
    response: Response,
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Login with email and password."""
    identity = identity_provider.authenticate(request.email, request.password)
    if not identity:
        raise Unauthorized("Invalid email or password")

    user = db.query(User).filter(User.id == identity.id).first()
    if not user or user.organization_id is None:
        raise Unauthorized("User profile not found")

    session_token = create_session(identity.id, identity.email)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_token,
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
        max_age=SESSION_MAX_AGE_HOURS * 3600,
        path="/",
    )
    return {"success": True, "user": _user_payload(user, identity.email)}


@router.post("/logout")
async def logout(response: Response):
    """Drop the session cookie. Tokens are stateless, so nothing else to clear."""
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
async def get_me(
    identity: IdentityRecord = Depends(get_current_identity),
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    """Current user with their organization."""
    organization = db.query(Organization).filter(Organization.id == current_user.organization_id).first()
    return {
        "success": True,
        "user": _user_payload(current_user, identity.email),
        "organization": {
            "id": organization.id,
            "name": organization.name,
            "colorPalette": organization.color_palette,
            "tier": organization.tier.name,
        } if organization else None,
    }
