"""
Invite endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_user_dependency, get_identity_provider
from teamsync.models.invite import Invite
from teamsync.models.user import User
from teamsync.services.email import get_notifier
from teamsync.services.invites import (
    create_invite,
    list_invites,
    resend_invite,
    revoke_invite,
    send_bulk_invites,
    validate_bulk_invites,
    validate_invite,
)

router = APIRouter()


class CreateInviteRequest(BaseModel):
    email: EmailStr
    role: str = Field(..., pattern="^(admin|member)$")
    team_id: Optional[int] = Field(None, alias="teamId")

    class Config:
        populate_by_name = True


class BulkInviteEntry(BaseModel):
    email: EmailStr
    role: str = "member"


class BulkValidateRequest(BaseModel):
    invites: List[BulkInviteEntry]


class BulkSendRequest(BaseModel):
    invites: List[BulkInviteEntry]
    team_id: Optional[int] = Field(None, alias="teamId")

    class Config:
        populate_by_name = True


def _invite_payload(invite: Invite) -> dict:
    return {
        "id": invite.id,
        "email": invite.email,
        "role": invite.role,
        "teamId": invite.team_id,
        "invitedBy": invite.invited_by,
        "accepted": invite.accepted,
        "createdAt": invite.created_at,
        "acceptedAt": invite.accepted_at,
    }


@router.get("")
async def get_invites(
    status_filter: Optional[str] = Query(None, alias="status"),
    role: Optional[str] = None,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    invites = list_invites(db, current_user, status=status_filter, role=role)
    return {"success": True, "invites": [_invite_payload(i) for i in invites]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def post_invite(
    request: CreateInviteRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
    notifier=Depends(get_notifier),
):
    """Invite an email address as admin (owner only) or member."""
    created = create_invite(
        db,
        current_user,
        request.email,
        request.role,
        request.team_id,
        identity_provider=identity_provider,
        notifier=notifier,
    )
    return {
        "success": True,
        "message": "Invitation sent successfully" if created.email_sent else "Invite created, but the email could not be sent",
        "invite": _invite_payload(created.invite),
        "emailSent": created.email_sent,
    }


@router.get("/validate")
async def get_invite_validation(code: int, db: Session = Depends(get_db)):
    """Public: details of a pending invite for the signup form."""
    invite, organization = validate_invite(db, code)
    return {
        "valid": True,
        "invite": {
            "id": invite.id,
            "email": invite.email,
            "role": invite.role,
            "teamId": invite.team_id,
        },
        "organization": {
            "id": organization.id,
            "name": organization.name,
            "colorPalette": organization.color_palette,
        },
    }


@router.delete("/{invite_id}")
async def delete_invite(
    invite_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    revoke_invite(db, invite_id, current_user)
    return {"success": True, "message": "Invite deleted successfully"}


@router.post("/{invite_id}/resend")
async def post_resend_invite(
    invite_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    email_sent = resend_invite(db, invite_id, current_user, notifier)
    return {
        "success": True,
        "message": "Invitation resent successfully" if email_sent else "The email could not be sent",
        "emailSent": email_sent,
    }


@router.post("/bulk/validate")
async def post_bulk_validate(
    request: BulkValidateRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
):
    """Check a batch without creating anything."""
    result = validate_bulk_invites(
        db,
        current_user,
        [entry.model_dump() for entry in request.invites],
        identity_provider=identity_provider,
    )
    return {
        "valid": result.valid,
        "errors": result.errors,
        "quotaCheck": result.quota_summary(),
    }


@router.post("/bulk/send")
async def post_bulk_send(
    request: BulkSendRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    identity_provider=Depends(get_identity_provider),
    notifier=Depends(get_notifier),
):
    outcome = send_bulk_invites(
        db,
        current_user,
        [entry.model_dump() for entry in request.invites],
        request.team_id,
        identity_provider=identity_provider,
        notifier=notifier,
    )
    return {
        "success": outcome.successful > 0,
        "results": outcome.results,
        "summary": {
            "total": len(outcome.results),
            "successful": outcome.successful,
            "failed": outcome.failed,
        },
    }
