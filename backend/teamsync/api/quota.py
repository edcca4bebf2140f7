"""
Quota endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_user_dependency
from teamsync.models.user import User
from teamsync.services.quota import check_quota, get_quota_info

router = APIRouter()


@router.get("")
async def get_quota(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    """Tier usage for the caller's organization and whether it can grow."""
    info = get_quota_info(db, current_user.organization_id)
    payload = info.to_dict()
    payload["success"] = True
    payload["canAddMember"] = check_quota(db, current_user.organization_id, "member").allowed
    payload["canAddTeam"] = check_quota(db, current_user.organization_id, "team").allowed
    return payload
