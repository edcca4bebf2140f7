"""
Activity log endpoint.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_user_dependency
from teamsync.models.user import User
from teamsync.services.audit import list_activity

router = APIRouter()


@router.get("")
async def get_activity(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    action_type: Optional[str] = Query(None, alias="actionType"),
    page: int = 1,
    limit: int = 20,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    result = list_activity(
        db,
        current_user,
        start_date=start_date,
        end_date=end_date,
        action_type=action_type,
        page=page,
        limit=limit,
    )
    result["success"] = True
    return result
