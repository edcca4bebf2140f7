"""
Dashboard endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from teamsync.core.database import get_db
from teamsync.core.auth import get_current_user_dependency
from teamsync.models.user import User
from teamsync.services.membership import get_dashboard_stats

router = APIRouter()


@router.get("/stats")
async def get_stats(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    stats = get_dashboard_stats(db, current_user)
    stats["success"] = True
    return stats
