"""
Database models.
"""
from teamsync.models.organization import Tier, Organization
from teamsync.models.user import User
from teamsync.models.team import Team
from teamsync.models.invite import Invite
from teamsync.models.activity_log import ActivityLog
from teamsync.models.identity import Identity

__all__ = [
    "Tier",
    "Organization",
    "User",
    "Team",
    "Invite",
    "ActivityLog",
    "Identity",
]
