"""
Membership service: user removal, team moves, role changes, teams, member
directory and the caller's own profile.
"""
from teamsync.services.membership.membership_service import (
    change_role,
    get_team_in_org,
    get_user_in_org,
    move_member,
    remove_member,
)
from teamsync.services.membership.team_service import (
    create_team,
    delete_team,
    get_team,
    list_teams,
    update_team,
)
from teamsync.services.membership.directory import (
    list_admins,
    list_manager_candidates,
    list_members,
)
from teamsync.services.membership.profile import (
    get_dashboard_stats,
    get_profile,
    update_profile,
)
from teamsync.services.membership.deletion_plan import (
    DeletionAborted,
    DeletionStep,
    StepOutcome,
    build_deletion_plan,
    execute_plan,
)

__all__ = [
    "change_role",
    "get_team_in_org",
    "get_user_in_org",
    "move_member",
    "remove_member",
    "create_team",
    "delete_team",
    "get_team",
    "list_teams",
    "update_team",
    "list_admins",
    "list_manager_candidates",
    "list_members",
    "get_dashboard_stats",
    "get_profile",
    "update_profile",
    "DeletionAborted",
    "DeletionStep",
    "StepOutcome",
    "build_deletion_plan",
    "execute_plan",
]
