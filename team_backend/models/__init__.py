"""
Team Backend Models

Pydantic models for teams, members and team conversations, the permission
model, and the events broadcast on every mutation.
"""

from .permissions import Perm, Permissions, new_permissions, full_permissions
from .team import (
    Team,
    TeamMember,
    TeamConversation,
    TeamStatus,
    NewTeam,
    TeamUpdateData,
    NewTeamMember,
    TeamList,
    TeamMemberView,
    TeamMemberList,
    TeamConversationList,
    MAX_TEAM_MEMBERS,
)
from .events import TeamEvent, TeamEventType, ConvEvent, ConvEventType

__all__ = [
    "Perm",
    "Permissions",
    "new_permissions",
    "full_permissions",
    "Team",
    "TeamMember",
    "TeamConversation",
    "TeamStatus",
    "NewTeam",
    "TeamUpdateData",
    "NewTeamMember",
    "TeamList",
    "TeamMemberView",
    "TeamMemberList",
    "TeamConversationList",
    "MAX_TEAM_MEMBERS",
    "TeamEvent",
    "TeamEventType",
    "ConvEvent",
    "ConvEventType",
]
