"""
Team Models for the Team Backend

Pydantic models for teams, team members and team conversations, plus the
request bodies and list responses of the teams API.

Storage layout (see services/team_store.py):
- teams: team records with liveness status
- team_members: membership with self/copy permission sets
- team_conversations: conversations owned by a team, managed or not
- conversation_members: conversation membership, independent of the team
"""

from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from team_backend.models.permissions import Permissions


# Hard cap, checked before adding a member
MAX_TEAM_MEMBERS = 128

# Members that may be listed when creating a team (the owner is added on top)
MAX_INITIAL_MEMBERS = MAX_TEAM_MEMBERS - 1


class TeamStatus(str, Enum):
    """Team liveness; only ACTIVE teams are alive"""
    ACTIVE = "active"
    PENDING_DELETE = "pending_delete"
    DELETED = "deleted"


class Team(BaseModel):
    """Complete team record"""
    id: UUID = Field(..., description="Team UUID")
    creator: UUID = Field(..., description="User who created the team")
    name: str = Field(..., min_length=1, max_length=256, description="Team name")
    icon: str = Field(..., min_length=1, max_length=256, description="Icon asset reference")
    icon_key: Optional[str] = Field(None, min_length=1, max_length=256, description="Icon asset key")

    model_config = ConfigDict(frozen=True, from_attributes=True)


class TeamMember(BaseModel):
    """Team member with permissions"""
    user: UUID = Field(..., description="User UUID")
    permissions: Permissions = Field(..., description="Member's self/copy permission sets")
    invited_by: Optional[UUID] = Field(None, description="User who added this member (None for the owner)")

    model_config = ConfigDict(frozen=True, from_attributes=True)


class TeamConversation(BaseModel):
    """Conversation owned by a team"""
    conversation: UUID = Field(..., description="Conversation UUID")
    managed: bool = Field(False, description="Membership follows team membership")

    model_config = ConfigDict(frozen=True, from_attributes=True)


# Request bodies

class NewTeam(BaseModel):
    """Request model for creating a team"""
    name: str = Field(..., min_length=1, max_length=256)
    icon: str = Field(..., min_length=1, max_length=256)
    icon_key: Optional[str] = Field(None, min_length=1, max_length=256)
    members: Optional[List[TeamMember]] = Field(
        None,
        min_length=1,
        max_length=MAX_INITIAL_MEMBERS,
        description="Initial members besides the creator"
    )


class TeamUpdateData(BaseModel):
    """Request model for updating a team; at least one field is required"""
    name: Optional[str] = Field(None, min_length=1, max_length=256)
    icon: Optional[str] = Field(None, min_length=1, max_length=256)
    icon_key: Optional[str] = Field(None, min_length=1, max_length=256)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def require_update(self) -> "TeamUpdateData":
        if self.name is None and self.icon is None and self.icon_key is None:
            raise ValueError("no update data specified")
        return self


class NewTeamMember(BaseModel):
    """Request model for adding a member or changing a member's permissions"""
    member: TeamMember


# Responses

class TeamList(BaseModel):
    """Response model for listing teams"""
    teams: List[Team]
    has_more: bool


class TeamMemberView(BaseModel):
    """Team member as seen by a requester; permissions hidden without get_member_permissions"""
    user: UUID
    permissions: Optional[Permissions] = None
    invited_by: Optional[UUID] = None


class TeamMemberList(BaseModel):
    """Response model for listing team members"""
    members: List[TeamMemberView]


class TeamConversationList(BaseModel):
    """Response model for listing team conversations"""
    conversations: List[TeamConversation]


def member_view(member: TeamMember, with_permissions: bool) -> TeamMemberView:
    if not with_permissions:
        return TeamMemberView(user=member.user)
    return TeamMemberView(
        user=member.user,
        permissions=member.permissions,
        invited_by=member.invited_by
    )
