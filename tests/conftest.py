"""
Pytest configuration and fixtures for the Team Backend
"""

import uuid
from typing import Dict, List, Optional, Sequence, Tuple
from unittest.mock import AsyncMock, Mock
from uuid import UUID

import pytest
import pytest_asyncio

from team_backend.models.permissions import Perm, Permissions, full_permissions, new_permissions
from team_backend.models.team import (
    NewTeam,
    Team,
    TeamConversation,
    TeamMember,
    TeamStatus,
    TeamUpdateData,
)
from team_backend.services.connection_client import ConnectionClient
from team_backend.services.push_client import PushClient
from team_backend.services.team_service import TeamService
from team_backend.services.team_store import TeamStore


class InMemoryTeamStore(TeamStore):
    """Dictionary backed TeamStore for tests"""

    def __init__(self):
        self.teams: Dict[UUID, Team] = {}
        self.status: Dict[UUID, TeamStatus] = {}
        self.members: Dict[UUID, Dict[UUID, TeamMember]] = {}
        self.conversations: Dict[UUID, Dict[UUID, TeamConversation]] = {}
        self.conv_members: Dict[UUID, List[UUID]] = {}

    async def get_team(self, team_id: UUID) -> Optional[Team]:
        return self.teams.get(team_id)

    async def create_team(self, creator, name, icon, icon_key=None) -> Team:
        team = Team(id=uuid.uuid4(), creator=creator, name=name, icon=icon, icon_key=icon_key)
        self.teams[team.id] = team
        self.status[team.id] = TeamStatus.ACTIVE
        self.members[team.id] = {}
        self.conversations[team.id] = {}
        return team

    async def update_team(self, team_id: UUID, update: TeamUpdateData) -> None:
        self.teams[team_id] = self.teams[team_id].model_copy(update=update.model_dump(exclude_none=True))

    async def delete_team(self, team_id: UUID) -> None:
        for conv_id in self.conversations.pop(team_id, {}):
            self.conv_members.pop(conv_id, None)
        self.members.pop(team_id, None)
        self.status[team_id] = TeamStatus.DELETED

    async def is_team_alive(self, team_id: UUID) -> bool:
        return self.status.get(team_id) == TeamStatus.ACTIVE

    async def list_team_members(self, team_id: UUID) -> List[TeamMember]:
        return list(self.members.get(team_id, {}).values())

    async def get_team_member(self, team_id: UUID, user_id: UUID) -> Optional[TeamMember]:
        return self.members.get(team_id, {}).get(user_id)

    async def add_team_member(self, team_id: UUID, member: TeamMember) -> None:
        self.members.setdefault(team_id, {}).setdefault(member.user, member)

    async def update_team_member(self, team_id: UUID, user_id: UUID, permissions: Permissions) -> None:
        member = self.members[team_id][user_id]
        self.members[team_id][user_id] = member.model_copy(update={"permissions": permissions})

    async def remove_team_member(self, team_id: UUID, user_id: UUID) -> None:
        self.members.get(team_id, {}).pop(user_id, None)

    async def list_team_conversations(self, team_id: UUID) -> List[TeamConversation]:
        return list(self.conversations.get(team_id, {}).values())

    async def get_team_conversation(self, team_id: UUID, conv_id: UUID) -> Optional[TeamConversation]:
        return self.conversations.get(team_id, {}).get(conv_id)

    async def remove_team_conversation(self, team_id: UUID, conv_id: UUID) -> None:
        self.conversations.get(team_id, {}).pop(conv_id, None)
        self.conv_members.pop(conv_id, None)

    async def list_conversation_members(self, conv_id: UUID) -> List[UUID]:
        return list(self.conv_members.get(conv_id, []))

    async def add_conversation_member(self, conv_id: UUID, user_id: UUID) -> None:
        members = self.conv_members.setdefault(conv_id, [])
        if user_id not in members:
            members.append(user_id)

    async def remove_conversation_member(self, conv_id: UUID, user_id: UUID) -> None:
        members = self.conv_members.get(conv_id, [])
        if user_id in members:
            members.remove(user_id)

    async def list_team_ids_for_user(self, user_id, after, limit) -> Tuple[List[UUID], bool]:
        ids = sorted(tid for tid, members in self.members.items() if user_id in members)
        if after is not None:
            ids = [tid for tid in ids if tid > after]
        return ids[:limit], len(ids) > limit

    async def list_team_ids_for_user_among(self, user_id, team_ids: Sequence[UUID]) -> List[UUID]:
        return sorted(tid for tid in set(team_ids) if user_id in self.members.get(tid, {}))

    # Test helpers

    def add_conversation(self, team_id: UUID, managed: bool, members: Sequence[UUID] = ()) -> UUID:
        conv_id = uuid.uuid4()
        self.conversations[team_id][conv_id] = TeamConversation(conversation=conv_id, managed=managed)
        self.conv_members[conv_id] = list(members)
        return conv_id


def make_member(user_id: UUID, *perms: Perm) -> TeamMember:
    return TeamMember(user=user_id, permissions=new_permissions(perms))


@pytest.fixture
def store():
    return InMemoryTeamStore()


@pytest.fixture
def connections():
    """Mock connection client: everybody is connected"""
    client = Mock(spec=ConnectionClient)
    client.ensure_connected = AsyncMock(return_value=None)
    return client


@pytest.fixture
def pushes():
    """Mock push client recording deliveries"""
    client = Mock(spec=PushClient)
    client.deliver = AsyncMock(return_value=True)
    client.deliver_batch = AsyncMock(return_value=True)
    return client


@pytest.fixture
def team_service(store, connections, pushes):
    return TeamService(store=store, connections=connections, pushes=pushes)


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def conn_id():
    return "conn-1"


@pytest_asyncio.fixture
async def team(store, owner_id):
    """A team owned by `owner_id` with full permissions and no other members"""
    created = await store.create_team(owner_id, "Engineering", "icon-ref")
    await store.add_team_member(created.id, TeamMember(user=owner_id, permissions=full_permissions()))
    return created


@pytest.fixture
def new_team_body():
    return NewTeam(name="Engineering", icon="icon-ref")
