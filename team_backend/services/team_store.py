"""
Team Store

Durable team, membership and team-conversation records. The orchestrator
only talks to the abstract TeamStore; PostgreSQLTeamStore is the production
implementation. Atomicity of concurrent mutations against one team is the
store's responsibility.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from team_backend.core.postgresql_client import PostgreSQLClient
from team_backend.models.permissions import Perm, Permissions
from team_backend.models.team import (
    Team,
    TeamConversation,
    TeamMember,
    TeamStatus,
    TeamUpdateData,
)

logger = logging.getLogger(__name__)


class TeamStore(ABC):
    """Abstract store interface consumed by the team service"""

    # Teams
    @abstractmethod
    async def get_team(self, team_id: UUID) -> Optional[Team]:
        """Get a team record, None if it does not exist"""
        pass

    @abstractmethod
    async def create_team(
        self,
        creator: UUID,
        name: str,
        icon: str,
        icon_key: Optional[str] = None
    ) -> Team:
        """Create an active team with a fresh id"""
        pass

    @abstractmethod
    async def update_team(self, team_id: UUID, update: TeamUpdateData) -> None:
        """Apply the fields set in `update`"""
        pass

    @abstractmethod
    async def delete_team(self, team_id: UUID) -> None:
        """Delete the team with its memberships and conversation associations"""
        pass

    @abstractmethod
    async def is_team_alive(self, team_id: UUID) -> bool:
        """True if the team exists and is active"""
        pass

    # Members
    @abstractmethod
    async def list_team_members(self, team_id: UUID) -> List[TeamMember]:
        pass

    @abstractmethod
    async def get_team_member(self, team_id: UUID, user_id: UUID) -> Optional[TeamMember]:
        pass

    @abstractmethod
    async def add_team_member(self, team_id: UUID, member: TeamMember) -> None:
        """Insert a membership; an existing membership is left unchanged"""
        pass

    @abstractmethod
    async def update_team_member(self, team_id: UUID, user_id: UUID, permissions: Permissions) -> None:
        pass

    @abstractmethod
    async def remove_team_member(self, team_id: UUID, user_id: UUID) -> None:
        pass

    # Team conversations
    @abstractmethod
    async def list_team_conversations(self, team_id: UUID) -> List[TeamConversation]:
        pass

    @abstractmethod
    async def get_team_conversation(self, team_id: UUID, conv_id: UUID) -> Optional[TeamConversation]:
        pass

    @abstractmethod
    async def remove_team_conversation(self, team_id: UUID, conv_id: UUID) -> None:
        pass

    # Conversation members
    @abstractmethod
    async def list_conversation_members(self, conv_id: UUID) -> List[UUID]:
        pass

    @abstractmethod
    async def add_conversation_member(self, conv_id: UUID, user_id: UUID) -> None:
        pass

    @abstractmethod
    async def remove_conversation_member(self, conv_id: UUID, user_id: UUID) -> None:
        pass

    # Team listings
    @abstractmethod
    async def list_team_ids_for_user(
        self,
        user_id: UUID,
        after: Optional[UUID],
        limit: int
    ) -> Tuple[List[UUID], bool]:
        """
        Page of team ids the user belongs to, in ascending id order.

        Returns (ids, has_more). `after` is exclusive.
        """
        pass

    @abstractmethod
    async def list_team_ids_for_user_among(self, user_id: UUID, team_ids: Sequence[UUID]) -> List[UUID]:
        """Those of `team_ids` the user belongs to"""
        pass


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS teams (
    id          UUID PRIMARY KEY,
    creator     UUID NOT NULL,
    name        TEXT NOT NULL,
    icon        TEXT NOT NULL,
    icon_key    TEXT,
    status      TEXT NOT NULL DEFAULT 'active',
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS team_members (
    team_id     UUID NOT NULL REFERENCES teams(id),
    user_id     UUID NOT NULL,
    perms_self  TEXT[] NOT NULL,
    perms_copy  TEXT[] NOT NULL,
    invited_by  UUID,
    PRIMARY KEY (team_id, user_id)
);
CREATE INDEX IF NOT EXISTS idx_team_members_user ON team_members (user_id, team_id);

CREATE TABLE IF NOT EXISTS team_conversations (
    team_id     UUID NOT NULL REFERENCES teams(id),
    conv_id     UUID NOT NULL,
    managed     BOOLEAN NOT NULL DEFAULT FALSE,
    PRIMARY KEY (team_id, conv_id)
);

CREATE TABLE IF NOT EXISTS conversation_members (
    conv_id     UUID NOT NULL,
    user_id     UUID NOT NULL,
    PRIMARY KEY (conv_id, user_id)
);
"""


def _row_to_team(row: Dict[str, Any]) -> Team:
    return Team(
        id=row["id"],
        creator=row["creator"],
        name=row["name"],
        icon=row["icon"],
        icon_key=row["icon_key"]
    )


def _row_to_member(row: Dict[str, Any]) -> TeamMember:
    return TeamMember(
        user=row["user_id"],
        permissions=Permissions(
            own=frozenset(Perm(p) for p in row["perms_self"]),
            grantable=frozenset(Perm(p) for p in row["perms_copy"])
        ),
        invited_by=row["invited_by"]
    )


def _perm_names(perms) -> List[str]:
    return sorted(p.value for p in perms)


class PostgreSQLTeamStore(TeamStore):
    """TeamStore backed by PostgreSQL"""

    def __init__(self, pg_client: PostgreSQLClient):
        self.pg_client = pg_client

    async def create_tables(self) -> None:
        """Create team tables if missing"""
        async with self.pg_client.get_connection() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Team tables verified")

    async def get_team(self, team_id: UUID) -> Optional[Team]:
        row = await self.pg_client.fetch_one(
            "SELECT id, creator, name, icon, icon_key FROM teams WHERE id = $1",
            team_id
        )
        return _row_to_team(row) if row else None

    async def create_team(
        self,
        creator: UUID,
        name: str,
        icon: str,
        icon_key: Optional[str] = None
    ) -> Team:
        team_id = uuid.uuid4()
        row = await self.pg_client.fetch_one(
            """
            INSERT INTO teams (id, creator, name, icon, icon_key, status)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING id, creator, name, icon, icon_key
            """,
            team_id, creator, name, icon, icon_key, TeamStatus.ACTIVE.value
        )
        if not row:
            raise RuntimeError("Failed to create team")
        return _row_to_team(row)

    async def update_team(self, team_id: UUID, update: TeamUpdateData) -> None:
        fields = update.model_dump(exclude_none=True)
        assignments = []
        args: List[Any] = [team_id]
        for column, value in fields.items():
            args.append(value)
            assignments.append(f"{column} = ${len(args)}")
        assignments.append("updated_at = NOW()")

        await self.pg_client.execute_command(
            f"UPDATE teams SET {', '.join(assignments)} WHERE id = $1",
            *args
        )

    async def delete_team(self, team_id: UUID) -> None:
        # Committed on its own so an interrupted cleanup leaves the team not alive
        await self.pg_client.execute_command(
            "UPDATE teams SET status = $2, updated_at = NOW() WHERE id = $1",
            team_id, TeamStatus.PENDING_DELETE.value
        )
        await self.pg_client.execute_transaction([
            ("""
             DELETE FROM conversation_members
             WHERE conv_id IN (SELECT conv_id FROM team_conversations WHERE team_id = $1)
             """, (team_id,)),
            ("DELETE FROM team_conversations WHERE team_id = $1", (team_id,)),
            ("DELETE FROM team_members WHERE team_id = $1", (team_id,)),
            ("UPDATE teams SET status = $2, updated_at = NOW() WHERE id = $1",
             (team_id, TeamStatus.DELETED.value)),
        ])

    async def is_team_alive(self, team_id: UUID) -> bool:
        status = await self.pg_client.fetch_scalar(
            "SELECT status FROM teams WHERE id = $1",
            team_id
        )
        return status == TeamStatus.ACTIVE.value

    async def list_team_members(self, team_id: UUID) -> List[TeamMember]:
        rows = await self.pg_client.execute_query(
            """
            SELECT user_id, perms_self, perms_copy, invited_by
            FROM team_members WHERE team_id = $1
            ORDER BY user_id
            """,
            team_id
        )
        return [_row_to_member(row) for row in rows]

    async def get_team_member(self, team_id: UUID, user_id: UUID) -> Optional[TeamMember]:
        row = await self.pg_client.fetch_one(
            """
            SELECT user_id, perms_self, perms_copy, invited_by
            FROM team_members WHERE team_id = $1 AND user_id = $2
            """,
            team_id, user_id
        )
        return _row_to_member(row) if row else None

    async def add_team_member(self, team_id: UUID, member: TeamMember) -> None:
        await self.pg_client.execute_command(
            """
            INSERT INTO team_members (team_id, user_id, perms_self, perms_copy, invited_by)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (team_id, user_id) DO NOTHING
            """,
            team_id,
            member.user,
            _perm_names(member.permissions.own),
            _perm_names(member.permissions.grantable),
            member.invited_by
        )

    async def update_team_member(self, team_id: UUID, user_id: UUID, permissions: Permissions) -> None:
        await self.pg_client.execute_command(
            """
            UPDATE team_members SET perms_self = $3, perms_copy = $4
            WHERE team_id = $1 AND user_id = $2
            """,
            team_id, user_id,
            _perm_names(permissions.own),
            _perm_names(permissions.grantable)
        )

    async def remove_team_member(self, team_id: UUID, user_id: UUID) -> None:
        await self.pg_client.execute_command(
            "DELETE FROM team_members WHERE team_id = $1 AND user_id = $2",
            team_id, user_id
        )

    async def list_team_conversations(self, team_id: UUID) -> List[TeamConversation]:
        rows = await self.pg_client.execute_query(
            "SELECT conv_id, managed FROM team_conversations WHERE team_id = $1 ORDER BY conv_id",
            team_id
        )
        return [TeamConversation(conversation=row["conv_id"], managed=row["managed"]) for row in rows]

    async def get_team_conversation(self, team_id: UUID, conv_id: UUID) -> Optional[TeamConversation]:
        row = await self.pg_client.fetch_one(
            "SELECT conv_id, managed FROM team_conversations WHERE team_id = $1 AND conv_id = $2",
            team_id, conv_id
        )
        if not row:
            return None
        return TeamConversation(conversation=row["conv_id"], managed=row["managed"])

    async def remove_team_conversation(self, team_id: UUID, conv_id: UUID) -> None:
        await self.pg_client.execute_transaction([
            ("DELETE FROM team_conversations WHERE team_id = $1 AND conv_id = $2", (team_id, conv_id)),
            ("DELETE FROM conversation_members WHERE conv_id = $1", (conv_id,)),
        ])

    async def list_conversation_members(self, conv_id: UUID) -> List[UUID]:
        rows = await self.pg_client.execute_query(
            "SELECT user_id FROM conversation_members WHERE conv_id = $1 ORDER BY user_id",
            conv_id
        )
        return [row["user_id"] for row in rows]

    async def add_conversation_member(self, conv_id: UUID, user_id: UUID) -> None:
        await self.pg_client.execute_command(
            """
            INSERT INTO conversation_members (conv_id, user_id) VALUES ($1, $2)
            ON CONFLICT (conv_id, user_id) DO NOTHING
            """,
            conv_id, user_id
        )

    async def remove_conversation_member(self, conv_id: UUID, user_id: UUID) -> None:
        await self.pg_client.execute_command(
            "DELETE FROM conversation_members WHERE conv_id = $1 AND user_id = $2",
            conv_id, user_id
        )

    async def list_team_ids_for_user(
        self,
        user_id: UUID,
        after: Optional[UUID],
        limit: int
    ) -> Tuple[List[UUID], bool]:
        # One extra row tells whether another page exists
        rows = await self.pg_client.execute_query(
            """
            SELECT team_id FROM team_members
            WHERE user_id = $1 AND ($2::uuid IS NULL OR team_id > $2::uuid)
            ORDER BY team_id
            LIMIT $3
            """,
            user_id, after, limit + 1
        )
        ids = [row["team_id"] for row in rows]
        return ids[:limit], len(ids) > limit

    async def list_team_ids_for_user_among(self, user_id: UUID, team_ids: Sequence[UUID]) -> List[UUID]:
        rows = await self.pg_client.execute_query(
            """
            SELECT team_id FROM team_members
            WHERE user_id = $1 AND team_id = ANY($2::uuid[])
            ORDER BY team_id
            """,
            user_id, list(team_ids)
        )
        return [row["team_id"] for row in rows]
