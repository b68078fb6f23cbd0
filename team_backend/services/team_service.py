"""
Team Service

Orchestrates every team operation. Mutations follow one sequence:

1. load the team's membership snapshot
2. check the acting user's permission against it
3. mutate the store
4. build the event and its recipients
5. hand the push(es) to delivery

Cascading operations (team delete, member removal, conversation removal)
submit their notifications before the destructive store step, so the store
still describes what the event refers to while it is being composed.
"""

import logging
from typing import List, Optional
from uuid import UUID

from team_backend.core.errors import ErrorCode, raise_api_error
from team_backend.models.events import (
    ConvEvent,
    ConvEventType,
    ConvPayload,
    MemberPayload,
    TeamCreatePayload,
    TeamEvent,
    TeamEventType,
    TeamUpdatePayload,
    utc_now,
)
from team_backend.models.permissions import Perm, full_permissions
from team_backend.models.team import (
    MAX_TEAM_MEMBERS,
    NewTeam,
    NewTeamMember,
    Team,
    TeamConversation,
    TeamConversationList,
    TeamList,
    TeamMember,
    TeamMemberList,
    TeamMemberView,
    TeamUpdateData,
    member_view,
)
from team_backend.services.connection_client import ConnectionClient
from team_backend.services.notifications import (
    Push,
    Recipient,
    deliver_pushes,
    members_to_recipients,
    new_push,
    new_push1,
    non_team_members,
    team_recipients,
)
from team_backend.services.pagination import TeamSelector, resolve_team_ids
from team_backend.services.permission_evaluator import (
    ensure_grantable,
    ensure_permission,
    find_team_member,
    is_team_member,
    permission_check,
)
from team_backend.services.push_client import PushClient
from team_backend.services.team_store import TeamStore

logger = logging.getLogger(__name__)


class TeamService:
    """Team, member and team conversation operations on behalf of a user"""

    def __init__(self, store: TeamStore, connections: ConnectionClient, pushes: PushClient):
        self.store = store
        self.connections = connections
        self.pushes = pushes

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    async def create_team(self, user_id: UUID, conn_id: Optional[str], body: NewTeam) -> Team:
        """
        Create a team owned by `user_id` with the listed initial members.

        The creator must be connected to every listed member. The owner gets
        full permissions and is added before the other members.
        """
        others = [
            m.model_copy(update={"invited_by": user_id})
            for m in (body.members or [])
            if m.user != user_id
        ]
        await self.connections.ensure_connected(user_id, [m.user for m in others])

        team = await self.store.create_team(user_id, body.name, body.icon, body.icon_key)
        owner = TeamMember(user=user_id, permissions=full_permissions())
        for member in [owner] + others:
            await self.store.add_team_member(team.id, member)

        logger.info(f"Created team {team.id} for user {user_id} with {len(others)} initial member(s)")

        event = TeamEvent(TeamEventType.TEAM_CREATE, team.id, utc_now(), TeamCreatePayload(team))
        recipients = [Recipient(user_id)] + members_to_recipients(others)
        await self.pushes.deliver(new_push1(user_id, event, recipients, conn_id))
        return team

    async def update_team(self, user_id: UUID, conn_id: Optional[str], team_id: UUID, body: TeamUpdateData) -> None:
        members = await self.store.list_team_members(team_id)
        permission_check(user_id, Perm.SET_TEAM_DATA, members)

        await self.store.update_team(team_id, body)
        logger.info(f"Updated team {team_id} by user {user_id}")

        event = TeamEvent(TeamEventType.TEAM_UPDATE, team_id, utc_now(), TeamUpdatePayload(body))
        await self.pushes.deliver(new_push1(user_id, event, team_recipients(user_id, members), conn_id))

    async def delete_team(self, user_id: UUID, conn_id: Optional[str], team_id: UUID) -> None:
        """
        Delete a team and, with it, its conversations.

        A team that is no longer alive is being cleaned up already, so the
        permission check is skipped. Members of unmanaged conversations who
        are not team members are told each conversation is gone; all pushes
        go out as one batch before the team is removed from the store.
        """
        if await self.store.get_team(team_id) is None:
            raise_api_error(ErrorCode.TEAM_NOT_FOUND)

        alive = await self.store.is_team_alive(team_id)
        members = await self.store.list_team_members(team_id)
        if alive:
            permission_check(user_id, Perm.DELETE_TEAM, members)

        now = utc_now()
        conv_pushes: List[Push] = []
        for conv in await self.store.list_team_conversations(team_id):
            if conv.managed:
                continue
            conv_members = await self.store.list_conversation_members(conv.conversation)
            outsiders = non_team_members(conv_members, members)
            event = ConvEvent(ConvEventType.CONV_DELETE, conv.conversation, user_id, now)
            push = new_push(user_id, event, [Recipient(u) for u in outsiders], conn_id)
            if push is not None:
                conv_pushes.append(push)

        team_event = TeamEvent(TeamEventType.TEAM_DELETE, team_id, now)
        team_push = new_push1(user_id, team_event, team_recipients(user_id, members), conn_id)
        await deliver_pushes(self.pushes, [team_push] + conv_pushes)

        await self.store.delete_team(team_id)
        logger.info(f"Deleted team {team_id} by user {user_id} (alive={alive}, conversation pushes={len(conv_pushes)})")

    async def get_team(self, user_id: UUID, team_id: UUID) -> Team:
        team = await self._lookup_team(user_id, team_id)
        if team is None:
            raise_api_error(ErrorCode.TEAM_NOT_FOUND)
        return team

    async def get_many_teams(self, user_id: UUID, selector: TeamSelector, size: int) -> TeamList:
        page = await resolve_team_ids(self.store, user_id, selector, size)
        teams = []
        for team_id in page.ids:
            team = await self._lookup_team(user_id, team_id)
            if team is not None:
                teams.append(team)
        return TeamList(teams=teams, has_more=page.has_more)

    async def _lookup_team(self, user_id: UUID, team_id: UUID) -> Optional[Team]:
        """The team, if `user_id` is one of its members"""
        if await self.store.get_team_member(team_id, user_id) is None:
            return None
        return await self.store.get_team(team_id)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def get_team_members(self, user_id: UUID, team_id: UUID) -> TeamMemberList:
        members = await self.store.list_team_members(team_id)
        requester = find_team_member(user_id, members)
        if requester is None:
            raise_api_error(ErrorCode.NO_TEAM_MEMBER)

        with_perms = requester.permissions.has(Perm.GET_MEMBER_PERMISSIONS)
        return TeamMemberList(members=[member_view(m, with_perms) for m in members])

    async def get_team_member(self, user_id: UUID, team_id: UUID, member_id: UUID) -> TeamMemberView:
        members = await self.store.list_team_members(team_id)
        requester = find_team_member(user_id, members)
        if requester is None:
            raise_api_error(ErrorCode.NO_TEAM_MEMBER)

        member = find_team_member(member_id, members)
        if member is None:
            raise_api_error(ErrorCode.TEAM_MEMBER_NOT_FOUND)

        return member_view(member, requester.permissions.has(Perm.GET_MEMBER_PERMISSIONS))

    async def add_team_member(self, user_id: UUID, conn_id: Optional[str], team_id: UUID, body: NewTeamMember) -> None:
        """
        Add a member to the team and to every managed team conversation.

        Checks, in order: the caller may add members, the caller may grant
        the requested permissions, the team is below the member cap, and the
        caller is connected to the new member.

        Adding an existing member changes nothing; permissions of members are
        only changed through update_team_member.
        """
        new_member = body.member.model_copy(update={"invited_by": user_id})

        members = await self.store.list_team_members(team_id)
        granter = permission_check(user_id, Perm.ADD_TEAM_MEMBER, members)
        ensure_grantable(granter, new_member.permissions)
        if is_team_member(new_member.user, members):
            logger.info(f"User {new_member.user} is already a member of team {team_id}")
            return
        if len(members) >= MAX_TEAM_MEMBERS:
            raise_api_error(ErrorCode.TOO_MANY_TEAM_MEMBERS)
        await self.connections.ensure_connected(user_id, [new_member.user])

        await self.store.add_team_member(team_id, new_member)
        for conv in await self.store.list_team_conversations(team_id):
            if conv.managed:
                await self.store.add_conversation_member(conv.conversation, new_member.user)
        logger.info(f"Added member {new_member.user} to team {team_id} by user {user_id}")

        event = TeamEvent(TeamEventType.MEMBER_JOIN, team_id, utc_now(), MemberPayload(new_member.user))
        recipients = team_recipients(user_id, [new_member] + members)
        await self.pushes.deliver(new_push1(user_id, event, recipients, conn_id))

    async def update_team_member(self, user_id: UUID, conn_id: Optional[str], team_id: UUID, body: NewTeamMember) -> None:
        target = body.member.user
        permissions = body.member.permissions

        members = await self.store.list_team_members(team_id)
        granter = permission_check(user_id, Perm.SET_MEMBER_PERMISSIONS, members)
        ensure_grantable(granter, permissions)
        if not is_team_member(target, members):
            raise_api_error(ErrorCode.TEAM_MEMBER_NOT_FOUND)

        await self.store.update_team_member(team_id, target, permissions)
        logger.info(f"Updated permissions of member {target} in team {team_id} by user {user_id}")

        event = TeamEvent(TeamEventType.MEMBER_UPDATE, team_id, utc_now(), MemberPayload(target))
        await self.pushes.deliver(new_push1(user_id, event, team_recipients(user_id, members), conn_id))

    async def delete_team_member(self, user_id: UUID, conn_id: Optional[str], team_id: UUID, member_id: UUID) -> None:
        """
        Remove a member from the team and from every team conversation.

        The leave event goes out before the removal, so the removed member
        is still among the recipients.
        """
        members = await self.store.list_team_members(team_id)
        permission_check(user_id, Perm.REMOVE_TEAM_MEMBER, members)
        if not is_team_member(member_id, members):
            raise_api_error(ErrorCode.TEAM_MEMBER_NOT_FOUND)

        event = TeamEvent(TeamEventType.MEMBER_LEAVE, team_id, utc_now(), MemberPayload(member_id))
        await self.pushes.deliver(new_push1(user_id, event, team_recipients(user_id, members), conn_id))

        await self.store.remove_team_member(team_id, member_id)
        for conv in await self.store.list_team_conversations(team_id):
            await self.store.remove_conversation_member(conv.conversation, member_id)
        logger.info(f"Removed member {member_id} from team {team_id} by user {user_id}")

    # ------------------------------------------------------------------
    # Team conversations
    # ------------------------------------------------------------------

    async def get_team_conversations(self, user_id: UUID, team_id: UUID) -> TeamConversationList:
        member = await self.store.get_team_member(team_id, user_id)
        ensure_permission(member, Perm.GET_TEAM_CONVERSATIONS)
        return TeamConversationList(conversations=await self.store.list_team_conversations(team_id))

    async def get_team_conversation(self, user_id: UUID, team_id: UUID, conv_id: UUID) -> TeamConversation:
        member = await self.store.get_team_member(team_id, user_id)
        ensure_permission(member, Perm.GET_TEAM_CONVERSATIONS)
        conv = await self.store.get_team_conversation(team_id, conv_id)
        if conv is None:
            raise_api_error(ErrorCode.CONVERSATION_NOT_FOUND)
        return conv

    async def delete_team_conversation(self, user_id: UUID, conn_id: Optional[str], team_id: UUID, conv_id: UUID) -> None:
        """
        Remove a conversation from the team.

        Team members get a team-scoped conversation-delete event; conversation
        members outside the team get a conversation-scoped one. Both are
        submitted together.
        """
        members = await self.store.list_team_members(team_id)
        permission_check(user_id, Perm.DELETE_CONVERSATION, members)
        if await self.store.get_team_conversation(team_id, conv_id) is None:
            raise_api_error(ErrorCode.CONVERSATION_NOT_FOUND)
        conv_members = await self.store.list_conversation_members(conv_id)

        now = utc_now()
        team_event = TeamEvent(TeamEventType.CONV_DELETE, team_id, now, ConvPayload(conv_id))
        conv_event = ConvEvent(ConvEventType.CONV_DELETE, conv_id, user_id, now)

        pushes = [new_push1(user_id, team_event, team_recipients(user_id, members), conn_id)]
        outsiders = non_team_members(conv_members, members)
        conv_push = new_push(user_id, conv_event, [Recipient(u) for u in outsiders], conn_id)
        if conv_push is not None:
            pushes.append(conv_push)
        await deliver_pushes(self.pushes, pushes)

        await self.store.remove_team_conversation(team_id, conv_id)
        logger.info(f"Removed conversation {conv_id} from team {team_id} by user {user_id}")
