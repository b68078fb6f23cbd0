"""
Teams API endpoints for the Team Backend

Team, member and team conversation management. Every mutation broadcasts an
event to the affected users through the push service.

Error handling:
- APIError (a FastAPI HTTPException) carries a stable error code and is re-raised
- anything else is logged and reported as a server error
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from team_backend.api.dependencies import get_team_service, get_zconn, get_zuser
from team_backend.core.errors import ErrorCode, raise_api_error
from team_backend.models.team import (
    NewTeam,
    NewTeamMember,
    Team,
    TeamConversation,
    TeamConversationList,
    TeamList,
    TeamMemberList,
    TeamMemberView,
    TeamUpdateData,
)
from team_backend.services.pagination import (
    MAX_PAGE_SIZE,
    MAX_TEAM_ID_SET,
    AfterTeam,
    TeamIdSet,
    TeamSelector,
)
from team_backend.services.team_service import TeamService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/teams", tags=["teams"])


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=500,
        detail={"code": ErrorCode.SERVER_ERROR.value, "message": "Internal server error"}
    )


def parse_team_selector(ids: Optional[str], start: Optional[UUID]) -> TeamSelector:
    """Turn the `ids` / `start` query parameters into a selector"""
    if ids is not None and start is not None:
        raise_api_error(ErrorCode.INVALID_PAYLOAD, "'ids' and 'start' are mutually exclusive")

    if start is not None:
        return AfterTeam(start)

    if ids is not None:
        try:
            team_ids: List[UUID] = [UUID(part) for part in ids.split(",") if part.strip()]
        except ValueError:
            raise_api_error(ErrorCode.INVALID_PAYLOAD, "'ids' must be a comma separated list of team ids")
        if not 1 <= len(team_ids) <= MAX_TEAM_ID_SET:
            raise_api_error(ErrorCode.INVALID_PAYLOAD, f"'ids' must list between 1 and {MAX_TEAM_ID_SET} teams")
        return TeamIdSet(tuple(team_ids))

    return None


# ============================================================================
# TEAM ENDPOINTS
# ============================================================================

@router.post("", response_model=Team, response_model_exclude_none=True, status_code=201)
async def create_team(
    body: NewTeam,
    response: Response,
    user_id: UUID = Depends(get_zuser),
    conn_id: str = Depends(get_zconn),
    service: TeamService = Depends(get_team_service)
):
    """
    Create a new team with the current user as owner.

    The creator gets full permissions. Listed members must be connected to
    the creator.
    """
    logger.info(f"Creating team '{body.name}' for user {user_id}")

    try:
        team = await service.create_team(user_id, conn_id, body)
        response.headers["Location"] = str(team.id)
        return team

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("creating team", e)


@router.get("", response_model=TeamList, response_model_exclude_none=True)
async def get_many_teams(
    ids: Optional[str] = Query(None, description="Comma separated team ids (1-32)"),
    start: Optional[UUID] = Query(None, description="Exclusive team id to start after"),
    size: int = Query(MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: UUID = Depends(get_zuser),
    service: TeamService = Depends(get_team_service)
):
    """
    List teams the current user belongs to.

    Either pages through all of them (`start`, `size`) or looks up an
    explicit set (`ids`), in which case `has_more` is always false.
    """
    try:
        selector = parse_team_selector(ids, start)
        return await service.get_many_teams(user_id, selector, size)

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("listing teams", e)


@router.get("/{team_id}", response_model=Team, response_model_exclude_none=True)
async def get_team(
    team_id: UUID,
    user_id: UUID = Depends(get_zuser),
    service: TeamService = Depends(get_team_service)
):
    """Get team details. Only accessible to team members."""
    try:
        return await service.get_team(user_id, team_id)

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("getting team", e)


@router.put("/{team_id}", status_code=204)
async def update_team(
    team_id: UUID,
    body: TeamUpdateData,
    user_id: UUID = Depends(get_zuser),
    conn_id: str = Depends(get_zconn),
    service: TeamService = Depends(get_team_service)
):
    """
    Update team name, icon or icon key.

    Requires: set_team_data
    """
    logger.info(f"Updating team {team_id} for user {user_id}")

    try:
        await service.update_team(user_id, conn_id, team_id, body)
        return None  # 204 No Content

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("updating team", e)


@router.delete("/{team_id}", status_code=204)
async def delete_team(
    team_id: UUID,
    user_id: UUID = Depends(get_zuser),
    conn_id: str = Depends(get_zconn),
    service: TeamService = Depends(get_team_service)
):
    """
    Delete a team with its memberships and conversations.

    Requires: delete_team (skipped for teams already pending deletion)
    """
    logger.info(f"Deleting team {team_id} for user {user_id}")

    try:
        await service.delete_team(user_id, conn_id, team_id)
        return None  # 204 No Content

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("deleting team", e)


# ============================================================================
# TEAM MEMBER ENDPOINTS
# ============================================================================

@router.get("/{team_id}/members", response_model=TeamMemberList, response_model_exclude_none=True)
async def get_team_members(
    team_id: UUID,
    user_id: UUID = Depends(get_zuser),
    service: TeamService = Depends(get_team_service)
):
    """
    List team members.

    Permissions are only included if the requester holds get_member_permissions.
    """
    try:
        return await service.get_team_members(user_id, team_id)

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("listing team members", e)


@router.post("/{team_id}/members", status_code=204)
async def add_team_member(
    team_id: UUID,
    body: NewTeamMember,
    user_id: UUID = Depends(get_zuser),
    conn_id: str = Depends(get_zconn),
    service: TeamService = Depends(get_team_service)
):
    """
    Add a user to the team.

    Requires: add_team_member, and the requested permissions must be
    grantable by the current user.
    """
    logger.info(f"Adding member {body.member.user} to team {team_id}")

    try:
        await service.add_team_member(user_id, conn_id, team_id, body)
        return None  # 204 No Content

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("adding team member", e)


@router.put("/{team_id}/members", status_code=204)
async def update_team_member(
    team_id: UUID,
    body: NewTeamMember,
    user_id: UUID = Depends(get_zuser),
    conn_id: str = Depends(get_zconn),
    service: TeamService = Depends(get_team_service)
):
    """
    Change a member's permissions.

    Requires: set_member_permissions
    """
    logger.info(f"Updating permissions of member {body.member.user} in team {team_id}")

    try:
        await service.update_team_member(user_id, conn_id, team_id, body)
        return None  # 204 No Content

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("updating team member", e)


@router.get("/{team_id}/members/{member_id}", response_model=TeamMemberView, response_model_exclude_none=True)
async def get_team_member(
    team_id: UUID,
    member_id: UUID,
    user_id: UUID = Depends(get_zuser),
    service: TeamService = Depends(get_team_service)
):
    try:
        return await service.get_team_member(user_id, team_id, member_id)

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("getting team member", e)


@router.delete("/{team_id}/members/{member_id}", status_code=204)
async def delete_team_member(
    team_id: UUID,
    member_id: UUID,
    user_id: UUID = Depends(get_zuser),
    conn_id: str = Depends(get_zconn),
    service: TeamService = Depends(get_team_service)
):
    """
    Remove a user from the team and from all team conversations.

    Requires: remove_team_member
    """
    logger.info(f"Removing member {member_id} from team {team_id}")

    try:
        await service.delete_team_member(user_id, conn_id, team_id, member_id)
        return None  # 204 No Content

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("removing team member", e)


# ============================================================================
# TEAM CONVERSATION ENDPOINTS
# ============================================================================

@router.get("/{team_id}/conversations", response_model=TeamConversationList)
async def get_team_conversations(
    team_id: UUID,
    user_id: UUID = Depends(get_zuser),
    service: TeamService = Depends(get_team_service)
):
    """Requires: get_team_conversations"""
    try:
        return await service.get_team_conversations(user_id, team_id)

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("listing team conversations", e)


@router.get("/{team_id}/conversations/{conv_id}", response_model=TeamConversation)
async def get_team_conversation(
    team_id: UUID,
    conv_id: UUID,
    user_id: UUID = Depends(get_zuser),
    service: TeamService = Depends(get_team_service)
):
    """Requires: get_team_conversations"""
    try:
        return await service.get_team_conversation(user_id, team_id, conv_id)

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("getting team conversation", e)


@router.delete("/{team_id}/conversations/{conv_id}", status_code=204)
async def delete_team_conversation(
    team_id: UUID,
    conv_id: UUID,
    user_id: UUID = Depends(get_zuser),
    conn_id: str = Depends(get_zconn),
    service: TeamService = Depends(get_team_service)
):
    """
    Remove a conversation from the team.

    Requires: delete_conversation
    """
    logger.info(f"Removing conversation {conv_id} from team {team_id}")

    try:
        await service.delete_team_conversation(user_id, conn_id, team_id, conv_id)
        return None  # 204 No Content

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("removing team conversation", e)
