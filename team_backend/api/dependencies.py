"""
Request dependencies for the teams API

The gateway in front of this service authenticates the caller and forwards
the user id in `Z-User` and the device connection id in `Z-Connection`.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Header, Request

from team_backend.core.errors import ErrorCode, raise_api_error
from team_backend.services.team_service import TeamService

logger = logging.getLogger(__name__)


async def get_zuser(z_user: Optional[str] = Header(None, alias="Z-User")) -> UUID:
    """Acting user id - REQUIRED for all endpoints"""
    if not z_user:
        raise_api_error(ErrorCode.MISSING_IDENTITY, "Missing Z-User header")
    try:
        return UUID(z_user)
    except ValueError:
        raise_api_error(ErrorCode.MISSING_IDENTITY, "Invalid Z-User header")


async def get_zconn(z_connection: Optional[str] = Header(None, alias="Z-Connection")) -> str:
    """Acting connection id - REQUIRED for mutating endpoints"""
    if not z_connection:
        raise_api_error(ErrorCode.MISSING_IDENTITY, "Missing Z-Connection header")
    return z_connection


async def get_team_service(request: Request) -> TeamService:
    """TeamService wired up at application startup"""
    service = getattr(request.app.state, "team_service", None)
    if service is None:
        raise RuntimeError("Team service not initialized")
    return service
