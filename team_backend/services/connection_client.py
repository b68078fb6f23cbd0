"""
User Connection Client

Asks the user service whether users are connected. Team membership may
only be extended to users the acting user is mutually connected to.
"""

import logging
from typing import Dict, List, Optional, Sequence
from uuid import UUID

import httpx

from team_backend.core.config import get_settings
from team_backend.core.errors import ErrorCode, raise_api_error

logger = logging.getLogger(__name__)

ACCEPTED = "accepted"


class ConnectionClient:
    """Client for the user service's connection status endpoint"""

    def __init__(self, base_url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.user_service_url).rstrip("/")
        self.endpoint = f"{self.base_url}/i/users/connections-status"
        self.timeout = settings.request_timeout_seconds
        self._http_client = http_client

    async def _connection_status(self, from_users: List[UUID], to_users: List[UUID]) -> List[Dict]:
        body = {
            "from": [str(u) for u in from_users],
            "to": [str(u) for u in to_users],
        }
        if self._http_client is not None:
            response = await self._http_client.post(self.endpoint, json=body)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.endpoint, json=body)
        response.raise_for_status()
        return response.json()

    async def ensure_connected(self, user_id: UUID, others: Sequence[UUID]) -> None:
        """
        Require an accepted connection in both directions between `user_id`
        and each of `others`.

        Raises:
            APIError(NOT_CONNECTED) if any pair is not mutually connected
        """
        others = list(dict.fromkeys(u for u in others if u != user_id))
        if not others:
            return

        outgoing = await self._connection_status([user_id], others)
        incoming = await self._connection_status(others, [user_id])

        accepted = [s for s in outgoing + incoming if s.get("status") == ACCEPTED]
        if len(accepted) != 2 * len(others):
            logger.info(f"User {user_id} is not connected to all of {len(others)} user(s)")
            raise_api_error(ErrorCode.NOT_CONNECTED)
