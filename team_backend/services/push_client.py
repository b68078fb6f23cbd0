"""
Push Service Client

Submits event pushes to the push service, which fans them out to user
devices. Delivery is fire-and-forget: transport failures are logged and
never fail the mutation that produced the event.
"""

import logging
from typing import List, Optional

import httpx

from team_backend.core.config import get_settings
from team_backend.services.notifications import Push

logger = logging.getLogger(__name__)


class PushClient:
    """Client for the internal push endpoint"""

    def __init__(self, base_url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.push_service_url).rstrip("/")
        self.endpoint = f"{self.base_url}/i/push/v2"
        self.timeout = settings.request_timeout_seconds
        self._http_client = http_client

    async def deliver(self, push: Push) -> bool:
        """Submit a single push"""
        return await self._submit([push])

    async def deliver_batch(self, pushes: List[Push]) -> bool:
        """Submit several pushes in one request"""
        return await self._submit(pushes)

    async def _submit(self, pushes: List[Push]) -> bool:
        body = [p.to_dict() for p in pushes]
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.endpoint, json=body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.endpoint, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Push delivery of {len(pushes)} push(es) failed: {e}")
            return False

        logger.debug(f"Submitted {len(pushes)} push(es) to {self.endpoint}")
        return True
