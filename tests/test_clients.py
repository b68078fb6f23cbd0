"""
Unit Tests for the push and connection service clients
"""

import json
import uuid

import httpx
import pytest

from team_backend.core.errors import APIError, ErrorCode
from team_backend.models.events import TeamEvent, TeamEventType
from team_backend.services.connection_client import ConnectionClient
from team_backend.services.notifications import Recipient, new_push1
from team_backend.services.push_client import PushClient


def recording_transport(requests, status_code=200, responder=None):
    """MockTransport that records requests and answers with `responder` or an empty body"""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append((request, body))
        if responder is not None:
            return httpx.Response(status_code, json=responder(body))
        return httpx.Response(status_code)

    return httpx.MockTransport(handler)


def make_push():
    user = uuid.uuid4()
    event = TeamEvent(TeamEventType.TEAM_DELETE, uuid.uuid4())
    return new_push1(user, event, [Recipient(user)], "conn-1")


class TestPushClient:
    """Test push submission"""

    @pytest.mark.asyncio
    async def test_deliver_posts_single_push(self):
        requests = []
        http_client = httpx.AsyncClient(transport=recording_transport(requests))
        client = PushClient(base_url="http://push.local/", http_client=http_client)
        push = make_push()

        assert await client.deliver(push) == True

        request, body = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://push.local/i/push/v2"
        assert body == [push.to_dict()]

    @pytest.mark.asyncio
    async def test_deliver_batch_posts_all_pushes(self):
        requests = []
        http_client = httpx.AsyncClient(transport=recording_transport(requests))
        client = PushClient(base_url="http://push.local", http_client=http_client)
        pushes = [make_push(), make_push()]

        assert await client.deliver_batch(pushes) == True

        assert len(requests) == 1
        assert requests[0][1] == [p.to_dict() for p in pushes]

    @pytest.mark.asyncio
    async def test_delivery_failure_is_reported_not_raised(self):
        requests = []
        http_client = httpx.AsyncClient(transport=recording_transport(requests, status_code=503))
        client = PushClient(base_url="http://push.local", http_client=http_client)

        assert await client.deliver(make_push()) == False


class TestConnectionClient:
    """Test the mutual connection check"""

    def _client(self, requests, accepted_pairs):
        """Connection service answering 'accepted' for the given (from, to) pairs"""

        def responder(body):
            return [
                {"from": f, "to": t, "status": "accepted" if (f, t) in accepted_pairs else "pending"}
                for f in body["from"]
                for t in body["to"]
            ]

        http_client = httpx.AsyncClient(transport=recording_transport(requests, responder=responder))
        return ConnectionClient(base_url="http://users.local", http_client=http_client)

    @pytest.mark.asyncio
    async def test_mutually_connected(self):
        user, a, b = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        pairs = {(str(user), str(a)), (str(a), str(user)), (str(user), str(b)), (str(b), str(user))}
        requests = []

        await self._client(requests, pairs).ensure_connected(user, [a, b])

        assert len(requests) == 2
        assert str(requests[0][0].url) == "http://users.local/i/users/connections-status"
        assert requests[0][1] == {"from": [str(user)], "to": [str(a), str(b)]}
        assert requests[1][1] == {"from": [str(a), str(b)], "to": [str(user)]}

    @pytest.mark.asyncio
    async def test_one_direction_is_not_enough(self):
        user, a = uuid.uuid4(), uuid.uuid4()
        requests = []

        with pytest.raises(APIError) as exc_info:
            await self._client(requests, {(str(user), str(a))}).ensure_connected(user, [a])

        assert exc_info.value.code == ErrorCode.NOT_CONNECTED
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_duplicates_and_self_are_ignored(self):
        user, a = uuid.uuid4(), uuid.uuid4()
        pairs = {(str(user), str(a)), (str(a), str(user))}
        requests = []

        await self._client(requests, pairs).ensure_connected(user, [a, user, a])

        assert requests[0][1]["to"] == [str(a)]

    @pytest.mark.asyncio
    async def test_nobody_to_check(self):
        requests = []
        user = uuid.uuid4()

        await self._client(requests, set()).ensure_connected(user, [user])

        assert requests == []

    @pytest.mark.asyncio
    async def test_service_failure_propagates(self):
        requests = []
        http_client = httpx.AsyncClient(transport=recording_transport(requests, status_code=500))
        client = ConnectionClient(base_url="http://users.local", http_client=http_client)

        with pytest.raises(httpx.HTTPStatusError):
            await client.ensure_connected(uuid.uuid4(), [uuid.uuid4()])
