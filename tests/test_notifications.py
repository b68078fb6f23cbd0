"""
Unit Tests for events and notification composition
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from team_backend.models.events import (
    ConvEvent,
    ConvEventType,
    ConvPayload,
    MemberPayload,
    TeamCreatePayload,
    TeamEvent,
    TeamEventType,
)
from team_backend.models.team import Team
from team_backend.services.notifications import (
    Recipient,
    deliver_pushes,
    members_to_recipients,
    new_push,
    new_push1,
    non_team_members,
    team_recipients,
)

from conftest import make_member


class TestEvents:
    """Test event construction and payload variants"""

    def test_team_event_serialization(self):
        team_id = uuid.uuid4()
        user = uuid.uuid4()
        time = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        event = TeamEvent(TeamEventType.MEMBER_JOIN, team_id, time, MemberPayload(user))

        assert event.to_dict() == {
            "type": "team.member-join",
            "team": str(team_id),
            "time": "2024-01-02T03:04:05+00:00",
            "data": {"user": str(user)},
        }

    def test_team_create_payload_is_the_team(self):
        team = Team(id=uuid.uuid4(), creator=uuid.uuid4(), name="Ops", icon="icon")

        event = TeamEvent(TeamEventType.TEAM_CREATE, team.id, data=TeamCreatePayload(team))

        assert event.to_dict()["data"] == {
            "id": str(team.id),
            "creator": str(team.creator),
            "name": "Ops",
            "icon": "icon",
        }

    def test_team_delete_has_no_data(self):
        event = TeamEvent(TeamEventType.TEAM_DELETE, uuid.uuid4())

        assert "data" not in event.to_dict()

    def test_payload_must_match_type(self):
        with pytest.raises(ValueError):
            TeamEvent(TeamEventType.MEMBER_LEAVE, uuid.uuid4(), data=ConvPayload(uuid.uuid4()))

        with pytest.raises(ValueError):
            TeamEvent(TeamEventType.TEAM_DELETE, uuid.uuid4(), data=MemberPayload(uuid.uuid4()))

        with pytest.raises(ValueError):
            TeamEvent(TeamEventType.TEAM_UPDATE, uuid.uuid4())

    def test_events_are_immutable(self):
        event = TeamEvent(TeamEventType.TEAM_DELETE, uuid.uuid4())

        with pytest.raises(AttributeError):
            event.team = uuid.uuid4()

    def test_conv_event_serialization(self):
        conv = uuid.uuid4()
        user = uuid.uuid4()

        event = ConvEvent(ConvEventType.CONV_DELETE, conv, user)
        data = event.to_dict()

        assert data["type"] == "conversation.delete"
        assert data["conversation"] == str(conv)
        assert data["from"] == str(user)
        assert data["data"] is None


class TestRecipients:
    """Test recipient set construction"""

    def test_team_recipients_put_actor_first_once(self):
        actor, a, b = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        members = [make_member(a), make_member(actor), make_member(b)]

        recipients = team_recipients(actor, members)

        assert [r.user_id for r in recipients] == [actor, a, b]

    def test_team_recipients_for_non_member_actor(self):
        actor, a = uuid.uuid4(), uuid.uuid4()

        recipients = team_recipients(actor, [make_member(a)])

        assert [r.user_id for r in recipients] == [actor, a]

    def test_members_to_recipients_dedupes(self):
        a = uuid.uuid4()

        recipients = members_to_recipients([make_member(a), make_member(a)])

        assert recipients == [Recipient(a)]

    def test_members_to_recipients_without_exclusion(self):
        a, b = uuid.uuid4(), uuid.uuid4()

        assert members_to_recipients([make_member(a), make_member(b)]) == [Recipient(a), Recipient(b)]

    def test_non_team_members(self):
        """Conversation members outside the team, in conversation order"""
        t1, t2, x1, x2 = (uuid.uuid4() for _ in range(4))

        outsiders = non_team_members([x2, t1, x1, t2], [make_member(t1), make_member(t2)])

        assert outsiders == [x2, x1]

    def test_non_team_members_all_in_team(self):
        t1 = uuid.uuid4()

        assert non_team_members([t1], [make_member(t1)]) == []


class TestPushes:
    """Test push envelopes and delivery batching"""

    def _event(self):
        return TeamEvent(TeamEventType.TEAM_DELETE, uuid.uuid4())

    def test_push_requires_recipients(self):
        with pytest.raises(ValueError):
            new_push1(uuid.uuid4(), self._event(), [])

    def test_new_push_without_recipients_is_none(self):
        assert new_push(uuid.uuid4(), self._event(), []) is None

    def test_push_serialization(self):
        origin, other = uuid.uuid4(), uuid.uuid4()
        event = self._event()

        push = new_push1(origin, event, [Recipient(origin), Recipient(other)], "conn-7")
        data = push.to_dict()

        assert data["origin"] == str(origin)
        assert data["connection"] == "conn-7"
        assert data["transient"] == False
        assert data["payload"] == [event.to_dict()]
        assert [r["user_id"] for r in data["recipients"]] == [str(origin), str(other)]
        assert push.recipient_ids == [origin, other]

    @pytest.mark.asyncio
    async def test_single_push_uses_deliver(self):
        client = Mock()
        client.deliver = AsyncMock()
        client.deliver_batch = AsyncMock()
        push = new_push1(uuid.uuid4(), self._event(), [Recipient(uuid.uuid4())])

        await deliver_pushes(client, [push])

        client.deliver.assert_awaited_once_with(push)
        client.deliver_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_several_pushes_are_batched(self):
        client = Mock()
        client.deliver = AsyncMock()
        client.deliver_batch = AsyncMock()
        p1 = new_push1(uuid.uuid4(), self._event(), [Recipient(uuid.uuid4())])
        p2 = new_push1(uuid.uuid4(), self._event(), [Recipient(uuid.uuid4())])

        await deliver_pushes(client, [p1, p2])

        client.deliver_batch.assert_awaited_once_with([p1, p2])
        client.deliver.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_pushes_no_delivery(self):
        client = Mock()
        client.deliver = AsyncMock()
        client.deliver_batch = AsyncMock()

        await deliver_pushes(client, [])

        client.deliver.assert_not_awaited()
        client.deliver_batch.assert_not_awaited()
