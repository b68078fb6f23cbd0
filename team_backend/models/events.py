"""
Team and conversation events

Events are immutable and transient: they are built once per mutation,
serialized into push payloads and never stored by this service.

Two families:
- TeamEvent: scoped to a team, with a payload variant fixed by the event type
- ConvEvent: scoped to a conversation, no payload
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID

from team_backend.models.team import Team, TeamUpdateData


class TeamEventType(str, Enum):
    TEAM_CREATE = "team.create"
    TEAM_UPDATE = "team.update"
    TEAM_DELETE = "team.delete"
    MEMBER_JOIN = "team.member-join"
    MEMBER_LEAVE = "team.member-leave"
    MEMBER_UPDATE = "team.member-update"
    CONV_CREATE = "team.conversation-create"
    CONV_DELETE = "team.conversation-delete"


class ConvEventType(str, Enum):
    CONV_DELETE = "conversation.delete"


@dataclass(frozen=True)
class TeamCreatePayload:
    team: Team

    def to_dict(self) -> Dict[str, Any]:
        return self.team.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class TeamUpdatePayload:
    update: TeamUpdateData

    def to_dict(self) -> Dict[str, Any]:
        return self.update.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class MemberPayload:
    user: UUID

    def to_dict(self) -> Dict[str, Any]:
        return {"user": str(self.user)}


@dataclass(frozen=True)
class ConvPayload:
    conv: UUID

    def to_dict(self) -> Dict[str, Any]:
        return {"conv": str(self.conv)}


TeamEventPayload = Union[TeamCreatePayload, TeamUpdatePayload, MemberPayload, ConvPayload]

# Payload variant each team event type must carry (None: no payload)
PAYLOAD_TYPES = {
    TeamEventType.TEAM_CREATE: TeamCreatePayload,
    TeamEventType.TEAM_UPDATE: TeamUpdatePayload,
    TeamEventType.TEAM_DELETE: None,
    TeamEventType.MEMBER_JOIN: MemberPayload,
    TeamEventType.MEMBER_LEAVE: MemberPayload,
    TeamEventType.MEMBER_UPDATE: MemberPayload,
    TeamEventType.CONV_CREATE: ConvPayload,
    TeamEventType.CONV_DELETE: ConvPayload,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TeamEvent:
    """Event about a team"""
    type: TeamEventType
    team: UUID
    time: datetime = field(default_factory=utc_now)
    data: Optional[TeamEventPayload] = None

    def __post_init__(self):
        expected = PAYLOAD_TYPES[self.type]
        if expected is None and self.data is not None:
            raise ValueError(f"{self.type.value} carries no payload")
        if expected is not None and not isinstance(self.data, expected):
            raise ValueError(f"{self.type.value} requires a {expected.__name__} payload")

    def to_dict(self) -> Dict[str, Any]:
        event = {
            "type": self.type.value,
            "team": str(self.team),
            "time": self.time.isoformat(),
        }
        if self.data is not None:
            event["data"] = self.data.to_dict()
        return event


@dataclass(frozen=True)
class ConvEvent:
    """Event about a conversation, sent to users outside the owning team"""
    type: ConvEventType
    conversation: UUID
    from_user: UUID
    time: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "conversation": str(self.conversation),
            "from": str(self.from_user),
            "time": self.time.isoformat(),
            "data": None,
        }


Event = Union[TeamEvent, ConvEvent]
