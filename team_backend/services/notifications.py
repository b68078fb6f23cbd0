"""
Notification composition

Builds push envelopes for team and conversation events and decides who
receives them. The acting user is always the first recipient; the push
carries the acting connection so that device does not get an echo.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from team_backend.models.events import Event
from team_backend.models.team import TeamMember

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    """User-level recipient: every client of the user"""
    user_id: UUID

    def to_dict(self) -> Dict[str, Any]:
        return {"user_id": str(self.user_id), "route": "any", "clients": []}


@dataclass(frozen=True)
class Push:
    """One event addressed to a non-empty recipient set"""
    origin: UUID
    event: Event
    recipients: Tuple[Recipient, ...]
    connection: Optional[str] = None

    def __post_init__(self):
        if not self.recipients:
            raise ValueError("A push needs at least one recipient")

    @property
    def recipient_ids(self) -> List[UUID]:
        return [r.user_id for r in self.recipients]

    def to_dict(self) -> Dict[str, Any]:
        push = {
            "origin": str(self.origin),
            "transient": False,
            "payload": [self.event.to_dict()],
            "recipients": [r.to_dict() for r in self.recipients],
        }
        if self.connection is not None:
            push["connection"] = self.connection
        return push


def _dedupe(user_ids: Iterable[UUID]) -> List[UUID]:
    seen = set()
    result = []
    for uid in user_ids:
        if uid not in seen:
            seen.add(uid)
            result.append(uid)
    return result


def members_to_recipients(members: Iterable[TeamMember], exclude: Optional[UUID] = None) -> List[Recipient]:
    """Every member except `exclude`, as user-level recipients"""
    return [Recipient(uid) for uid in _dedupe(m.user for m in members) if uid != exclude]


def team_recipients(actor: UUID, members: Iterable[TeamMember]) -> List[Recipient]:
    """The actor first, then the rest of the team"""
    return [Recipient(actor)] + members_to_recipients(members, exclude=actor)


def non_team_members(conv_members: Sequence[UUID], team_members: Iterable[TeamMember]) -> List[UUID]:
    """Conversation members who are not in the team, in conversation order"""
    team_ids = {m.user for m in team_members}
    return [uid for uid in _dedupe(conv_members) if uid not in team_ids]


def new_push1(origin: UUID, event: Event, recipients: Sequence[Recipient], connection: Optional[str] = None) -> Push:
    return Push(origin=origin, event=event, recipients=tuple(recipients), connection=connection)


def new_push(
    origin: UUID,
    event: Event,
    recipients: Sequence[Recipient],
    connection: Optional[str] = None
) -> Optional[Push]:
    """Like new_push1, but None when there is nobody to notify"""
    if not recipients:
        return None
    return new_push1(origin, event, recipients, connection)


async def deliver_pushes(push_client, pushes: Sequence[Push]) -> None:
    """Hand pushes to delivery: one goes through deliver(), several as one batch"""
    if not pushes:
        return
    if len(pushes) == 1:
        await push_client.deliver(pushes[0])
    else:
        await push_client.deliver_batch(list(pushes))
