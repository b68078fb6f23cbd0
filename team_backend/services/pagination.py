"""
Team id pagination

Three ways to select the teams of a user, resolved into one (has_more, ids)
shape:

* None: the first page, in the store's team id order
* AfterTeam(id): the page strictly after `id`
* TeamIdSet(ids): exactly those of `ids` the user belongs to; has_more is
  always False because the result is not a page of an ordered scan

Page size (1-100) and id set size (1-32) are validated by the API layer.
"""

from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple, Union
from uuid import UUID

from team_backend.services.team_store import TeamStore


MAX_PAGE_SIZE = 100
MAX_TEAM_ID_SET = 32


@dataclass(frozen=True)
class AfterTeam:
    team_id: UUID


@dataclass(frozen=True)
class TeamIdSet:
    team_ids: Tuple[UUID, ...]


TeamSelector = Optional[Union[AfterTeam, TeamIdSet]]


class TeamIdPage(NamedTuple):
    has_more: bool
    ids: List[UUID]


async def resolve_team_ids(
    store: TeamStore,
    user_id: UUID,
    selector: TeamSelector,
    size: int
) -> TeamIdPage:
    if selector is None:
        ids, more = await store.list_team_ids_for_user(user_id, None, size)
        return TeamIdPage(more, ids)

    if isinstance(selector, AfterTeam):
        ids, more = await store.list_team_ids_for_user(user_id, selector.team_id, size)
        return TeamIdPage(more, ids)

    if isinstance(selector, TeamIdSet):
        ids = await store.list_team_ids_for_user_among(user_id, selector.team_ids)
        return TeamIdPage(False, ids)

    raise TypeError(f"Unknown team selector: {selector!r}")
