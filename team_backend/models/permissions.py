"""
Team member permissions

A member's permissions are two capability sets:
- self: what the member may do
- copy: what the member may grant to others (always a subset of self)

Subset comparison is the only primitive the rest of the service relies on.
"""

from enum import Enum
from typing import Any, FrozenSet, List

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator


class Perm(str, Enum):
    """Closed set of team capabilities"""
    CREATE_CONVERSATION = "create_conversation"
    DELETE_CONVERSATION = "delete_conversation"
    ADD_TEAM_MEMBER = "add_team_member"
    REMOVE_TEAM_MEMBER = "remove_team_member"
    ADD_CONVERSATION_MEMBER = "add_conversation_member"
    REMOVE_CONVERSATION_MEMBER = "remove_conversation_member"
    GET_BILLING = "get_billing"
    SET_BILLING = "set_billing"
    SET_TEAM_DATA = "set_team_data"
    GET_MEMBER_PERMISSIONS = "get_member_permissions"
    SET_MEMBER_PERMISSIONS = "set_member_permissions"
    GET_TEAM_CONVERSATIONS = "get_team_conversations"
    DELETE_TEAM = "delete_team"


class Permissions(BaseModel):
    """Capabilities held (`self`) and grantable (`copy`) by a team member"""

    own: FrozenSet[Perm] = Field(default_factory=frozenset, alias="self")
    grantable: FrozenSet[Perm] = Field(default_factory=frozenset, alias="copy")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def default_copy_to_self(cls, data: Any) -> Any:
        # A payload without "copy" may grant everything it holds
        if isinstance(data, dict):
            has_own = "self" in data or "own" in data
            has_grantable = "copy" in data or "grantable" in data
            if has_own and not has_grantable:
                data = dict(data)
                data["copy"] = data.get("self", data.get("own"))
        return data

    @model_validator(mode="after")
    def check_copy_subset(self) -> "Permissions":
        if not self.grantable <= self.own:
            raise ValueError("'copy' permissions must be a subset of 'self' permissions")
        return self

    @field_serializer("own", "grantable")
    def serialize_perms(self, perms: FrozenSet[Perm]) -> List[str]:
        return sorted(p.value for p in perms)

    def has(self, perm: Perm) -> bool:
        return perm in self.own

    def can_grant(self, requested: "Permissions") -> bool:
        """True if every capability in `requested.self` is grantable by us"""
        return requested.own <= self.grantable


def new_permissions(own, grantable=None) -> Permissions:
    """Build permissions from iterables of Perm; `grantable` defaults to `own`"""
    own = frozenset(own)
    return Permissions(own=own, grantable=own if grantable is None else frozenset(grantable))


def full_permissions() -> Permissions:
    """Every capability, all grantable. Given to the team creator."""
    return new_permissions(Perm)
