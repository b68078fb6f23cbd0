"""
Team permission checks

Pure functions over a membership snapshot loaded once at the start of a
request. Nothing here re-reads the store, so permission changes made by a
concurrent request are not observed.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from team_backend.core.errors import ErrorCode, raise_api_error, operation_denied
from team_backend.models.permissions import Perm, Permissions
from team_backend.models.team import TeamMember

logger = logging.getLogger(__name__)


def find_team_member(user_id: UUID, members: Iterable[TeamMember]) -> Optional[TeamMember]:
    for member in members:
        if member.user == user_id:
            return member
    return None


def is_team_member(user_id: UUID, members: Iterable[TeamMember]) -> bool:
    return find_team_member(user_id, members) is not None


def ensure_permission(member: Optional[TeamMember], perm: Perm) -> TeamMember:
    """
    Check a single membership record for a capability.

    Raises NO_TEAM_MEMBER when `member` is None and OPERATION_DENIED when the
    capability is missing from the member's self set.
    """
    if member is None:
        raise_api_error(ErrorCode.NO_TEAM_MEMBER)
    if not member.permissions.has(perm):
        logger.warning(f"User {member.user} denied {perm.value}")
        operation_denied(perm.value)
    return member


def permission_check(user_id: UUID, perm: Perm, members: Iterable[TeamMember]) -> TeamMember:
    """Look up `user_id` in the snapshot and require `perm`; returns the member"""
    return ensure_permission(find_team_member(user_id, members), perm)


def ensure_grantable(granter: TeamMember, requested: Permissions) -> None:
    """The requested self set must be within the granter's copy set"""
    if not granter.permissions.can_grant(requested):
        logger.warning(f"User {granter.user} attempted to grant permissions beyond their own")
        raise_api_error(ErrorCode.INVALID_PERMISSIONS)
