"""
Standard error codes for the Team Backend API

Every failure surfaces as a distinct, stable code so clients can branch on
the cause. Errors are terminal for the current request.
"""

from enum import Enum
from typing import Dict, Any, Optional
from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Stable error identities returned in the `code` field"""

    # Team and membership
    TEAM_NOT_FOUND = "no-team"
    NO_TEAM_MEMBER = "no-team-member"
    TEAM_MEMBER_NOT_FOUND = "team-member-not-found"
    TOO_MANY_TEAM_MEMBERS = "too-many-team-members"

    # Permissions
    OPERATION_DENIED = "operation-denied"
    INVALID_PERMISSIONS = "invalid-permissions"

    # Conversations
    CONVERSATION_NOT_FOUND = "no-conversation"

    # Connections between users
    NOT_CONNECTED = "not-connected"

    # Request errors
    INVALID_PAYLOAD = "invalid-payload"
    MISSING_IDENTITY = "missing-identity"

    # System errors
    SERVER_ERROR = "server-error"


class APIError(HTTPException):
    """
    Standard API error that integrates with FastAPI

    The detail body is {"code", "message", "capability_required"?, "details"?}.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        capability_required: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.capability_required = capability_required
        self.details = details or {}

        detail = {
            "code": code.value,
            "message": message,
            "capability_required": capability_required,
            "details": self.details or None
        }

        # Remove None values for cleaner response
        detail = {k: v for k, v in detail.items() if v is not None}

        super().__init__(status_code=status_code, detail=detail)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


# Pre-defined error responses for common scenarios
error_responses: Dict[ErrorCode, Dict[str, Any]] = {
    ErrorCode.TEAM_NOT_FOUND: {
        "status_code": status.HTTP_404_NOT_FOUND,
        "description": "Team not found"
    },
    ErrorCode.NO_TEAM_MEMBER: {
        "status_code": status.HTTP_403_FORBIDDEN,
        "description": "Requesting user is not a team member"
    },
    ErrorCode.TEAM_MEMBER_NOT_FOUND: {
        "status_code": status.HTTP_404_NOT_FOUND,
        "description": "Team member not found"
    },
    ErrorCode.TOO_MANY_TEAM_MEMBERS: {
        "status_code": status.HTTP_403_FORBIDDEN,
        "description": "Maximum number of members per team reached"
    },
    ErrorCode.OPERATION_DENIED: {
        "status_code": status.HTTP_403_FORBIDDEN,
        "description": "Insufficient permissions"
    },
    ErrorCode.INVALID_PERMISSIONS: {
        "status_code": status.HTTP_403_FORBIDDEN,
        "description": "The specified permissions are invalid"
    },
    ErrorCode.CONVERSATION_NOT_FOUND: {
        "status_code": status.HTTP_404_NOT_FOUND,
        "description": "Conversation not found"
    },
    ErrorCode.NOT_CONNECTED: {
        "status_code": status.HTTP_403_FORBIDDEN,
        "description": "Users are not connected"
    },
    ErrorCode.INVALID_PAYLOAD: {
        "status_code": status.HTTP_400_BAD_REQUEST,
        "description": "Invalid payload"
    },
    ErrorCode.MISSING_IDENTITY: {
        "status_code": status.HTTP_401_UNAUTHORIZED,
        "description": "Missing or invalid user identity"
    },
    ErrorCode.SERVER_ERROR: {
        "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        "description": "Internal server error"
    },
}


def raise_api_error(
    code: ErrorCode,
    message: Optional[str] = None,
    **kwargs
) -> None:
    """
    Convenience function to raise a standard API error

    Args:
        code: Error code
        message: Optional custom message (uses default if not provided)
        **kwargs: Additional error details

    Raises:
        APIError
    """
    error_info = error_responses.get(code, {})

    if message is None:
        message = error_info.get("description", "An error occurred")

    raise APIError(
        code=code,
        message=message,
        status_code=error_info.get("status_code", status.HTTP_400_BAD_REQUEST),
        **kwargs
    )


def operation_denied(capability: str) -> None:
    """Raise OPERATION_DENIED naming the missing capability"""
    raise_api_error(
        ErrorCode.OPERATION_DENIED,
        f"Insufficient permissions (missing {capability})",
        capability_required=capability
    )
