"""Exception hierarchy for the society access service.

Only the admin and auth boundaries raise these. Permission resolution itself
never raises: a missing grant is a ``False``, not an error.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in API error bodies."""

    # Grant store lookups
    ROLE_NOT_FOUND = "ROLE_NOT_FOUND"
    MENU_NOT_FOUND = "MENU_NOT_FOUND"
    ACTION_NOT_FOUND = "ACTION_NOT_FOUND"
    MENU_ACTION_NOT_FOUND = "MENU_ACTION_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # Menu tree shape
    INVALID_MENU_HIERARCHY = "INVALID_MENU_HIERARCHY"

    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"


class SocietyAccessError(Exception):
    """
    Base exception for all service errors.

    Carries a human-readable message, an ``ErrorCode``, the HTTP status to
    answer with, and optional details for the response body.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class RoleNotFoundError(SocietyAccessError):
    def __init__(self, role_id: int):
        super().__init__(
            f"Role not found: {role_id}",
            ErrorCode.ROLE_NOT_FOUND,
            status_code=404,
            details={"role_id": role_id}
        )


class MenuNotFoundError(SocietyAccessError):
    def __init__(self, menu_id: int):
        super().__init__(
            f"Menu not found: {menu_id}",
            ErrorCode.MENU_NOT_FOUND,
            status_code=404,
            details={"menu_id": menu_id}
        )


class ActionNotFoundError(SocietyAccessError):
    def __init__(self, action_id: int):
        super().__init__(
            f"Action not found: {action_id}",
            ErrorCode.ACTION_NOT_FOUND,
            status_code=404,
            details={"action_id": action_id}
        )


class MenuActionNotFoundError(SocietyAccessError):
    """No menu-action mapping with this id."""

    def __init__(self, menu_action_id: int):
        super().__init__(
            f"Menu action mapping not found: {menu_action_id}",
            ErrorCode.MENU_ACTION_NOT_FOUND,
            status_code=404,
            details={"menu_action_id": menu_action_id}
        )


class UserNotFoundError(SocietyAccessError):
    def __init__(self, user_id: int):
        super().__init__(
            f"User not found: {user_id}",
            ErrorCode.USER_NOT_FOUND,
            status_code=404,
            details={"user_id": user_id}
        )


class ValidationError(SocietyAccessError):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class MenuHierarchyError(SocietyAccessError):
    """A menu change would break the two-level, acyclic menu forest."""

    def __init__(self, message: str, menu_id: Optional[int] = None, parent_menu_id: Optional[int] = None):
        details: Dict[str, Any] = {}
        if menu_id is not None:
            details["menu_id"] = menu_id
        if parent_menu_id is not None:
            details["parent_menu_id"] = parent_menu_id
        super().__init__(
            message,
            ErrorCode.INVALID_MENU_HIERARCHY,
            status_code=400,
            details=details
        )


class ConflictError(SocietyAccessError):
    """The change collides with existing data (duplicate name, record in use)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details
        )


class AuthenticationError(SocietyAccessError):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(SocietyAccessError):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )

