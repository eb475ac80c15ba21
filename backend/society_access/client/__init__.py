"""Consumer-side session handling: login lifecycle, route guard, sidebar state."""

from .api_client import SocietyAccessClient
from .guard import (
    GuardDecision,
    GuardOutcome,
    expanded_menus,
    guard_route,
    is_menu_active,
    is_sub_item_active,
)
from .session import AuthSession, SessionStore, SessionUser

__all__ = [
    "SocietyAccessClient",
    "AuthSession",
    "SessionStore",
    "SessionUser",
    "GuardDecision",
    "GuardOutcome",
    "guard_route",
    "is_sub_item_active",
    "is_menu_active",
    "expanded_menus",
]
