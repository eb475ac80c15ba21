"""Route and sidebar guards built on the permission resolver.

``guard_route`` is the only place that turns a resolver answer into a
navigation outcome. Sidebar highlighting (``is_sub_item_active`` and
friends) compares ``tab`` query parameters and is deliberately independent
of permissions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional
from urllib.parse import parse_qs

from ..schemas.menu import MenuItem, SubMenuItem
from ..services.permission_service import VIEW_PERMISSION
from .session import AuthSession

DEFAULT_LOGIN_PATH = "/login"


class GuardOutcome(str, Enum):
    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class GuardDecision:
    outcome: GuardOutcome
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is GuardOutcome.ALLOW


def guard_route(
    session: Optional[AuthSession],
    path: str,
    required_permission: str = VIEW_PERMISSION,
    login_path: str = DEFAULT_LOGIN_PATH,
    unauthorized_path: Optional[str] = None,
) -> GuardDecision:
    """Decide whether *session* may open *path*.

    Args:
        session: Current session, or None when nobody is logged in.
        path: Target location; the query string is ignored for the check.
        required_permission: Permission name to require, ``CanView`` by default.
        login_path: Redirect target for anonymous visitors.
        unauthorized_path: Redirect target for logged-in users lacking the
            permission. Defaults to *login_path*; pass ``"/unauthorized"`` to
            send them to that page instead.
    """
    if session is None:
        return GuardDecision(GuardOutcome.UNAUTHENTICATED, login_path)

    base_path = path.split("?", 1)[0]
    if session.has_permission(base_path, required_permission):
        return GuardDecision(GuardOutcome.ALLOW)

    return GuardDecision(GuardOutcome.UNAUTHORIZED, unauthorized_path or login_path)


def _tab(query: str) -> Optional[str]:
    values = parse_qs(query.lstrip("?")).get("tab")
    return values[0] if values else None


def _split(url: str) -> tuple:
    base, _, query = url.partition("?")
    return base, query


def is_sub_item_active(item: SubMenuItem, current_path: str, current_query: str = "") -> bool:
    """Sub-item highlight: same base path, and same ``tab`` when the item has a query."""
    if not item.path:
        return False
    base, query = _split(item.path)
    if current_path != base:
        return False
    if query:
        return _tab(query) == _tab(current_query)
    return True


def is_menu_active(item: MenuItem, current_path: str, current_query: str = "") -> bool:
    """Top-level highlight: its own path is open, or one of its sub-items is active."""
    if item.path and current_path == item.path:
        return True
    return any(is_sub_item_active(s, current_path, current_query) for s in item.sub_items)


def expanded_menus(tree: Iterable[MenuItem], current_path: str, current_query: str = "") -> List[str]:
    """Paths of top-level items that must be expanded because a sub-item is active."""
    return [
        item.path or item.title
        for item in tree
        if any(is_sub_item_active(s, current_path, current_query) for s in item.sub_items)
    ]
