"""Per-login permission state for a consumer of the API.

``AuthSession`` is built once from a login (or refresh) payload and is
read-only afterwards. ``SessionStore`` holds the current session and makes
sure a login that was overtaken by a logout, or by a newer login, can
never install its result.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Optional, Tuple

from ..schemas.menu import MenuItem
from ..services.menu_tree import build_menu_tree, visible_menu_tree
from ..services.permission_service import VIEW_PERMISSION, has_permission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    user_id: Optional[int]
    username: str
    role_id: Optional[int]
    role_name: Optional[str]
    full_name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    """Authenticated user plus the menu tree and permission map for their role.

    Pass this object to guards and UI helpers; nothing reads it from a global.
    """

    user: SessionUser
    token: str
    menu_tree: Tuple[MenuItem, ...] = ()
    permission_map: Mapping[str, Mapping[str, bool]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_login_payload(cls, payload: Mapping[str, Any]) -> "AuthSession":
        """Build a session from the ``/api/auth/login`` or ``/api/auth/me`` body.

        The permission map is taken as delivered (the server builds it from
        the grant store) and frozen; the menu tree is built locally from
        ``user.menus``.
        """
        user = payload.get("user") or {}
        role = user.get("role") or {}
        permissions = user.get("permissions") or {}

        frozen = MappingProxyType({
            str(path): MappingProxyType({str(k): bool(v) for k, v in actions.items()})
            for path, actions in permissions.items()
            if isinstance(actions, Mapping)
        })

        return cls(
            user=SessionUser(
                user_id=user.get("id"),
                username=user.get("username", ""),
                role_id=role.get("roleID"),
                role_name=role.get("roleName"),
                full_name=user.get("fullName"),
                email=user.get("email"),
            ),
            token=payload.get("token", ""),
            menu_tree=tuple(build_menu_tree(user.get("menus") or [])),
            permission_map=frozen,
        )

    @property
    def role_id(self) -> Optional[int]:
        return self.user.role_id

    @property
    def role_name(self) -> Optional[str]:
        return self.user.role_name

    def has_permission(self, path: str, action_name: str) -> bool:
        return has_permission(self.permission_map, path, action_name)

    def can_access(self, path: str, action_name: str, role_id: Optional[int] = None) -> bool:
        """Resolver check, optionally pinned to one role.

        When *role_id* is given and differs from the session's role the answer
        is False regardless of grants.
        """
        if role_id is not None and self.role_id != role_id:
            return False
        return self.has_permission(path.split("?", 1)[0], action_name)

    def can_view(self, path: str, role_id: Optional[int] = None) -> bool:
        return self.can_access(path, VIEW_PERMISSION, role_id)

    def can_add(self, path: str, role_id: Optional[int] = None) -> bool:
        return self.can_access(path, "CanAdd", role_id)

    def can_edit(self, path: str, role_id: Optional[int] = None) -> bool:
        return self.can_access(path, "CanEdit", role_id)

    def can_delete(self, path: str, role_id: Optional[int] = None) -> bool:
        return self.can_access(path, "CanDelete", role_id)

    def sidebar(self) -> List[MenuItem]:
        """Menu tree filtered to what this session may see."""
        return visible_menu_tree(self.menu_tree, dict(self.permission_map))


class SessionStore:
    """Holds the current ``AuthSession`` and arbitrates concurrent logins.

    Every login takes a ticket with ``begin``. Only the holder of the newest
    ticket may install a session; ``clear`` (logout) and any later ``begin``
    invalidate older tickets. A store with no session denies everything.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._session: Optional[AuthSession] = None

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._generation

    def commit(self, ticket: int, session: AuthSession) -> bool:
        """Install *session* if *ticket* is still current. Returns whether it was applied."""
        with self._lock:
            if ticket != self._generation:
                logger.info(
                    "Discarding superseded login result",
                    extra={"ticket": ticket, "generation": self._generation},
                )
                return False
            self._session = session
            return True

    def fail(self, ticket: int) -> None:
        """A fetch for *ticket* failed: leave an empty session if it was current."""
        with self._lock:
            if ticket == self._generation:
                self._session = None

    def clear(self) -> None:
        """Log out: drop the session and invalidate every in-flight ticket."""
        with self._lock:
            self._generation += 1
            self._session = None

    def has_permission(self, path: str, action_name: str) -> bool:
        session = self._session
        if session is None:
            return False
        return session.has_permission(path, action_name)
