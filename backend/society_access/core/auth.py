"""Authentication module exposing FastAPI dependencies.

Public interface:
    ``require_auth``            -- returns AuthContext or raises 401.
    ``optional_auth``           -- returns AuthContext, or None when no valid
                                   token is present. Never raises.
    ``require_menu_permission`` -- dependency factory; 403 unless the caller's
                                   role is granted the action at a menu path.

Server-side checks go through the same resolver the client uses, against the
permission map built from the caller's current grants.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .token_factory import TokenPayload, decode_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError
from ..services.permission_service import PermissionMap, build_permission_map, has_permission

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, resolved from the token and the users table.

    ``role_id`` is read from the database on every request, not from the
    token, so role reassignment applies immediately.
    """

    user_id: int
    username: str
    role_id: int
    role_name: str
    token: str = ""


def get_bearer_scheme() -> HTTPBearer:
    """Expose the security scheme so OpenAPI picks it up."""
    return _bearer_scheme


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Require a valid token and return the caller's AuthContext."""
    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    return _load_auth_context(payload, credentials.credentials, db)


def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[AuthContext]:
    """Resolve the caller if a valid token is present; otherwise None."""
    if credentials is None:
        return None

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        return None

    try:
        return _load_auth_context(payload, credentials.credentials, db)
    except AuthenticationError:
        return None


def load_permission_map(db: Session, role_id: int) -> PermissionMap:
    """Build the permission map for *role_id* from the grant store."""
    from ..repositories.grant_repository import GrantRepository

    return build_permission_map(GrantRepository(db).permission_rows(role_id=role_id))


def require_menu_permission(menu_path: str, action_name: str) -> Callable[..., AuthContext]:
    """Dependency factory: require *action_name* (e.g. ``"CanEdit"``) at *menu_path*.

    Usage::

        @router.post("/api/roles")
        def create_role(auth: AuthContext = Depends(require_menu_permission("/system-management", "CanAdd"))):
            ...
    """

    def dependency(
        auth: AuthContext = Depends(require_auth),
        db: Session = Depends(get_db),
    ) -> AuthContext:
        permission_map = load_permission_map(db, auth.role_id)
        if not has_permission(permission_map, menu_path, action_name):
            logger.info(
                "Permission denied",
                extra={
                    "user_id": auth.user_id,
                    "role_id": auth.role_id,
                    "menu_path": menu_path,
                    "permission": action_name,
                },
            )
            raise ForbiddenError(f"{action_name} not granted on {menu_path}")
        return auth

    return dependency


def admin_area_path(area: str) -> str:
    """Menu path guarding one administration area, e.g. ``/system-management/roles``."""
    return f"{settings.system_management_path.rstrip('/')}/{area}"


def require_admin_permission(area: str, action_name: str) -> Callable[..., AuthContext]:
    return require_menu_permission(admin_area_path(area), action_name)


def _load_auth_context(payload: TokenPayload, token: str, db: Session) -> AuthContext:
    """Load the user named by a decoded token."""
    from ..models.user import User

    user = db.query(User).filter(User.user_id == payload.user_id).first()
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return AuthContext(
        user_id=user.user_id,
        username=user.username,
        role_id=user.role_id,
        role_name=user.role.role_name if user.role is not None else "",
        token=token,
    )
