"""Authentication, session and user management endpoints.

Public endpoints:
    POST /api/auth/register  -- create account (open for the first user only)
    POST /api/auth/login     -- authenticate; token plus menus and permission map
    GET  /api/auth/me        -- same session payload for the token's bearer
    GET  /api/auth/check     -- resolver answer for one path and permission
    GET  /api/auth/menu-tree -- sidebar tree for the caller's role

User administration (guarded by the ``users`` system-management menu):
    GET /api/auth/users                       -- list users          (CanView)
    PUT /api/auth/users/{user_id}/role        -- assign a role       (CanEdit)
    PUT /api/auth/users/{user_id}/deactivate  -- deactivate account  (CanDelete)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..core.auth import (
    AuthContext,
    admin_area_path,
    load_permission_map,
    optional_auth,
    require_admin_permission,
    require_auth,
)
from ..core.config import settings
from ..core.token_factory import create_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError
from ..schemas.auth import (
    AssignRoleRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MenuTreeResponse,
    PermissionCheckResponse,
    RegisterRequest,
    UserResponse,
)
from ..services import audit_service, auth_service
from ..services.permission_service import has_permission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

USERS_AREA = "users"


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    summary="Register a new user",
    description="The first registration is open and receives the administrator role. "
                "After that, CanAdd on the users administration menu is required.",
)
def register_user(
    body: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
    auth: Optional[AuthContext] = Depends(optional_auth),
):
    if auth_service.user_count(db) > 0:
        if auth is None:
            raise AuthenticationError("Authentication required to register users")
        permission_map = load_permission_map(db, auth.role_id)
        if not has_permission(permission_map, admin_area_path(USERS_AREA), "CanAdd"):
            raise ForbiddenError("Not allowed to register users")

    user = auth_service.register_user(
        db,
        body.username,
        body.password,
        full_name=body.full_name,
        email=body.email,
        phone=body.phone,
        role_id=body.role_id,
    )
    audit_service.log(
        db, auth.user_id if auth else user.user_id, "register", "user", user.user_id,
        {"username": user.username, "role_id": user.role_id}, _client_ip(request),
    )
    return auth_service.to_user_response(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and receive the session payload",
)
def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    try:
        user = auth_service.authenticate(db, body.username, body.password)
    except AuthenticationError:
        audit_service.log(
            db, None, "login_failed", "user", None, {"username": body.username}, _client_ip(request)
        )
        raise

    token = create_token(
        user_id=user.user_id,
        role_id=user.role_id,
        role_name=user.role.role_name if user.role else None,
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_hours=settings.token_expire_hours,
    )
    payload = auth_service.build_session_payload(db, user)
    audit_service.log(db, user.user_id, "login", "user", user.user_id, None, _client_ip(request))
    logger.info("User logged in", extra={"user_id": user.user_id, "role_id": user.role_id})
    return LoginResponse(token=token, user=payload)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current user with menus and permission map",
)
def get_me(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    user = auth_service.get_user_by_id(db, auth.user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return MeResponse(user=auth_service.build_session_payload(db, user))


@router.get(
    "/check",
    response_model=PermissionCheckResponse,
    summary="Check one permission for the current user",
)
def check_permission(
    path: str = Query(..., description="Application path, query string allowed"),
    action: str = Query("CanView", description="Permission name, e.g. CanEdit"),
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    permission_map = load_permission_map(db, auth.role_id)
    return PermissionCheckResponse(
        path=path,
        action=action,
        allowed=has_permission(permission_map, path, action),
    )


@router.get(
    "/menu-tree",
    response_model=MenuTreeResponse,
    summary="Sidebar menu tree for the current user's role",
)
def get_menu_tree(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return MenuTreeResponse(menus=auth_service.role_menu_tree(db, auth.role_id))


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List all users",
)
def list_users(
    auth: AuthContext = Depends(require_admin_permission(USERS_AREA, "CanView")),
    db: Session = Depends(get_db),
):
    return [auth_service.to_user_response(u) for u in auth_service.list_users(db)]


@router.put(
    "/users/{user_id}/role",
    response_model=UserResponse,
    summary="Assign a role to a user",
)
def assign_role(
    user_id: int,
    body: AssignRoleRequest,
    request: Request,
    auth: AuthContext = Depends(require_admin_permission(USERS_AREA, "CanEdit")),
    db: Session = Depends(get_db),
):
    user = auth_service.assign_role(db, user_id, body.role_id)
    audit_service.log(
        db, auth.user_id, "role_assign", "user", user_id, {"role_id": body.role_id}, _client_ip(request)
    )
    return auth_service.to_user_response(user)


@router.put(
    "/users/{user_id}/deactivate",
    response_model=UserResponse,
    summary="Deactivate a user account",
)
def deactivate(
    user_id: int,
    request: Request,
    auth: AuthContext = Depends(require_admin_permission(USERS_AREA, "CanDelete")),
    db: Session = Depends(get_db),
):
    if user_id == auth.user_id:
        raise ForbiddenError("You cannot deactivate your own account")
    user = auth_service.deactivate_user(db, user_id)
    audit_service.log(db, auth.user_id, "deactivate", "user", user_id, None, _client_ip(request))
    return auth_service.to_user_response(user)
