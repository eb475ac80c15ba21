"""Role permission endpoints: the admin grid, the bulk replace and flat grant rows."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin_permission
from ..database import get_db
from ..schemas.grant import BulkGrantRequest, BulkGrantResponse, RolePermissionGrid
from ..services.grant_service import GrantService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["role-permissions"])

AREA = "permissions"


@router.get("/api/role-permissions/{role_id}", response_model=RolePermissionGrid)
def get_role_permissions(
    role_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission(AREA, "CanView")),
):
    """Every mapped (menu, action) with ``IsAllowed`` for the role."""
    return RolePermissionGrid(data=GrantService(db).role_grid(role_id))


@router.post("/api/role-permissions", response_model=BulkGrantResponse)
def save_role_permissions(
    body: BulkGrantRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission(AREA, "CanEdit")),
):
    """Replace the grant set of every role named in the payload."""
    return GrantService(db).replace(body, actor_id=auth.user_id)


@router.get("/api/permissions")
def list_permission_rows(
    role_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission(AREA, "CanView")),
) -> Dict[str, Any]:
    """Flat grant rows with one ``Can<Action>`` column (1/0) per action."""
    return {"data": GrantService(db).permission_rows(role_id)}
