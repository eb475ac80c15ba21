"""Role and action endpoints for the system-management screen.

Roles are guarded by the ``roles`` administration menu, actions by the
``actions`` one: CanView to list, CanAdd / CanEdit / CanDelete to change.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin_permission
from ..database import get_db
from ..models.access import Action, Role
from ..schemas.role import (
    ActionCreate,
    ActionResponse,
    ActionUpdate,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from ..services.role_service import ActionService, RoleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/roles", tags=["roles"])
actions_router = APIRouter(prefix="/api/actions", tags=["actions"])


def _role(role: Role) -> RoleResponse:
    return RoleResponse(role_id=role.role_id, role_name=role.role_name)


def _action(action: Action) -> ActionResponse:
    return ActionResponse(action_id=action.action_id, action_name=action.action_name)


# -- Roles ----------------------------------------------------------------

@router.get("", response_model=List[RoleResponse])
def list_roles(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("roles", "CanView")),
):
    return [_role(r) for r in RoleService(db).list_roles()]


@router.get("/{role_id}", response_model=RoleResponse)
def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("roles", "CanView")),
):
    return _role(RoleService(db).get_role(role_id))


@router.post("", response_model=RoleResponse, status_code=201)
def create_role(
    data: RoleCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("roles", "CanAdd")),
):
    return _role(RoleService(db).create_role(data, actor_id=auth.user_id))


@router.put("/{role_id}", response_model=RoleResponse)
def update_role(
    role_id: int,
    data: RoleUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("roles", "CanEdit")),
):
    return _role(RoleService(db).update_role(role_id, data, actor_id=auth.user_id))


@router.delete("/{role_id}", status_code=204)
def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("roles", "CanDelete")),
):
    RoleService(db).delete_role(role_id, actor_id=auth.user_id)
    return Response(status_code=204)


# -- Actions --------------------------------------------------------------

@actions_router.get("", response_model=List[ActionResponse])
def list_actions(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("actions", "CanView")),
):
    return [_action(a) for a in ActionService(db).list_actions()]


@actions_router.post("", response_model=ActionResponse, status_code=201)
def create_action(
    data: ActionCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("actions", "CanAdd")),
):
    return _action(ActionService(db).create_action(data, actor_id=auth.user_id))


@actions_router.put("/{action_id}", response_model=ActionResponse)
def update_action(
    action_id: int,
    data: ActionUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("actions", "CanEdit")),
):
    return _action(ActionService(db).update_action(action_id, data, actor_id=auth.user_id))


@actions_router.delete("/{action_id}", status_code=204)
def delete_action(
    action_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("actions", "CanDelete")),
):
    ActionService(db).delete_action(action_id, actor_id=auth.user_id)
    return Response(status_code=204)
