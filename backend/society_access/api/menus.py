"""Menu and menu-action map endpoints.

Menus are guarded by the ``menus`` administration menu, the menu-action map
by ``menu-actions``. Hierarchy and mapping rules live in MenuService.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin_permission
from ..database import get_db
from ..schemas.grant import MenuActionCreate, MenuActionResponse, MenuActionUpdate
from ..schemas.menu import MenuCreate, MenuResponse, MenuUpdate
from ..services.menu_service import MenuService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menus", tags=["menus"])
menu_actions_router = APIRouter(prefix="/api/menu-actions", tags=["menus"])


# -- Menus ----------------------------------------------------------------

@router.get("", response_model=List[MenuResponse])
def list_menus(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menus", "CanView")),
):
    """Flat hierarchy: each top-level menu followed by its sub-menus."""
    return MenuService(db).list_menus()


@router.get("/{menu_id}", response_model=MenuResponse)
def get_menu(
    menu_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menus", "CanView")),
):
    return MenuService(db).get_menu(menu_id)


@router.post("", response_model=MenuResponse, status_code=201)
def create_menu(
    data: MenuCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menus", "CanAdd")),
):
    return MenuService(db).create_menu(data, actor_id=auth.user_id)


@router.put("/{menu_id}", response_model=MenuResponse)
def update_menu(
    menu_id: int,
    data: MenuUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menus", "CanEdit")),
):
    return MenuService(db).update_menu(menu_id, data, actor_id=auth.user_id)


@router.delete("/{menu_id}", status_code=204)
def delete_menu(
    menu_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menus", "CanDelete")),
):
    MenuService(db).delete_menu(menu_id, actor_id=auth.user_id)
    return Response(status_code=204)


# -- Menu-action map --------------------------------------------------------

@menu_actions_router.get("", response_model=List[MenuActionResponse])
def list_menu_actions(
    menu_id: Optional[int] = Query(None, alias="MenuID"),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menu-actions", "CanView")),
):
    return MenuService(db).list_menu_actions(menu_id)


@menu_actions_router.post("", response_model=MenuActionResponse, status_code=201)
def create_menu_action(
    data: MenuActionCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menu-actions", "CanAdd")),
):
    return MenuService(db).create_menu_action(data, actor_id=auth.user_id)


@menu_actions_router.put("/{menu_action_id}", response_model=MenuActionResponse)
def update_menu_action(
    menu_action_id: int,
    data: MenuActionUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menu-actions", "CanEdit")),
):
    return MenuService(db).update_menu_action(menu_action_id, data, actor_id=auth.user_id)


@menu_actions_router.delete("/{menu_action_id}", status_code=204)
def delete_menu_action(
    menu_action_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin_permission("menu-actions", "CanDelete")),
):
    MenuService(db).delete_menu_action(menu_action_id, actor_id=auth.user_id)
    return Response(status_code=204)
