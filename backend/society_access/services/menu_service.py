"""Menu and menu-action administration.

Keeps the menu table a two-level forest: top-level menus have
``parent_menu_id == 0``, every other menu points at an existing top-level
menu, and a menu that has children cannot itself become a child. The
menu-action map lists which actions each menu offers. A menu whose URL
carries a query string resolves to its base path, so it may only offer
``View``; the other actions of a tab screen belong on the base-path menu.
Grants can only exist for mapped pairs, so removing or changing a mapping
removes the grants on the old pair.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..exceptions import ConflictError, MenuHierarchyError, ValidationError
from ..models.access import TOP_LEVEL_PARENT_ID, Menu, MenuAction, RoleMenuAction
from ..repositories.action_repository import ActionRepository
from ..repositories.menu_action_repository import MenuActionRepository
from ..repositories.menu_repository import MenuRepository
from ..schemas.grant import MenuActionCreate, MenuActionResponse, MenuActionUpdate
from ..schemas.menu import MenuCreate, MenuResponse, MenuUpdate
from . import audit_service
from .permission_service import VIEW_ACTION, has_query_string

logger = logging.getLogger(__name__)


class MenuService:
    """Menu CRUD and the menu-action map.

    Public methods:
        list_menus          -- flat hierarchy view with parent names
        create_menu / update_menu / delete_menu
        list_menu_actions   -- optionally for one menu
        create_menu_action / update_menu_action / delete_menu_action
    """

    def __init__(self, db: Session):
        self.db = db
        self.menus = MenuRepository(db)
        self.actions = ActionRepository(db)
        self.menu_actions = MenuActionRepository(db)

    # ------------------------------------------------------------------
    # Menus
    # ------------------------------------------------------------------

    def list_menus(self) -> List[MenuResponse]:
        return [self._menu_response(menu, parent_name) for menu, parent_name in self.menus.hierarchy()]

    def get_menu(self, menu_id: int) -> MenuResponse:
        menu = self.menus.get_by_id(menu_id)
        return self._menu_response(menu, self._parent_name(menu))

    def create_menu(self, data: MenuCreate, actor_id: Optional[int] = None) -> MenuResponse:
        self._check_parent(None, data.parent_menu_id)
        self._check_url_free(data.menu_url, None)

        menu = self.menus.add(
            Menu(
                menu_name=data.menu_name,
                menu_url=data.menu_url,
                parent_menu_id=data.parent_menu_id,
                position=data.position,
                icon=data.icon,
            )
        )
        self.db.commit()
        audit_service.log(
            self.db, actor_id, "create", "menu", menu.menu_id,
            {"name": menu.menu_name, "url": menu.menu_url, "parent": menu.parent_menu_id},
        )
        return self._menu_response(menu, self._parent_name(menu))

    def update_menu(self, menu_id: int, data: MenuUpdate, actor_id: Optional[int] = None) -> MenuResponse:
        menu = self.menus.get_by_id(menu_id)
        self._check_parent(menu, data.parent_menu_id)
        self._check_url_free(data.menu_url, menu_id)

        if has_query_string(data.menu_url):
            offered = [ma.action.action_name for ma in self.menu_actions.list_with_names(menu_id)]
            extra = sorted(name for name in offered if name != VIEW_ACTION)
            if extra:
                raise ValidationError(
                    f"A URL with a query string only offers {VIEW_ACTION}; unmap {', '.join(extra)} first",
                    field="MenuURL",
                )

        menu.menu_name = data.menu_name
        menu.menu_url = data.menu_url
        menu.parent_menu_id = data.parent_menu_id
        menu.position = data.position
        menu.icon = data.icon
        self.db.commit()
        audit_service.log(
            self.db, actor_id, "update", "menu", menu_id,
            {"name": menu.menu_name, "url": menu.menu_url, "parent": menu.parent_menu_id},
        )
        return self._menu_response(menu, self._parent_name(menu))

    def delete_menu(self, menu_id: int, actor_id: Optional[int] = None) -> None:
        """Delete a menu with its mappings and grants. Refused while it has children."""
        menu = self.menus.get_by_id(menu_id)
        menu_name = menu.menu_name
        if self.menus.has_children(menu_id):
            raise ConflictError(
                f"Menu '{menu.menu_name}' has sub-menus; delete or move them first",
                details={"menu_id": menu_id},
            )
        self.db.query(RoleMenuAction).filter(RoleMenuAction.menu_id == menu_id).delete(
            synchronize_session="fetch"
        )
        self.menus.delete(menu)
        self.db.commit()
        audit_service.log(self.db, actor_id, "delete", "menu", menu_id, {"name": menu_name})

    # ------------------------------------------------------------------
    # Menu-action map
    # ------------------------------------------------------------------

    def list_menu_actions(self, menu_id: Optional[int] = None) -> List[MenuActionResponse]:
        if menu_id is not None:
            self.menus.get_by_id(menu_id)
        return [self._mapping_response(ma) for ma in self.menu_actions.list_with_names(menu_id)]

    def create_menu_action(self, data: MenuActionCreate, actor_id: Optional[int] = None) -> MenuActionResponse:
        self._check_pair(data.menu_id, data.action_id, None)
        mapping = self.menu_actions.add(MenuAction(menu_id=data.menu_id, action_id=data.action_id))
        self.db.commit()
        audit_service.log(
            self.db, actor_id, "create", "menu_action", mapping.menu_action_id,
            {"menu_id": data.menu_id, "action_id": data.action_id},
        )
        return self._mapping_response(mapping)

    def update_menu_action(
        self, menu_action_id: int, data: MenuActionUpdate, actor_id: Optional[int] = None
    ) -> MenuActionResponse:
        mapping = self.menu_actions.get_by_id(menu_action_id)
        old_pair = (mapping.menu_id, mapping.action_id)
        self._check_pair(data.menu_id, data.action_id, menu_action_id)

        if old_pair != (data.menu_id, data.action_id):
            self._drop_grants(*old_pair)
        mapping.menu_id = data.menu_id
        mapping.action_id = data.action_id
        self.db.commit()
        self.db.refresh(mapping)
        audit_service.log(
            self.db, actor_id, "update", "menu_action", menu_action_id,
            {"from": list(old_pair), "to": [data.menu_id, data.action_id]},
        )
        return self._mapping_response(mapping)

    def delete_menu_action(self, menu_action_id: int, actor_id: Optional[int] = None) -> None:
        mapping = self.menu_actions.get_by_id(menu_action_id)
        pair = (mapping.menu_id, mapping.action_id)
        self._drop_grants(*pair)
        self.menu_actions.delete(mapping)
        self.db.commit()
        audit_service.log(
            self.db, actor_id, "delete", "menu_action", menu_action_id,
            {"menu_id": pair[0], "action_id": pair[1]},
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_parent(self, menu: Optional[Menu], parent_menu_id: int) -> None:
        if parent_menu_id == TOP_LEVEL_PARENT_ID:
            return
        menu_id = menu.menu_id if menu is not None else None
        if menu_id is not None and parent_menu_id == menu_id:
            raise MenuHierarchyError("A menu cannot be its own parent", menu_id, parent_menu_id)

        parent = self.menus.get_by_id_optional(parent_menu_id)
        if parent is None:
            raise MenuHierarchyError(
                f"Parent menu not found: {parent_menu_id}", menu_id, parent_menu_id
            )
        if not parent.is_top_level:
            raise MenuHierarchyError(
                "Menus nest at most two levels; the parent must be a top-level menu",
                menu_id, parent_menu_id,
            )
        if menu_id is not None and self.menus.has_children(menu_id):
            raise MenuHierarchyError(
                "A menu with sub-menus cannot be moved under another menu",
                menu_id, parent_menu_id,
            )

    def _check_url_free(self, menu_url: Optional[str], menu_id: Optional[int]) -> None:
        if menu_url is None:
            return
        existing = self.menus.get_by_url(menu_url)
        if existing is not None and existing.menu_id != menu_id:
            raise ConflictError(
                f"Menu URL already in use: {menu_url}",
                details={"field": "MenuURL", "menu_id": existing.menu_id},
            )

    def _check_pair(self, menu_id: int, action_id: int, menu_action_id: Optional[int]) -> None:
        menu = self.menus.get_by_id(menu_id)
        action = self.actions.get_by_id(action_id)
        if has_query_string(menu.menu_url) and action.action_name != VIEW_ACTION:
            raise ValidationError(
                f"'{menu.menu_url}' resolves to its base path; map '{action.action_name}' on that menu instead",
                field="ActionID",
            )
        existing = self.menu_actions.get_pair(menu_id, action_id)
        if existing is not None and existing.menu_action_id != menu_action_id:
            raise ConflictError(
                f"'{menu.menu_name}' already offers '{action.action_name}'",
                details={"menu_action_id": existing.menu_action_id},
            )

    def _drop_grants(self, menu_id: int, action_id: int) -> int:
        return self.db.query(RoleMenuAction).filter(
            RoleMenuAction.menu_id == menu_id, RoleMenuAction.action_id == action_id
        ).delete(synchronize_session="fetch")

    def _parent_name(self, menu: Menu) -> Optional[str]:
        if menu.is_top_level:
            return None
        parent = self.menus.get_by_id_optional(menu.parent_menu_id)
        return parent.menu_name if parent is not None else None

    @staticmethod
    def _menu_response(menu: Menu, parent_name: Optional[str]) -> MenuResponse:
        return MenuResponse(
            menu_id=menu.menu_id,
            menu_name=menu.menu_name,
            menu_url=menu.menu_url,
            parent_menu_id=menu.parent_menu_id,
            parent_menu_name=parent_name,
            position=menu.position,
            icon=menu.icon,
        )

    @staticmethod
    def _mapping_response(mapping: MenuAction) -> MenuActionResponse:
        return MenuActionResponse(
            menu_action_id=mapping.menu_action_id,
            menu_id=mapping.menu_id,
            menu_name=mapping.menu.menu_name,
            parent_menu_id=mapping.menu.parent_menu_id,
            action_id=mapping.action_id,
            action_name=mapping.action.action_name,
        )
