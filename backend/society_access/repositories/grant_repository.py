"""Grant store queries: flat grant rows, per-role menus and the admin grid.

Flat grant rows are the delivery format the permission map is built from:
one row per (role, menu) with a ``Can<Action>`` column (1/0) for every
action in the vocabulary. Every menu gets a row, granted or not, so a
registered path the role holds nothing on resolves to an exact all-False
entry instead of falling back to a shorter prefix. Rows come out ordered by
role, then menu id, and that order becomes the map's insertion order.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models.access import Action, Menu, MenuAction, Role, RoleMenuAction
from ..services.permission_service import VIEW_ACTION, permission_name

GrantRow = Dict[str, Any]


class GrantRepository:
    def __init__(self, db):
        self.db = db

    def count(self) -> int:
        return self.db.query(RoleMenuAction).count()

    def for_role(self, role_id: int) -> List[RoleMenuAction]:
        return self.db.query(RoleMenuAction).filter(RoleMenuAction.role_id == role_id).all()

    def permission_rows(self, role_id: Optional[int] = None) -> List[GrantRow]:
        """Pivoted grant rows, optionally for a single role."""
        action_names = {
            action_id: name
            for action_id, name in self.db.query(Action.action_id, Action.action_name)
            .order_by(Action.action_id).all()
        }
        columns = [permission_name(name) for name in action_names.values()]

        roles = self.db.query(Role).order_by(Role.role_id)
        grants = self.db.query(RoleMenuAction)
        if role_id is not None:
            roles = roles.filter(Role.role_id == role_id)
            grants = grants.filter(RoleMenuAction.role_id == role_id)
        menus = self.db.query(Menu).order_by(Menu.menu_id).all()

        granted: Dict[Tuple[int, int], List[str]] = {}
        for grant in grants.all():
            name = action_names.get(grant.action_id)
            if name is not None:
                granted.setdefault((grant.role_id, grant.menu_id), []).append(permission_name(name))

        rows: List[GrantRow] = []
        for role in roles.all():
            for menu in menus:
                row: GrantRow = {
                    "RoleID": role.role_id,
                    "RoleName": role.role_name,
                    "MenuID": menu.menu_id,
                    "MenuName": menu.menu_name,
                    "ParentMenuID": menu.parent_menu_id,
                    "MenuURL": menu.menu_url,
                }
                row.update({column: 0 for column in columns})
                for column in granted.get((role.role_id, menu.menu_id), ()):
                    row[column] = 1
                rows.append(row)
        return rows

    def menu_records(self, role_id: int) -> List[GrantRow]:
        """Menus the role may view, as flat menu records for the tree builder."""
        menus = (
            self.db.query(Menu)
            .join(RoleMenuAction, RoleMenuAction.menu_id == Menu.menu_id)
            .join(Action, RoleMenuAction.action_id == Action.action_id)
            .filter(RoleMenuAction.role_id == role_id, Action.action_name == VIEW_ACTION)
            .order_by(Menu.position, Menu.menu_id)
            .all()
        )
        return [
            {
                "MenuID": m.menu_id,
                "MenuName": m.menu_name,
                "MenuURL": m.menu_url,
                "ParentMenuID": m.parent_menu_id,
                "RoleID": role_id,
                "Icon": m.icon,
                "Position": m.position,
            }
            for m in menus
        ]

    def grid(self, role_id: int) -> List[GrantRow]:
        """Every mapped (menu, action) with whether *role_id* holds it."""
        granted = {
            (g.menu_id, g.action_id): g.role_menu_action_id
            for g in self.for_role(role_id)
        }
        mappings = (
            self.db.query(MenuAction, Menu, Action)
            .join(Menu, MenuAction.menu_id == Menu.menu_id)
            .join(Action, MenuAction.action_id == Action.action_id)
            .order_by(Menu.position, Menu.menu_id, Action.action_id)
            .all()
        )
        return [
            {
                "RoleMenuActionID": granted.get((menu.menu_id, action.action_id)),
                "RoleID": role_id,
                "MenuID": menu.menu_id,
                "ParentMenuID": menu.parent_menu_id,
                "ActionID": action.action_id,
                "MenuName": menu.menu_name,
                "ActionName": action.action_name,
                "IsAllowed": (menu.menu_id, action.action_id) in granted,
            }
            for _mapping, menu, action in mappings
        ]

    def replace_for_role(self, role_id: int, pairs: Iterable[Tuple[int, int]]) -> int:
        """Replace the role's grant set with *pairs* of (menu_id, action_id).

        Does not commit. Returns the number of grants written.
        """
        self.db.query(RoleMenuAction).filter(RoleMenuAction.role_id == role_id).delete(
            synchronize_session="fetch"
        )
        written = 0
        for menu_id, action_id in dict.fromkeys(pairs):
            self.db.add(RoleMenuAction(role_id=role_id, menu_id=menu_id, action_id=action_id))
            written += 1
        self.db.flush()
        return written
