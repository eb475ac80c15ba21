"""Menu-action map repository: which actions each menu offers."""

from typing import List, Optional, Set, Tuple

from ..exceptions import MenuActionNotFoundError
from ..models.access import Action, Menu, MenuAction
from .base import BaseRepository


class MenuActionRepository(BaseRepository[MenuAction]):
    model_class = MenuAction
    id_column = "menu_action_id"
    not_found_error = MenuActionNotFoundError

    def list_with_names(self, menu_id: Optional[int] = None) -> List[MenuAction]:
        query = (
            self.db.query(MenuAction)
            .join(Menu, MenuAction.menu_id == Menu.menu_id)
            .join(Action, MenuAction.action_id == Action.action_id)
        )
        if menu_id is not None:
            query = query.filter(MenuAction.menu_id == menu_id)
        return query.order_by(Menu.position, Menu.menu_id, Action.action_id).all()

    def get_pair(self, menu_id: int, action_id: int) -> Optional[MenuAction]:
        return (
            self.db.query(MenuAction)
            .filter(MenuAction.menu_id == menu_id, MenuAction.action_id == action_id)
            .first()
        )

    def pairs(self) -> Set[Tuple[int, int]]:
        """Every mapped (menu_id, action_id)."""
        return {
            (menu_id, action_id)
            for menu_id, action_id in self.db.query(MenuAction.menu_id, MenuAction.action_id).all()
        }
