"""Menu repository: lookups and the flat hierarchy view."""

from typing import List, Optional, Tuple

from sqlalchemy.orm import aliased

from ..exceptions import MenuNotFoundError
from ..models.access import TOP_LEVEL_PARENT_ID, Menu
from .base import BaseRepository


class MenuRepository(BaseRepository[Menu]):
    model_class = Menu
    id_column = "menu_id"
    not_found_error = MenuNotFoundError
    order_by = ("position", "menu_id")

    def get_by_url(self, menu_url: str) -> Optional[Menu]:
        return self.db.query(Menu).filter(Menu.menu_url == menu_url).first()

    def children_of(self, menu_id: int) -> List[Menu]:
        return (
            self.db.query(Menu)
            .filter(Menu.parent_menu_id == menu_id)
            .order_by(Menu.position, Menu.menu_id)
            .all()
        )

    def has_children(self, menu_id: int) -> bool:
        return self.db.query(Menu.menu_id).filter(Menu.parent_menu_id == menu_id).first() is not None

    def hierarchy(self) -> List[Tuple[Menu, Optional[str]]]:
        """Every menu with its parent's name, parents before their children.

        Top-level menus are ordered by position; each is followed by its
        children, also by position.
        """
        parent = aliased(Menu)
        rows = (
            self.db.query(Menu, parent.menu_name)
            .outerjoin(parent, Menu.parent_menu_id == parent.menu_id)
            .order_by(Menu.position, Menu.menu_id)
            .all()
        )
        top = [r for r in rows if r[0].parent_menu_id == TOP_LEVEL_PARENT_ID]
        ordered: List[Tuple[Menu, Optional[str]]] = []
        seen = set()
        for row in top:
            ordered.append(row)
            seen.add(row[0].menu_id)
            for child in rows:
                if child[0].parent_menu_id == row[0].menu_id:
                    ordered.append(child)
                    seen.add(child[0].menu_id)
        # Rows pointing at a missing parent still show up, at the end.
        ordered.extend(r for r in rows if r[0].menu_id not in seen)
        return ordered
