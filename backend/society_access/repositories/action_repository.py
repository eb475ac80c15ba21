"""Action repository."""

from typing import Optional

from ..exceptions import ActionNotFoundError
from ..models.access import Action, RoleMenuAction
from .base import BaseRepository


class ActionRepository(BaseRepository[Action]):
    model_class = Action
    id_column = "action_id"
    not_found_error = ActionNotFoundError
    order_by = ("action_id",)

    def get_by_name(self, action_name: str) -> Optional[Action]:
        return self.db.query(Action).filter(Action.action_name == action_name).first()

    def grant_count(self, action_id: int) -> int:
        return self.db.query(RoleMenuAction).filter(RoleMenuAction.action_id == action_id).count()
