"""Role repository."""

from typing import Optional

from ..exceptions import RoleNotFoundError
from ..models.access import Role
from ..models.user import User
from .base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    model_class = Role
    id_column = "role_id"
    not_found_error = RoleNotFoundError
    order_by = ("role_id",)

    def get_by_name(self, role_name: str) -> Optional[Role]:
        return self.db.query(Role).filter(Role.role_name == role_name).first()

    def user_count(self, role_id: int) -> int:
        return self.db.query(User).filter(User.role_id == role_id).count()
