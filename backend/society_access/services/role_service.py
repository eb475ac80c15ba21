"""Role and action administration.

Both are small vocabularies edited from the system-management screen.
Renames are refused where they would silently change what existing grants
mean; deletions are refused where records still depend on the row.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..exceptions import ConflictError
from ..models.access import Action, Role
from ..repositories.action_repository import ActionRepository
from ..repositories.role_repository import RoleRepository
from ..schemas.role import ActionCreate, ActionUpdate, RoleCreate, RoleUpdate
from . import audit_service
from .permission_service import VIEW_ACTION

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = RoleRepository(db)

    def list_roles(self) -> List[Role]:
        return self.repo.list_all()

    def get_role(self, role_id: int) -> Role:
        return self.repo.get_by_id(role_id)

    def create_role(self, data: RoleCreate, actor_id: Optional[int] = None) -> Role:
        if self.repo.get_by_name(data.role_name) is not None:
            raise ConflictError(f"Role already exists: {data.role_name}", details={"field": "RoleName"})
        role = self.repo.add(Role(role_name=data.role_name))
        self.db.commit()
        audit_service.log(self.db, actor_id, "create", "role", role.role_id, {"name": role.role_name})
        return role

    def update_role(self, role_id: int, data: RoleUpdate, actor_id: Optional[int] = None) -> Role:
        role = self.repo.get_by_id(role_id)
        existing = self.repo.get_by_name(data.role_name)
        if existing is not None and existing.role_id != role_id:
            raise ConflictError(f"Role already exists: {data.role_name}", details={"field": "RoleName"})
        old_name = role.role_name
        role.role_name = data.role_name
        self.db.commit()
        audit_service.log(
            self.db, actor_id, "update", "role", role_id, {"from": old_name, "to": data.role_name}
        )
        return role

    def delete_role(self, role_id: int, actor_id: Optional[int] = None) -> None:
        """Delete a role and its grants. Refused while any user holds the role."""
        role = self.repo.get_by_id(role_id)
        role_name = role.role_name
        users = self.repo.user_count(role_id)
        if users:
            raise ConflictError(
                f"Role '{role.role_name}' is assigned to {users} user(s)",
                details={"role_id": role_id, "users": users},
            )
        self.repo.delete(role)
        self.db.commit()
        audit_service.log(self.db, actor_id, "delete", "role", role_id, {"name": role_name})


class ActionService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ActionRepository(db)

    def list_actions(self) -> List[Action]:
        return self.repo.list_all()

    def create_action(self, data: ActionCreate, actor_id: Optional[int] = None) -> Action:
        if self.repo.get_by_name(data.action_name) is not None:
            raise ConflictError(f"Action already exists: {data.action_name}", details={"field": "ActionName"})
        action = self.repo.add(Action(action_name=data.action_name))
        self.db.commit()
        audit_service.log(self.db, actor_id, "create", "action", action.action_id, {"name": action.action_name})
        return action

    def update_action(self, action_id: int, data: ActionUpdate, actor_id: Optional[int] = None) -> Action:
        action = self.repo.get_by_id(action_id)
        if data.action_name == action.action_name:
            return action
        self._ensure_mutable(action, "renamed")
        existing = self.repo.get_by_name(data.action_name)
        if existing is not None:
            raise ConflictError(f"Action already exists: {data.action_name}", details={"field": "ActionName"})
        old_name = action.action_name
        action.action_name = data.action_name
        self.db.commit()
        audit_service.log(
            self.db, actor_id, "update", "action", action_id, {"from": old_name, "to": data.action_name}
        )
        return action

    def delete_action(self, action_id: int, actor_id: Optional[int] = None) -> None:
        action = self.repo.get_by_id(action_id)
        action_name = action.action_name
        self._ensure_mutable(action, "deleted")
        self.repo.delete(action)
        self.db.commit()
        audit_service.log(self.db, actor_id, "delete", "action", action_id, {"name": action_name})

    def _ensure_mutable(self, action: Action, verb: str) -> None:
        if action.action_name == VIEW_ACTION:
            raise ConflictError(f"The {VIEW_ACTION} action cannot be {verb}")
        grants = self.repo.grant_count(action.action_id)
        if grants:
            raise ConflictError(
                f"Action '{action.action_name}' is used by {grants} grant(s) and cannot be {verb}",
                details={"action_id": action.action_id, "grants": grants},
            )
