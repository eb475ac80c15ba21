"""Role permission administration: the grid read and the bulk replace."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..exceptions import ValidationError
from ..repositories.grant_repository import GrantRepository
from ..repositories.menu_action_repository import MenuActionRepository
from ..repositories.role_repository import RoleRepository
from ..schemas.grant import BulkGrantRequest, BulkGrantResponse, RoleMenuActionRow
from . import audit_service

logger = logging.getLogger(__name__)


class GrantService:
    def __init__(self, db: Session):
        self.db = db
        self.grants = GrantRepository(db)
        self.roles = RoleRepository(db)
        self.menu_actions = MenuActionRepository(db)

    def role_grid(self, role_id: int) -> List[RoleMenuActionRow]:
        """Every mapped (menu, action) for *role_id* with its ``IsAllowed`` flag."""
        self.roles.get_by_id(role_id)
        return [RoleMenuActionRow.model_validate(row) for row in self.grants.grid(role_id)]

    def permission_rows(self, role_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Flat grant rows, pivoted to one ``Can<Action>`` column per action."""
        if role_id is not None:
            self.roles.get_by_id(role_id)
        return self.grants.permission_rows(role_id=role_id)

    def replace(self, request: BulkGrantRequest, actor_id: Optional[int] = None) -> BulkGrantResponse:
        """Replace the full grant set of every role named in *request*.

        Entries with ``IsAllowed`` false name their role (so a role can be
        cleared) but grant nothing. Every allowed entry must be a mapped
        (menu, action) pair. All roles are replaced in one transaction.

        Raises:
            ValidationError: Empty payload or an unmapped pair.
            RoleNotFoundError: Unknown role.
        """
        entries = request.role_menu_actions
        if not entries:
            raise ValidationError("RoleMenuActions cannot be empty", field="RoleMenuActions")

        mapped = self.menu_actions.pairs()
        per_role: Dict[int, List[tuple]] = {}
        for entry in entries:
            pairs = per_role.setdefault(entry.role_id, [])
            if not entry.is_allowed:
                continue
            if (entry.menu_id, entry.action_id) not in mapped:
                raise ValidationError(
                    f"Menu {entry.menu_id} does not offer action {entry.action_id}",
                    field="RoleMenuActions",
                )
            pairs.append((entry.menu_id, entry.action_id))

        for role_id in per_role:
            self.roles.get_by_id(role_id)

        written = 0
        for role_id, pairs in per_role.items():
            written += self.grants.replace_for_role(role_id, pairs)
        self.db.commit()

        for role_id, pairs in per_role.items():
            audit_service.log(
                self.db, actor_id, "grant_replace", "role", role_id, {"granted": len(set(pairs))}
            )
        logger.info(
            "Replaced role grants",
            extra={"roles": list(per_role), "granted": written, "user_id": actor_id},
        )
        return BulkGrantResponse(
            message="Role permissions saved",
            roles=list(per_role),
            granted=written,
        )
