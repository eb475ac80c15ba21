"""Menu hierarchy builder: flat menu records -> two-level sidebar tree.

Pure functions over in-memory data. The tree carries no fine-grained
permissions; every item is tagged ``CanView`` and finer checks go through
``permission_service.has_permission``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..schemas.menu import MenuItem, MenuRecord, SubMenuItem
from .permission_service import VIEW_PERMISSION, PermissionMap, has_permission

logger = logging.getLogger(__name__)

MenuInput = Union[MenuRecord, Mapping[str, Any]]


def build_menu_tree(flat_menus: Iterable[MenuInput]) -> List[MenuItem]:
    """Build the sidebar tree from a flat menu list.

    Top-level records (``ParentMenuID == 0``) keep their input order. Each
    one's ``SubItems`` are the records pointing at it, stable-sorted by
    ``Position`` when every child has one, otherwise in input order.
    Children whose parent is not in the list are dropped without error.
    Records that fail validation are skipped.
    """
    records = _coerce_records(flat_menus)
    parents = [r for r in records if r.parent_menu_id == 0]
    children = [r for r in records if r.parent_menu_id > 0]

    tree: List[MenuItem] = []
    for parent in parents:
        own = [c for c in children if c.parent_menu_id == parent.menu_id]
        if own and all(c.position is not None for c in own):
            own = sorted(own, key=lambda c: c.position)
        tree.append(
            MenuItem(
                path=parent.menu_url,
                title=parent.menu_name,
                icon=parent.icon,
                permission=VIEW_PERMISSION,
                role_id=parent.role_id,
                sub_items=[_sub_item(c) for c in own],
            )
        )
    return tree


def visible_menu_tree(tree: Iterable[MenuItem], permission_map: PermissionMap) -> List[MenuItem]:
    """Filter a built tree down to what the sidebar shows for this map.

    A top-level item is shown when its own ``Permission`` is granted at its
    path; a sub-item when ``CanView`` is granted at its path. Pure
    containers without a path therefore stay hidden.
    """
    visible: List[MenuItem] = []
    for item in tree:
        if not has_permission(permission_map, item.path, item.permission):
            continue
        subs = [s for s in item.sub_items if has_permission(permission_map, s.path, VIEW_PERMISSION)]
        visible.append(item.model_copy(update={"sub_items": subs}))
    return visible


def _sub_item(record: MenuRecord) -> SubMenuItem:
    return SubMenuItem(
        path=record.menu_url,
        title=record.menu_name,
        icon=record.icon,
        permission=VIEW_PERMISSION,
        role_id=record.role_id,
    )


def _coerce_records(flat_menus: Optional[Iterable[MenuInput]]) -> List[MenuRecord]:
    records: List[MenuRecord] = []
    for raw in flat_menus or []:
        if isinstance(raw, MenuRecord):
            records.append(raw)
            continue
        try:
            records.append(MenuRecord.model_validate(raw))
        except PydanticValidationError as e:
            logger.warning("Skipping malformed menu record: %s", e.errors(include_url=False))
    return records
