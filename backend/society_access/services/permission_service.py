"""Permission map building and resolution: pure functions, no I/O.

Every permission decision in the system goes through ``has_permission``:
the API guard, the ``/api/auth/check`` endpoint, the client session and the
sidebar filter. Nothing here raises; absence of a grant resolves to False.

Design:
    - A permission map is an insertion-ordered ``dict`` of
      ``menu_url -> {permission_name -> bool}``, built from flat grant rows.
    - Any non-identity column of a grant row is a permission name, so new
      actions need no code change here.
    - Lookup uses the path before ``?`` with one trailing ``/`` removed.
      An exact key wins; otherwise the FIRST key (insertion order) that is a
      string prefix of the path decides.

Known hazard: the prefix fallback lets an early, short key shadow later,
more specific ones. With ``"/"`` inserted first, every unknown path falls back
to the root grants. This is the behaviour the frontend was built against and
is kept as-is until product decides otherwise.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Dict, Optional, Set

PermissionMap = Dict[str, Dict[str, bool]]

# Grant row columns that identify the row rather than grant something.
RESERVED_GRANT_FIELDS = frozenset({
    "MenuURL", "RoleID", "RoleName", "MenuID", "MenuName", "ParentMenuID",
})

VIEW_ACTION = "View"
VIEW_PERMISSION = "CanView"
_PERMISSION_PREFIX = "Can"


def permission_name(action_name: str) -> str:
    """Permission column for an action: ``"View"`` -> ``"CanView"``."""
    return f"{_PERMISSION_PREFIX}{action_name}"


def build_permission_map(flat_grants: Iterable[Mapping[str, Any]]) -> PermissionMap:
    """Build the per-session lookup from flat grant rows.

    Rows without a ``MenuURL`` (pure container menus) and anything that is not
    a mapping are skipped. A later row for the same URL replaces the earlier
    one but keeps its position in the map.

    Args:
        flat_grants: Rows such as ``{"MenuURL": "/", "CanView": 1, "CanAdd": 0}``.

    Returns:
        A new map; empty when there are no usable rows.
    """
    permission_map: PermissionMap = {}
    if not flat_grants:
        return permission_map

    for row in flat_grants:
        if not isinstance(row, Mapping):
            continue
        menu_url = row.get("MenuURL")
        if not menu_url or not isinstance(menu_url, str):
            continue
        permission_map[menu_url] = {
            field: value == 1
            for field, value in row.items()
            if field not in RESERVED_GRANT_FIELDS
        }
    return permission_map


def normalize_path(request_path: str) -> str:
    """Map key for a request path: query string dropped, one trailing slash removed.

    The root path ``"/"`` stays ``"/"``.
    """
    path = request_path.split("?", 1)[0]
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def has_query_string(menu_url: Optional[str]) -> bool:
    """True when *menu_url* carries a query, which lookups never see.

    Such a menu (a tab screen like ``/payment-management?tab=payment-plans``)
    resolves to the entry of its base path, so only ``View`` is meaningful on it.
    """
    return isinstance(menu_url, str) and "?" in menu_url


def has_permission(
    permission_map: Optional[Mapping[str, Mapping[str, Any]]],
    request_path: Optional[str],
    action_name: Optional[str],
) -> bool:
    """Decide whether *action_name* is granted at *request_path*.

    Args:
        permission_map: Output of ``build_permission_map`` (may be empty or None).
        request_path: Path with optional query, e.g. ``"/management-panel?tab=houses"``.
            The query never takes part in the lookup.
        action_name: Permission name, e.g. ``"CanView"`` or ``"CanGeneratePaymentPlan"``.

    Returns:
        True only if the matched entry holds a truthy value for the action.
    """
    actions = _lookup(permission_map, request_path)
    if actions is None or not isinstance(action_name, str):
        return False
    return bool(actions.get(action_name, False))


def granted_actions(
    permission_map: Optional[Mapping[str, Mapping[str, Any]]],
    request_path: Optional[str],
) -> Set[str]:
    """All permission names granted at *request_path*, using the same lookup."""
    actions = _lookup(permission_map, request_path)
    if actions is None:
        return set()
    return {name for name, allowed in actions.items() if allowed}


def _lookup(
    permission_map: Optional[Mapping[str, Mapping[str, Any]]],
    request_path: Optional[str],
) -> Optional[Mapping[str, Any]]:
    if not permission_map or not isinstance(request_path, str):
        return None

    path = normalize_path(request_path)

    exact = permission_map.get(path)
    if exact is not None:
        return exact if isinstance(exact, Mapping) else None

    for key, actions in permission_map.items():
        if isinstance(key, str) and path.startswith(key):
            return actions if isinstance(actions, Mapping) else None
    return None
