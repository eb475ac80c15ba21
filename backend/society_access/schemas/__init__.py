"""Pydantic schemas for API validation."""

from .menu import (
    MenuRecord,
    SubMenuItem,
    MenuItem,
    MenuCreate,
    MenuUpdate,
    MenuResponse,
)
from .role import (
    RoleCreate,
    RoleUpdate,
    RoleResponse,
    ActionCreate,
    ActionUpdate,
    ActionResponse,
)
from .grant import (
    MenuActionCreate,
    MenuActionUpdate,
    MenuActionResponse,
    RoleMenuActionIn,
    BulkGrantRequest,
    BulkGrantResponse,
    RoleMenuActionRow,
    RolePermissionGrid,
)

__all__ = [
    "MenuRecord",
    "SubMenuItem",
    "MenuItem",
    "MenuCreate",
    "MenuUpdate",
    "MenuResponse",
    "RoleCreate",
    "RoleUpdate",
    "RoleResponse",
    "ActionCreate",
    "ActionUpdate",
    "ActionResponse",
    "MenuActionCreate",
    "MenuActionUpdate",
    "MenuActionResponse",
    "RoleMenuActionIn",
    "BulkGrantRequest",
    "BulkGrantResponse",
    "RoleMenuActionRow",
    "RolePermissionGrid",
]
