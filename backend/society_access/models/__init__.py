"""Database models."""

from .access import Role, Action, Menu, MenuAction, RoleMenuAction, TOP_LEVEL_PARENT_ID
from .user import User, AuditLog

__all__ = [
    "Role", "Action", "Menu", "MenuAction", "RoleMenuAction", "TOP_LEVEL_PARENT_ID",
    "User", "AuditLog",
]
