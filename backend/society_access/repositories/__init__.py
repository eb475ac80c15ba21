"""Data access repositories."""

from .base import BaseRepository
from .role_repository import RoleRepository
from .action_repository import ActionRepository
from .menu_repository import MenuRepository
from .menu_action_repository import MenuActionRepository
from .grant_repository import GrantRepository

__all__ = [
    "BaseRepository",
    "RoleRepository",
    "ActionRepository",
    "MenuRepository",
    "MenuActionRepository",
    "GrantRepository",
]
