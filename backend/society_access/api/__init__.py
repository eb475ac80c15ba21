"""API routes."""

from .auth_routes import router as auth_router
from .roles import router as roles_router, actions_router
from .menus import router as menus_router, menu_actions_router
from .permissions import router as permissions_router

__all__ = [
    "auth_router",
    "roles_router",
    "actions_router",
    "menus_router",
    "menu_actions_router",
    "permissions_router",
]
