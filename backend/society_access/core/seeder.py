"""Seed the default vocabulary on first startup.

Creates the standard actions, roles, the application's menus with their
menu-action map, and the default grants. A ``?tab=`` screen offers only View;
the actions it needs are offered on its base-path parent, the entry the
resolver actually consults. Default grants are everything for Administrator,
everything but deletes outside system management for Manager, and
view-only access outside system management for User. Idempotent: skips when
any action already exists.
"""

import logging
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from ..services.permission_service import VIEW_ACTION, has_query_string
from .config import settings

logger = logging.getLogger(__name__)

DEFAULT_ACTIONS = ["View", "Add", "Edit", "Delete", "GeneratePaymentPlan", "ViewPaymentPlan"]
CRUD_ACTIONS = (VIEW_ACTION, "Add", "Edit", "Delete")

MANAGER_ROLE = "Manager"
USER_ROLE = "User"

# (name, url, icon, [(child name, child url, extra actions)])
_MenuSpec = Tuple[str, str, str, List[Tuple[str, str, Tuple[str, ...]]]]


def _tabs(base: str, *tabs: Tuple[str, str]) -> List[Tuple[str, str, Tuple[str, ...]]]:
    return [(title, f"{base}?tab={tab}", ()) for title, tab in tabs]


def default_menus() -> List[_MenuSpec]:
    admin = settings.system_management_path.rstrip("/")
    return [
        ("Dashboard", "/", "LayoutDashboard", []),
        ("Society Management", "/society-management", "Building2", _tabs(
            "/society-management",
            ("Plots", "plots"),
            ("Plot Users", "plot-users"),
            ("Plot Category", "plot-category"),
            ("Plot Type", "plot-type"),
            ("Plot Floors", "plot-floors"),
        )),
        ("Payment Management", "/payment-management", "Wallet", [
            ("Service Charges", "/payment-management?tab=service-charges", ()),
            ("Payment Plans", "/payment-management?tab=payment-plans",
             ("GeneratePaymentPlan", "ViewPaymentPlan")),
            ("Payment Receipt", "/payment-management?tab=payment-receipt", ()),
            ("Payment Schedule", "/payment-management?tab=payment-schedule", ()),
        ]),
        ("Management Panel", "/management-panel", "Banknote", _tabs(
            "/management-panel",
            ("Utilities Bills", "utilities-bills"),
            ("Monthly Maintenance", "monthly-maintenance"),
            ("Maintenance Requests", "maintenance-requests"),
            ("Access Control", "access-control"),
        )),
        ("Admin Tools", "/admin-tools", "Settings", _tabs(
            "/admin-tools",
            ("Edit Houses", "houses"),
            ("Edit Maintenance Fee Plan", "fee-plan"),
            ("User Management", "users"),
            ("Building Registry", "buildings"),
            ("Document Templates", "documents"),
        )),
        ("System Management", admin, "ShieldCheck", [
            ("Actions", f"{admin}/actions", ()),
            ("Menus", f"{admin}/menus", ()),
            ("Map Menu Actions", f"{admin}/menu-actions", ()),
            ("Roles", f"{admin}/roles", ()),
            ("Role Permissions", f"{admin}/permissions", ()),
            ("Users", f"{admin}/users", ()),
        ]),
    ]


def seed_defaults(db: Session) -> int:
    """Seed actions, roles, menus, menu actions and grants into an empty store.

    Args:
        db: An open SQLAlchemy session.

    Returns:
        Number of grants seeded (0 if skipped).
    """
    from ..models.access import Action, Menu, MenuAction, Role, RoleMenuAction

    if db.query(Action).count() > 0:
        logger.debug("Actions already present, skipping seed")
        return 0

    actions: Dict[str, Action] = {}
    for name in DEFAULT_ACTIONS:
        actions[name] = Action(action_name=name)
        db.add(actions[name])

    roles: Dict[str, Role] = {}
    for name in (settings.admin_role_name, MANAGER_ROLE, USER_ROLE):
        role = db.query(Role).filter(Role.role_name == name).first()
        if role is None:
            role = Role(role_name=name)
            db.add(role)
        roles[name] = role
    db.flush()

    # (menu, action name, is system menu)
    offered: List[Tuple[Menu, str, bool]] = []
    for position, (name, url, icon, children) in enumerate(default_menus()):
        system = url == settings.system_management_path.rstrip("/")
        parent = Menu(menu_name=name, menu_url=url, icon=icon, position=position, parent_menu_id=0)
        db.add(parent)
        db.flush()
        start = len(offered)
        parent_actions = [VIEW_ACTION]
        for child_position, (child_name, child_url, extra) in enumerate(children, start=1):
            child = Menu(
                menu_name=child_name,
                menu_url=child_url,
                position=child_position,
                parent_menu_id=parent.menu_id,
            )
            db.add(child)
            db.flush()
            child_actions = CRUD_ACTIONS + extra
            if has_query_string(child_url):
                parent_actions.extend(a for a in child_actions if a not in parent_actions)
                child_actions = (VIEW_ACTION,)
            offered.extend((child, action, system) for action in child_actions)
        offered[start:start] = [(parent, action, system) for action in parent_actions]

    for menu, action_name, _system in offered:
        db.add(MenuAction(menu_id=menu.menu_id, action_id=actions[action_name].action_id))

    seeded = 0
    for menu, action_name, system in offered:
        for role_name in _roles_granted(action_name, system):
            db.add(RoleMenuAction(
                role_id=roles[role_name].role_id,
                menu_id=menu.menu_id,
                action_id=actions[action_name].action_id,
            ))
            seeded += 1

    db.commit()
    logger.info(
        "Seeded default access data",
        extra={"actions": len(actions), "menus": len({m.menu_id for m, _, _ in offered}), "grants": seeded},
    )
    return seeded


def _roles_granted(action_name: str, system: bool) -> List[str]:
    granted = [settings.admin_role_name]
    if system:
        return granted
    if action_name != "Delete":
        granted.append(MANAGER_ROLE)
    if action_name == "View":
        granted.append(USER_ROLE)
    return granted

