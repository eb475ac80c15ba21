"""Grant store models: roles, actions, menus and the grants tying them together.

A grant is a row in ``role_menu_actions``: members of the role may perform the
action at the menu. Absence of a row is a denial. Which actions a menu offers
at all is recorded separately in ``menu_actions``; the admin screen only lets
grants be created for pairs listed there.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base

# ParentMenuID value marking a top-level menu.
TOP_LEVEL_PARENT_ID = 0


class Role(Base):
    """Named group of users. Each user belongs to exactly one role."""

    __tablename__ = "roles"

    role_id = Column(Integer, primary_key=True, autoincrement=True)
    role_name = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    grants = relationship("RoleMenuAction", back_populates="role", cascade="all, delete-orphan")


class Action(Base):
    """A named capability (View, Add, Edit, Delete, GeneratePaymentPlan, ...).

    The permission column derived from an action is ``"Can" + action_name``.
    """

    __tablename__ = "actions"

    action_id = Column(Integer, primary_key=True, autoincrement=True)
    action_name = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Menu(Base):
    """A navigable location in the application.

    ``parent_menu_id`` is 0 for top-level menus, otherwise the id of a
    top-level menu. ``menu_url`` may be NULL only for pure containers.
    """

    __tablename__ = "menus"

    menu_id = Column(Integer, primary_key=True, autoincrement=True)
    menu_name = Column(String(150), nullable=False)
    menu_url = Column(String(500), unique=True, nullable=True)
    parent_menu_id = Column(Integer, nullable=False, default=TOP_LEVEL_PARENT_ID, index=True)
    position = Column(Integer, nullable=False, default=0)
    icon = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    menu_actions = relationship("MenuAction", back_populates="menu", cascade="all, delete-orphan")

    @property
    def is_top_level(self) -> bool:
        return (self.parent_menu_id or TOP_LEVEL_PARENT_ID) == TOP_LEVEL_PARENT_ID


class MenuAction(Base):
    """An action a menu offers (the 'map menu actions' admin tab)."""

    __tablename__ = "menu_actions"
    __table_args__ = (
        UniqueConstraint("menu_id", "action_id", name="uq_menu_action"),
    )

    menu_action_id = Column(Integer, primary_key=True, autoincrement=True)
    menu_id = Column(Integer, ForeignKey("menus.menu_id", ondelete="CASCADE"), nullable=False)
    action_id = Column(Integer, ForeignKey("actions.action_id", ondelete="CASCADE"), nullable=False)

    menu = relationship("Menu", back_populates="menu_actions")
    action = relationship("Action")


class RoleMenuAction(Base):
    """A grant: the role may perform the action at the menu."""

    __tablename__ = "role_menu_actions"
    __table_args__ = (
        UniqueConstraint("role_id", "menu_id", "action_id", name="uq_role_menu_action"),
    )

    role_menu_action_id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.role_id", ondelete="CASCADE"), nullable=False, index=True)
    menu_id = Column(Integer, ForeignKey("menus.menu_id", ondelete="CASCADE"), nullable=False)
    action_id = Column(Integer, ForeignKey("actions.action_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    role = relationship("Role", back_populates="grants")
    menu = relationship("Menu")
    action = relationship("Action")
