"""Authentication service: user lifecycle, password hashing, session payloads.

All password operations use bcrypt via passlib. Passwords are never stored
or logged in plaintext. Endpoints are thin wrappers around these functions.
"""

import logging
from typing import List, Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from ..core.auth import load_permission_map
from ..core.config import settings
from ..exceptions import AuthenticationError, ConflictError, UserNotFoundError, ValidationError
from ..models.access import Role
from ..models.user import User
from ..repositories.grant_repository import GrantRepository
from ..repositories.role_repository import RoleRepository
from ..schemas.auth import RoleRef, SessionUserPayload, UserResponse
from ..schemas.menu import MenuItem
from .menu_tree import build_menu_tree, visible_menu_tree

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def register_user(
    db: Session,
    username: str,
    password: str,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    role_id: Optional[int] = None,
) -> User:
    """Create a new user account.

    The first account ever registered gets the administrator role
    (``settings.admin_role_name``, created if missing) and *role_id* is
    ignored. Later accounts must name an existing role.

    Raises:
        ValidationError: Bad input or unknown role.
        ConflictError: Username or email already taken.
    """
    username = username.strip()
    if not username:
        raise ValidationError("Username required", field="username")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    email = email.strip().lower() if email and email.strip() else None
    if email is not None and "@" not in email:
        raise ValidationError("Valid email address required", field="email")

    if db.query(User).filter(User.username == username).first() is not None:
        raise ConflictError("Username already registered", details={"field": "username"})
    if email is not None and db.query(User).filter(User.email == email).first() is not None:
        raise ConflictError("Email already registered", details={"field": "email"})

    # FOR UPDATE so two concurrent first registrations cannot both become admin.
    is_first_user = db.query(User).with_for_update().count() == 0
    roles = RoleRepository(db)
    if is_first_user:
        role = roles.get_by_name(settings.admin_role_name)
        if role is None:
            role = roles.add(Role(role_name=settings.admin_role_name))
    else:
        if role_id is None:
            raise ValidationError("roleID required", field="roleID")
        role = roles.get_by_id_optional(role_id)
        if role is None:
            raise ValidationError(f"Unknown role: {role_id}", field="roleID")

    user = User(
        username=username,
        password_hash=bcrypt.hash(password),
        full_name=full_name.strip() if full_name else None,
        email=email,
        phone=phone,
        role_id=role.role_id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    if is_first_user:
        logger.info("First user registered as %s: %s", role.role_name, username)
    return user


def authenticate(db: Session, username: str, password: str) -> User:
    """Validate credentials and return the user.

    Raises AuthenticationError on unknown user, wrong password or inactive
    account; the message does not say which.
    """
    user = db.query(User).filter(User.username == username.strip()).first()

    if user is None or not bcrypt.verify(password, user.password_hash):
        raise AuthenticationError("Invalid username or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return user


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.user_id == user_id).first()


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at, User.user_id).all()


def user_count(db: Session) -> int:
    return db.query(User).count()


def assign_role(db: Session, user_id: int, role_id: int) -> User:
    """Move a user to another role. Applies on the user's next request."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    RoleRepository(db).get_by_id(role_id)

    user.role_id = role_id
    db.commit()
    db.refresh(user)
    return user


def deactivate_user(db: Session, user_id: int) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    user.is_active = False
    db.commit()
    db.refresh(user)
    return user


def role_menu_tree(db: Session, role_id: int) -> List[MenuItem]:
    """Sidebar tree for the role: built from its viewable menus, then filtered."""
    grants = GrantRepository(db)
    tree = build_menu_tree(grants.menu_records(role_id))
    return visible_menu_tree(tree, load_permission_map(db, role_id))


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.user_id,
        username=user.username,
        full_name=user.full_name,
        email=user.email,
        phone=user.phone,
        role=RoleRef(role_id=user.role_id, role_name=user.role.role_name if user.role else ""),
        is_active=user.is_active,
    )


def build_session_payload(db: Session, user: User) -> SessionUserPayload:
    """User body of the login and ``/me`` responses.

    ``menus`` are the flat records the role may view; ``permissions`` is the
    permission map built from the role's current grants.
    """
    base = to_user_response(user)
    return SessionUserPayload(
        **base.model_dump(),
        menus=GrantRepository(db).menu_records(user.role_id),
        permissions=load_permission_map(db, user.role_id),
    )
