"""Auth request and response schemas.

The login and ``/me`` bodies follow the frontend contract: camelCase user
fields, ``role`` as ``{roleID, roleName}``, ``menus`` as flat menu records and
``permissions`` as the prebuilt ``{menuUrl: {permission: bool}}`` map.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .menu import MenuItem, MenuRecord


class RegisterRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [{"username": "alice", "password": "securepass", "fullName": "Alice Smith"}]
        },
    )

    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    full_name: Optional[str] = Field(default=None, alias="fullName", max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    role_id: Optional[int] = Field(default=None, alias="roleID", description="Ignored for the first account")


class LoginRequest(BaseModel):
    username: str
    password: str


class RoleRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role_id: int = Field(alias="roleID")
    role_name: str = Field(alias="roleName")


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    username: str
    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    phone: Optional[str] = None
    role: RoleRef
    is_active: bool = Field(default=True, alias="isActive")


class SessionUserPayload(UserResponse):
    menus: List[MenuRecord] = Field(default_factory=list)
    permissions: Dict[str, Dict[str, bool]] = Field(default_factory=dict)


class LoginResponse(BaseModel):
    token: str
    user: SessionUserPayload


class MeResponse(BaseModel):
    user: SessionUserPayload


class AssignRoleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role_id: int = Field(alias="roleID", gt=0)


class PermissionCheckResponse(BaseModel):
    path: str
    action: str
    allowed: bool


class MenuTreeResponse(BaseModel):
    menus: List[MenuItem]
