"""Menu-action map and role grant schemas."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MenuActionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    menu_id: int = Field(alias="MenuID", gt=0)
    action_id: int = Field(alias="ActionID", gt=0)


class MenuActionUpdate(MenuActionCreate):
    pass


class MenuActionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    menu_action_id: int = Field(alias="MenuActionID")
    menu_id: int = Field(alias="MenuID")
    menu_name: str = Field(alias="MenuName")
    parent_menu_id: int = Field(alias="ParentMenuID")
    action_id: int = Field(alias="ActionID")
    action_name: str = Field(alias="ActionName")


class RoleMenuActionIn(BaseModel):
    """One cell of the role-permission grid as posted by the admin screen."""

    model_config = ConfigDict(populate_by_name=True)

    role_id: int = Field(alias="RoleID", gt=0)
    menu_id: int = Field(alias="MenuID", gt=0)
    action_id: int = Field(alias="ActionID", gt=0)
    is_allowed: bool = Field(default=True, alias="IsAllowed")


class BulkGrantRequest(BaseModel):
    """Bulk replace: the grant set of every role named here is replaced."""

    model_config = ConfigDict(populate_by_name=True)

    role_menu_actions: List[RoleMenuActionIn] = Field(alias="RoleMenuActions")


class BulkGrantResponse(BaseModel):
    message: str
    roles: List[int]
    granted: int


class RoleMenuActionRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role_menu_action_id: Optional[int] = Field(default=None, alias="RoleMenuActionID")
    role_id: int = Field(alias="RoleID")
    menu_id: int = Field(alias="MenuID")
    parent_menu_id: int = Field(alias="ParentMenuID")
    action_id: int = Field(alias="ActionID")
    menu_name: str = Field(alias="MenuName")
    action_name: str = Field(alias="ActionName")
    is_allowed: bool = Field(alias="IsAllowed")


class RolePermissionGrid(BaseModel):
    data: List[RoleMenuActionRow]
