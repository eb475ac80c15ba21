"""Menu schemas: flat menu records in, two-level menu tree out.

Wire names follow the frontend contract (``MenuID``, ``MenuURL``, ``SubItems``);
Python code uses the snake_case attribute names.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MenuRecord(BaseModel):
    """One row of the flat menu list sent to the client at login."""

    model_config = ConfigDict(populate_by_name=True)

    menu_id: int = Field(alias="MenuID")
    menu_name: str = Field(alias="MenuName")
    menu_url: Optional[str] = Field(default=None, alias="MenuURL")
    parent_menu_id: int = Field(default=0, alias="ParentMenuID")
    role_id: Optional[int] = Field(default=None, alias="RoleID")
    icon: Optional[str] = Field(default=None, alias="Icon")
    position: Optional[int] = Field(default=None, alias="Position")

    @field_validator("parent_menu_id", mode="before")
    @classmethod
    def null_parent_is_top_level(cls, v):
        return 0 if v is None else v


class SubMenuItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: Optional[str] = Field(default=None, alias="Path")
    title: str = Field(alias="Title")
    icon: Optional[str] = Field(default=None, alias="Icon")
    permission: str = Field(alias="Permission")
    role_id: Optional[int] = Field(default=None, alias="RoleID")


class MenuItem(SubMenuItem):
    sub_items: List[SubMenuItem] = Field(default_factory=list, alias="SubItems")


class MenuCreate(BaseModel):
    """Payload for creating a menu from the system-management screen."""

    model_config = ConfigDict(populate_by_name=True)

    menu_name: str = Field(alias="MenuName", min_length=1, max_length=150)
    menu_url: Optional[str] = Field(default=None, alias="MenuURL", max_length=500)
    parent_menu_id: int = Field(default=0, alias="ParentMenuID", ge=0)
    position: int = Field(default=0, alias="Position", ge=0)
    icon: Optional[str] = Field(default=None, alias="Icon", max_length=100)

    @field_validator("parent_menu_id", mode="before")
    @classmethod
    def null_parent_is_top_level(cls, v):
        return 0 if v is None else v

    @field_validator("menu_url")
    @classmethod
    def normalize_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if not v.startswith("/"):
            raise ValueError("MenuURL must start with '/'")
        return v

    @field_validator("menu_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("MenuName cannot be blank")
        return v


class MenuUpdate(MenuCreate):
    pass


class MenuResponse(BaseModel):
    """Row of the flat menu hierarchy view (menu plus its parent's name)."""

    model_config = ConfigDict(populate_by_name=True)

    menu_id: int = Field(alias="MenuID")
    menu_name: str = Field(alias="MenuName")
    menu_url: Optional[str] = Field(default=None, alias="MenuURL")
    parent_menu_id: int = Field(default=0, alias="ParentMenuID")
    parent_menu_name: Optional[str] = Field(default=None, alias="ParentMenuName")
    position: int = Field(default=0, alias="Position")
    icon: Optional[str] = Field(default=None, alias="Icon")
