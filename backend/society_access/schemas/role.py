"""Role and action schemas for the system-management screens."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Action names become permission columns ("Can" + name), so keep them identifiers.
_ACTION_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")


class RoleCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role_name: str = Field(alias="RoleName", min_length=1, max_length=100)

    @field_validator("role_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("RoleName cannot be blank")
        return v


class RoleUpdate(RoleCreate):
    pass


class RoleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    role_id: int = Field(alias="RoleID")
    role_name: str = Field(alias="RoleName")


class ActionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action_name: str = Field(alias="ActionName", min_length=1, max_length=100)

    @field_validator("action_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not _ACTION_NAME_RE.match(v):
            raise ValueError("ActionName must start with a letter and contain only letters and digits")
        return v


class ActionUpdate(ActionCreate):
    pass


class ActionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    action_id: int = Field(alias="ActionID")
    action_name: str = Field(alias="ActionName")
