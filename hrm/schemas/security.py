from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str
    description: str | None = None


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=10)
    description: str | None = None


class RoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    level: int


class ScopedPermissionOut(BaseModel):
    action: str
    resource: str
    scope: str | None


class RoleDetailOut(RoleOut):
    description: str | None = None
    permissions: list[ScopedPermissionOut]


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    is_active: bool
    department: DepartmentOut | None
    role: RoleOut | None


class MeOut(BaseModel):
    user: UserOut
    level: int
    permissions: list[ScopedPermissionOut]


class OtpSendIn(BaseModel):
    phone: str = Field(min_length=3, max_length=32)


class OtpVerifyIn(BaseModel):
    phone: str = Field(min_length=3, max_length=32)
    code: str = Field(min_length=4, max_length=10)


class LoginIn(BaseModel):
    # Username or email.
    login: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=128)


class RegisterIn(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=8, max_length=72)
    phone: str | None = Field(default=None, min_length=3, max_length=32)


class RefreshIn(BaseModel):
    refresh_token: str


class TokenPairOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int


class MessageOut(BaseModel):
    message: str
