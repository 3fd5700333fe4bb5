"""Pydantic schemas for the account API.

Learn: Pydantic v2 models validate request/response data. Separate
request schemas (input) from read schemas (output) for clean APIs.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from simplesecurity.auth.identity import Principal
from simplesecurity.auth.password import MAX_PASSWORD_BYTES, password_fits
from simplesecurity.auth.ticket import MAX_TIMEOUT_MINUTES


class LoginRequest(BaseModel):
    name: str
    password: str
    remember_me: bool = False
    timeout_minutes: Optional[int] = Field(None, ge=0, le=MAX_TIMEOUT_MINUTES)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., min_length=1)
    password_repeat: str
    roles: str = ""  # only honoured for administrators

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if not password_fits(v):
            raise ValueError(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes.")
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_repeat:
            raise ValueError("The password and confirmation password do not match.")
        return self


class RegisterResponse(BaseModel):
    name: str


class PrincipalRead(BaseModel):
    name: str
    authenticated: bool
    roles: list[str] = []

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalRead":
        return cls(
            name=principal.name,
            authenticated=principal.is_authenticated,
            roles=sorted(principal.roles),
        )


class UserRead(BaseModel):
    id: int
    name: str
    roles: list[str]

    model_config = {"from_attributes": True}
