"""Auth Pydantic schemas for request / response validation."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


# ── Requests ────────────────────────────────────────────────────────

class _Identifier(BaseModel):
    """Either ``email`` or ``mobile`` identifies the account."""

    email: Optional[EmailStr] = None
    mobile: Optional[str] = Field(default=None, min_length=6, max_length=20)

    @model_validator(mode="after")
    def _email_or_mobile(self):
        if not self.email and not self.mobile:
            raise ValueError("Either email or mobile is required.")
        return self


class LoginRequest(_Identifier):
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    email: EmailStr
    full_name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=8, max_length=128)
    mobile: Optional[str] = Field(default=None, min_length=6, max_length=20)
    organisation_name: Optional[str] = Field(default=None, max_length=200)


class VerifyRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=4, max_length=10)


class ForgotPasswordRequest(_Identifier):
    pass


class ResetPasswordRequest(_Identifier):
    otp: str = Field(min_length=4, max_length=10)
    new_password: str = Field(min_length=8, max_length=128)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str


# ── Embedded / Shared ──────────────────────────────────────────────

class OrganisationBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: Optional[str] = None


class AdminInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    mobile: Optional[str] = None
    is_verified: bool
    last_login_at: Optional[datetime] = None


class EmployeeInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organisation_id: uuid.UUID
    name: str
    code: str
    email: str
    mobile: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    designation_id: Optional[uuid.UUID] = None
    image: Optional[str] = None
    last_login_at: Optional[datetime] = None


# ── Responses ───────────────────────────────────────────────────────

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class ProfileResponse(BaseModel):
    id: uuid.UUID
    role: str
    name: str
    email: Optional[str] = None
    organisation_id: Optional[uuid.UUID] = None
    permissions: dict[str, list[str]]
