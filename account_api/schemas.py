from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional

from .core.security import MAX_PASSWORD_BYTES


def check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserCreate(CamelModel):
    username: str = Field(min_length=2, max_length=50)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lower_email(cls, value):
        if len(value) > 50:
            raise ValueError("Email must not exceed 50 characters")
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return check_password_bytes(value)


class UserLogin(CamelModel):
    email: str
    password: str


class UpdatePassword(CamelModel):
    old_password: str
    new_password: str = Field(min_length=8)
    confirm_new_password: str

    @field_validator("new_password")
    @classmethod
    def new_password_fits_bcrypt(cls, value):
        return check_password_bytes(value)


class DeleteAccount(CamelModel):
    email: str
    otp: Optional[str] = None


class VerifyOTP(CamelModel):
    email: str
    otp: str


class ResendOTP(CamelModel):
    email: EmailStr


class Token(CamelModel):
    access_token: str
    refresh_token: str
    user_id: str
    email: str


class RefreshedToken(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="AccessToken")
    refresh_token: str = Field(alias="refreshToken")


class Message(BaseModel):
    message: str


class User(CamelModel):
    id: str
    username: str
    first_name: str
    last_name: str
    phone_number: str
    email: str
    image: Optional[str] = None
    is_verified: bool
    marked_for_deletion: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserInfo(BaseModel):
    data: User
