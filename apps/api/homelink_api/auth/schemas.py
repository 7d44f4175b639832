"""Pydantic schemas for auth endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=8, max_length=512)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone_number: str | None = Field(default=None, max_length=32)


class LoginRequest(BaseModel):
    """`login` accepts either the username or the email address."""

    login: str = Field(min_length=1, max_length=320)
    password: str = Field(default="", max_length=512)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=16)


class LogoutRequest(BaseModel):
    refresh_token: str = Field(min_length=16)


class AuthTokenPairResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthUserResponse(BaseModel):
    id: str
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    role: str
    status: str
    last_login_at: datetime | None


class LogoutResponse(BaseModel):
    success: bool
