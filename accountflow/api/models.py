"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.

Emails are accepted as plain strings: rejecting malformed addresses is a
domain decision with its own reason code, not a 422.
"""

from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    """Request model for account creation."""

    email: str
    password: str
    password_confirm: str


class LoginRequest(BaseModel):
    """Request model for login."""

    email: str
    password: str


class ForgottenPasswordRequest(BaseModel):
    """Request model for a password reset link."""

    email: str


class ResetPasswordRequest(BaseModel):
    """Request model for choosing a new password with a reset token."""

    token: str
    password: str
    password_confirm: str


class ChangeRequest(BaseModel):
    """Request model for changing email and/or password."""

    email: str | None = Field(None, description="New email address; omit to keep the current one")
    current_password: str = ""
    password: str = Field("", description="New password; empty to keep the current one")
    password_confirm: str = ""


class PageResponse(BaseModel):
    """Response model for every successful workflow step."""

    page: str
    message: str
    email: str | None = None


class AccountResponse(BaseModel):
    """Response model describing the logged-in account."""

    id: str
    email: str
    state: str
    restricted: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    reason: str | None = None
