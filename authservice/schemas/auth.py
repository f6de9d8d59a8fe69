"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    """User signup request."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)
    password_confirm: str = Field(..., alias="passwordConfirm", max_length=128)
    name: str | None = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """User login request. Presence is checked by the service to report MissingFields."""

    email: str = Field("", max_length=255)
    password: str = Field("", max_length=128)


class VerifyRequest(BaseModel):
    """OTP verification request."""

    email: str = Field(..., max_length=255)
    otp: str = Field(..., max_length=16)


class ChangePasswordRequest(BaseModel):
    """Password change request for the logged-in user."""

    model_config = ConfigDict(populate_by_name=True)

    password_current: str = Field(..., alias="passwordCurrent", max_length=128)
    password: str = Field(..., max_length=128)
    password_confirm: str = Field(..., alias="passwordConfirm", max_length=128)


class UserResponse(BaseModel):
    """Public view of a user. Has no credential fields."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None
    active: bool
    created_at: datetime | None = None


class MessageResponse(BaseModel):
    """Plain status message response."""

    status: str = "success"
    message: str


class SignupResponse(MessageResponse):
    """Signup response: the pending user and a prompt to check email."""

    user: UserResponse


class SessionResponse(BaseModel):
    """Session token response with user info."""

    status: str = "success"
    access_token: str
    token_type: str = "bearer"  # noqa: S105
    user: UserResponse
