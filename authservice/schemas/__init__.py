"""Pydantic schemas for API requests and responses."""

from authservice.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    SessionResponse,
    SignupRequest,
    SignupResponse,
    UserResponse,
    VerifyRequest,
)

__all__ = [
    "SignupRequest",
    "LoginRequest",
    "VerifyRequest",
    "ChangePasswordRequest",
    "UserResponse",
    "MessageResponse",
    "SignupResponse",
    "SessionResponse",
]
