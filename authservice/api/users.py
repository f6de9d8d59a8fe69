"""User authentication API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool

from authservice.api.dependencies import get_auth_service, get_current_user
from authservice.models.user import User
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
from authservice.services.auth import AuthService, VerifiedSession

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def send_session(
    response: Response, auth_service: AuthService, session: VerifiedSession
) -> SessionResponse:
    """Set the session cookie and build the token response."""
    settings = auth_service.settings
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.token,
        max_age=settings.jwt_expiration_minutes * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return SessionResponse(
        access_token=session.token,
        user=UserResponse.model_validate(session.user),
    )


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Register a new user and email them a verification code."""
    user = await run_in_threadpool(
        auth_service.signup,
        payload.email,
        payload.password,
        payload.password_confirm,
        payload.name,
    )
    return SignupResponse(
        message="Account created. A verification code was sent to your email",
        user=UserResponse.model_validate(user),
    )


@router.post("/verify", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def verify(
    payload: VerifyRequest,
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Exchange a verification code for a session token."""
    session = await run_in_threadpool(auth_service.verify, payload.email, payload.otp)
    return send_session(response, auth_service, session)


@router.post("/login", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def login(
    credentials: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Check email and password, then email a verification code."""
    await run_in_threadpool(auth_service.login, credentials.email, credentials.password)
    return MessageResponse(message="A verification code was sent to your email")


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user


@router.patch("/updateMyPassword", response_model=SessionResponse)
async def update_my_password(
    payload: ChangePasswordRequest,
    response: Response,
    current_user: Annotated[User, Depends(get_current_user)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Change the password of the logged-in user. Other sessions are invalidated."""
    session = await run_in_threadpool(
        auth_service.change_password,
        current_user,
        payload.password_current,
        payload.password,
        payload.password_confirm,
    )
    return send_session(response, auth_service, session)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Clear the session cookie (bearer clients should discard their token)."""
    response.delete_cookie(auth_service.settings.session_cookie_name)
    return MessageResponse(message="Logged out successfully")
