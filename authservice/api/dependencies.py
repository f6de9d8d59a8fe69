"""FastAPI dependencies for authentication and database."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from authservice.config import Settings, get_settings
from authservice.database import get_db
from authservice.models.user import User
from authservice.services.auth import AuthService
from authservice.services.email import EmailSender, build_email_sender
from authservice.services.users import UserRepository

# Missing headers fall through to the session cookie instead of failing here
security = HTTPBearer(auto_error=False)


def get_email_sender(
    settings: Annotated[Settings, Depends(get_settings)],
) -> EmailSender:
    """Get the configured email sender."""
    return build_email_sender(settings)


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    email_sender: Annotated[EmailSender, Depends(get_email_sender)],
) -> AuthService:
    """Get auth service with dependencies."""
    return AuthService(UserRepository(db), settings, email_sender)


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """Get the current authenticated user from the bearer token or session cookie.

    The resolved user is also attached to ``request.state.user``.
    """
    if credentials is not None:
        token = credentials.credentials
    else:
        token = request.cookies.get(auth_service.settings.session_cookie_name)

    user = auth_service.protect(token)
    request.state.user = user
    return user
