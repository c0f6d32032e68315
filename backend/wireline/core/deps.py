import logging
from collections.abc import Generator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from wireline.core.config import settings
from wireline.core.database import SessionLocal
from wireline.core.security import verify_session_token
from wireline.models import User, UserRole
from wireline.services.cleanup import CleanupScheduler
from wireline.services.email import EmailService

logger = logging.getLogger(__name__)

# auto_error=False so the session cookie can be used instead of the header
security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_email_service() -> EmailService:
    return EmailService()


def parse_id(value: str) -> UUID:
    """Parse a path id, rejecting malformed values with 400."""
    try:
        return UUID(value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid ID format",
        ) from e


def _session_token(
    request: Request, credentials: HTTPAuthorizationCredentials | None
) -> str | None:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def get_current_user(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> User:
    """Get the user behind the session cookie (or Bearer token)."""
    token = _session_token(request, credentials)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        payload = verify_session_token(token)
        user_id = UUID(payload.sub)
    except ValueError as e:
        logger.warning(f"Session verification failed: {e}")
        detail = str(e) if settings.DEBUG else "Invalid or expired session"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = db.get(User, user_id)
    if user is None:
        # Account was permanently deleted after the session was issued
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive",
        )
    return user


class RoleChecker:
    """Dependency for checking user roles."""

    def __init__(self, allowed_roles: list[UserRole]):
        self.allowed_roles = allowed_roles

    def __call__(self, user: Annotated[User, Depends(get_current_user)]) -> User:
        if user.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin access required",
            )
        return user


# Role-based dependencies
require_admin = RoleChecker([UserRole.ADMIN])


def get_cleanup_scheduler(request: Request) -> CleanupScheduler:
    """Return the scheduler created by the application lifespan."""
    scheduler: CleanupScheduler | None = getattr(request.app.state, "cleanup_scheduler", None)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cleanup service is not available",
        )
    return scheduler
