from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel

from wireline.core.config import settings


class SessionPayload(BaseModel):
    sub: str
    exp: datetime
    iat: datetime
    role: str | None = None


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_session_token(
    user_id: str, role: str | None = None, expires_delta: timedelta | None = None
) -> str:
    """Create a signed session token for the cookie."""
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(hours=settings.SESSION_EXPIRE_HOURS))
    to_encode: dict[str, Any] = {"sub": user_id, "exp": expire, "iat": now}
    if role:
        to_encode["role"] = role
    encoded: str = jwt.encode(
        to_encode, settings.SESSION_SECRET_KEY, algorithm=settings.SESSION_ALGORITHM
    )
    return encoded


def verify_session_token(token: str) -> SessionPayload:
    """Verify and decode a session token.

    Raises:
        ValueError: If the token is malformed, has a bad signature or is expired.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET_KEY,
            algorithms=[settings.SESSION_ALGORITHM],
        )
    except JWTError as e:
        raise ValueError(f"Invalid session token: {e}") from e

    if "sub" not in payload:
        raise ValueError("Invalid session token: missing subject")

    return SessionPayload(
        sub=payload["sub"],
        exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
        iat=datetime.fromtimestamp(payload["iat"], tz=UTC),
        role=payload.get("role"),
    )
