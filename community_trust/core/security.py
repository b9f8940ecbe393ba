"""Security utilities: bearer token issue and verification."""

from datetime import datetime, timedelta, timezone
import logging

import jwt
from pydantic import BaseModel, ValidationError

from ..models import Role
from .config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # User ID
    role: Role
    exp: datetime
    iat: datetime
    type: str = "access"


def create_access_token(
    user_id: str,
    role: Role,
    expires_delta: timedelta | None = None,
    secret_key: str | None = None,
) -> str:
    """Create a JWT access token carrying the account role."""
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    payload = {
        "sub": str(user_id),
        "role": Role(role).value,
        "exp": expire,
        "iat": now,
        "type": "access",
    }

    return jwt.encode(payload, secret_key or settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str, secret_key: str | None = None) -> TokenPayload | None:
    """Decode and validate a JWT token; None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, secret_key or settings.secret_key, algorithms=[ALGORITHM])
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
    except ValidationError as e:
        logger.warning(f"Token claims rejected: {e.error_count()} errors")
        return None
