"""FastAPI dependencies for authentication and the policy core."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..models import Actor
from ..services.container import PolicyCore
from .security import decode_token

logger = logging.getLogger(__name__)

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


def get_core(request: Request) -> PolicyCore:
    """The policy core built at application startup."""
    return request.app.state.core


async def get_current_actor(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    core: Annotated[PolicyCore, Depends(get_core)],
) -> Actor:
    """Dependency to get the authenticated actor from the bearer token."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials, secret_key=core.settings.secret_key)
    if not payload:
        logger.warning("Bearer token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    return Actor(user_id=payload.sub, role=payload.role)


# Type aliases for cleaner route signatures
CoreDep = Annotated[PolicyCore, Depends(get_core)]
ActorDep = Annotated[Actor, Depends(get_current_actor)]
