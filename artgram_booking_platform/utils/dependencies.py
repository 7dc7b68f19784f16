"""
FastAPI dependencies for authentication and authorization.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..schemas.common import Actor
from ..utils.auth import verify_token
from ..utils.logging_config import log_security_event


# HTTP Bearer token scheme
security = HTTPBearer()


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Actor:
    """
    Get the current actor from the bearer token.

    Args:
        credentials: HTTP Bearer credentials

    Returns:
        The authenticated actor

    Raises:
        HTTPException: If the token is invalid
    """
    actor = verify_token(credentials.credentials)
    if actor is None:
        log_security_event("invalid_token", {"scheme": credentials.scheme})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


async def get_current_staff(
    actor: Actor = Depends(get_current_actor)
) -> Actor:
    """
    Get the current actor, requiring a branch manager or admin.

    Raises:
        HTTPException: If the actor is a customer
    """
    if not actor.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required"
        )
    return actor


async def get_current_admin(
    actor: Actor = Depends(get_current_actor)
) -> Actor:
    """
    Get the current actor, requiring an admin.

    Raises:
        HTTPException: If the actor is not an admin
    """
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return actor
