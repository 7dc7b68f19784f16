"""
JWT handling for actor tokens issued by the identity service.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from ..config import get_settings
from ..schemas.common import Actor


def create_access_token(
    actor: Actor,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed actor token.

    Tokens are minted by the identity service in production; this is used
    by local tooling and tests.

    Args:
        actor: The actor to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        The encoded JWT token
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))

    to_encode = {
        "sub": actor.id,
        "role": actor.role.value,
        "branch_id": str(actor.branch_id) if actor.branch_id else None,
        "name": actor.name,
        "email": actor.email,
        "phone": actor.phone,
        "exp": expire,
    }

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[Actor]:
    """
    Verify and decode an actor token.

    Args:
        token: The JWT token to verify

    Returns:
        Actor if token is valid, None otherwise
    """
    settings = get_settings()

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    try:
        return Actor(
            id=user_id,
            role=payload.get("role", "customer"),
            branch_id=payload.get("branch_id"),
            name=payload.get("name"),
            email=payload.get("email"),
            phone=payload.get("phone"),
        )
    except PydanticValidationError:
        return None
