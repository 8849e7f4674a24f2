"""Service-key authentication and current-user resolution."""

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException


@dataclass(frozen=True)
class CurrentUser:
    """The signed-in end user on whose behalf the front-end is calling."""
    id: str


async def require_api_key(
    x_creatorgate_api_key: str = Header(..., alias="X-Creatorgate-Api-Key"),
) -> str:
    """FastAPI dependency that validates the service API key from header."""
    from creatorgate.common.config import get_settings

    settings = get_settings()
    if not hmac.compare_digest(x_creatorgate_api_key, settings.api_key):
        raise HTTPException(status_code=403, detail="Invalid API key")
    return x_creatorgate_api_key


async def require_super_admin(
    x_creatorgate_api_key: str = Header(..., alias="X-Creatorgate-Api-Key"),
) -> str:
    """FastAPI dependency that validates super-admin API key from header."""
    from creatorgate.common.config import get_settings

    settings = get_settings()
    if not hmac.compare_digest(x_creatorgate_api_key, settings.super_admin_key):
        raise HTTPException(status_code=403, detail="Invalid super-admin key")
    return x_creatorgate_api_key


async def resolve_current_user(
    x_creatorgate_user: Optional[str] = Header(None, alias="X-Creatorgate-User"),
) -> Optional[CurrentUser]:
    """FastAPI dependency returning the current user, or None when signed out.

    The front-end authenticates the user and forwards the id; the service key
    checked by ``require_api_key`` is what makes the header trustworthy.
    """
    if not x_creatorgate_user or not x_creatorgate_user.strip():
        return None
    return CurrentUser(id=x_creatorgate_user.strip())
