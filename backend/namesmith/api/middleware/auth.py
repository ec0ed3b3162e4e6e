"""
Caller Identity Middleware
Identity is asserted by the fronting application through request headers.
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from namesmith.config import Settings, get_settings


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Dependency returning the calling user's id.

    Raises:
        HTTPException: If the header is missing or malformed
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    user_id = x_user_id.strip()
    if len(user_id) > 64:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must be at most 64 characters",
        )
    return user_id


async def require_admin(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard for model registry administration"""
    expected = settings.ADMIN_API_TOKEN
    if expected is None:
        if settings.is_development:
            return
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administration is disabled",
        )

    if x_admin_token is None or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token",
        )
