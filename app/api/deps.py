from typing import Optional
from fastapi import Header, HTTPException, status
from app.config import settings

async def get_admin_user(
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
) -> str:
    """
    Validate the Admin Key from the X-Admin-Key header.
    Returns the key if valid, raises 401 otherwise.
    """
    valid_key = getattr(settings, "admin_api_key", None)

    if not x_admin_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Admin Key",
        )

    if not valid_key or x_admin_key != valid_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Admin Key",
        )

    return x_admin_key
