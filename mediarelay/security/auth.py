"""Opaque authentication gate for the media routes."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from mediarelay.config import AppSettings, get_settings


def require_user(
    authorization: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
    settings: AppSettings = Depends(get_settings),
) -> Optional[str]:
    """Return the caller identity, or raise 401/403.

    With no tokens configured the gate is open and the optional ``x-user-id``
    header is passed through for logging.
    """
    allowed = settings.auth.token_set()
    if not allowed:
        return x_user_id
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
    token = authorization[len("bearer "):].strip()
    if token not in allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid credentials")
    return x_user_id or f"token:{token[:4]}"
