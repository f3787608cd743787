"""
app/api/dependencies.py

Shared FastAPI dependencies for request authentication.
"""

from __future__ import annotations

import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from app.config import ApiSettings, get_api_settings

_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def require_api_key(
    api_key: str | None = Depends(_api_key_header),
    settings: ApiSettings = Depends(get_api_settings),
) -> None:
    """
    Reject the request unless it carries the configured API key.

    No check is made when LUNCH_SCRAPER_API_KEY is unset.
    """

    if settings.api_key is None:
        return
    if api_key is None or not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key.",
        )
