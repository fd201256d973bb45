"""Shared FastAPI dependencies."""

from __future__ import annotations

import secrets

from fastapi import Header

from moca_gate.config import get_settings
from moca_gate.errors import UnauthorizedError


async def require_admin_key(x_api_key: str | None = Header(None, alias="X-API-Key")) -> None:
    """
    Guard for the admin router.

    Rejects a missing key, a wrong key, and every request while no admin key
    is configured.
    """
    expected = get_settings().admin_api_key
    if not x_api_key or not expected or not secrets.compare_digest(x_api_key.encode(), expected.encode()):
        raise UnauthorizedError()
