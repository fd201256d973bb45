"""Invite code generation.

Codes are ``MOCA-`` followed by 8 characters from an alphabet of uppercase
letters and digits without the look-alikes 0, O, I and 1, generated
server-side with a cryptographic random source.
"""

from __future__ import annotations

import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from moca_gate.config import get_settings
from moca_gate.db.models import InviteCode
from moca_gate.errors import CodeGenerationError

INVITE_CHARSET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_LENGTH = 8


def generate_invite_code(prefix: str | None = None) -> str:
    """Generate a cryptographically random invite code."""
    if prefix is None:
        prefix = get_settings().invite_code_prefix
    suffix = "".join(secrets.choice(INVITE_CHARSET) for _ in range(INVITE_LENGTH))
    return f"{prefix}{suffix}"


async def generate_unique_invite_code(db: AsyncSession, max_attempts: int | None = None) -> str:
    """Generate an invite code that doesn't already exist in the database.

    Raises:
        CodeGenerationError: If every attempt collided with an existing code.
    """
    if max_attempts is None:
        max_attempts = get_settings().invite_code_max_attempts
    for _ in range(max_attempts):
        code = generate_invite_code()
        existing = await db.execute(select(InviteCode.id).where(InviteCode.code == code))
        if existing.scalar_one_or_none() is None:
            return code
    msg = f"Failed to generate unique invite code after {max_attempts} attempts"
    raise CodeGenerationError(msg)
