"""Boundary formats shared by the request schemas and the routers.

Invite codes are ``MOCA-`` plus 8 characters from an alphabet without the
look-alike characters 0, O, I and 1. Wallets are 0x-prefixed 40-hex EVM
addresses. Both formats are part of the public API.
"""

from __future__ import annotations

import re

INVITE_CODE_PATTERN = re.compile(r"^MOCA-[A-Z2-9]{8}$")
WALLET_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_invite_code(code: str) -> bool:
    return bool(INVITE_CODE_PATTERN.match(code))


def is_valid_wallet(address: str) -> bool:
    return bool(WALLET_PATTERN.match(address))


def normalize_email(email: str) -> str:
    """Normalize an email for storage and lookups (trimmed, lowercase)."""
    return email.strip().lower()


def normalize_wallet(address: str | None) -> str | None:
    """Lowercase a wallet address; ``None`` stays ``None``."""
    if address is None:
        return None
    return address.strip().lower()
