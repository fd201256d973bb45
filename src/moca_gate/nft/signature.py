"""
Wallet ownership proof for NFT registrations.

The registrant signs ``Register VIP access for <email>`` with the wallet they
claim (EIP-191 personal_sign). The recovered signer must match the claimed
wallet.
"""

from __future__ import annotations

import structlog
from eth_account import Account
from eth_account.messages import encode_defunct

from moca_gate.validation import normalize_email

logger = structlog.get_logger()

REGISTRATION_MESSAGE = "Register VIP access for {email}"


def registration_message(email: str) -> str:
    """The exact text the wallet must sign for ``email`` (normalized)."""
    return REGISTRATION_MESSAGE.format(email=normalize_email(email))


def recover_signer(message: str, signature: str | bytes) -> str:
    """Recover the checksummed address that produced ``signature`` over ``message``."""
    return Account.recover_message(encode_defunct(text=message), signature=signature)


def verify_wallet_signature(message: str, signature: str | bytes, expected_address: str) -> bool:
    """
    Check that ``signature`` over ``message`` was made by ``expected_address``.

    Addresses are compared case-insensitively. A malformed signature is
    reported as a mismatch rather than an error.
    """
    try:
        recovered = recover_signer(message, signature)
    except Exception as e:
        logger.info("wallet_signature_unrecoverable", expected=expected_address, error=str(e))
        return False
    return recovered.lower() == expected_address.lower()
