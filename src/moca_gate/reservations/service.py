"""
Reservation coordinator.

Turns a verified credential into a Registration:

    rate limit -> email/wallet uniqueness -> credential (NFT or invite code)
    -> insert registration + consume invite use (one transaction) -> count reservation

Business-rule failures raise the matching :mod:`moca_gate.errors` exception
before anything is written. The registration insert and the invite-use
increment commit together, and the increment is conditional, so a code can
never be consumed past ``max_uses`` and a registration never exists without
its consumed use.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError

from moca_gate.errors import (
    ConflictError,
    InvalidCredentialError,
    NotEligibleError,
    RateLimitError,
    ValidationError,
)
from moca_gate.invites.service import MSG_NO_USES_LEFT, MSG_NOT_FOUND, increment_code_usage, verify_invite_code
from moca_gate.nft.eligibility import check_nft_eligibility
from moca_gate.nft.signature import registration_message, verify_wallet_signature
from moca_gate.registrations.service import create_registration, is_email_used, is_wallet_used
from moca_gate.reservations.rate_limit import check_rate_limit, increment_rate_limit
from moca_gate.validation import normalize_email, normalize_wallet

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

    from moca_gate.db.models import Registration
    from moca_gate.nft.chain import StakingContractClient
    from moca_gate.reservations.schemas import ReserveRequest

logger = structlog.get_logger()


def _email_taken() -> ConflictError:
    return ConflictError("This email has already been used", error="Email already registered")


def _wallet_taken() -> ConflictError:
    return ConflictError("This wallet has already been used", error="Wallet already registered")


async def _check_nft_credential(
    redis: Redis,
    staking_client: StakingContractClient,
    email: str,
    wallet: str | None,
    signature: str | None,
) -> None:
    """Wallet present, signed by its owner, and holding an eligible staked NFT."""
    if not wallet:
        raise ValidationError(
            "Wallet address is required for NFT registration",
            error="Missing required fields",
        )
    if not signature:
        raise ValidationError(
            "A wallet signature is required for NFT registration",
            error="Missing required fields",
        )
    if not verify_wallet_signature(registration_message(email), signature, wallet):
        logger.warning("wallet_signature_invalid", email=email, wallet=wallet)
        raise ValidationError("Signature does not match the wallet address", error="Invalid wallet signature")

    if not await check_nft_eligibility(redis, staking_client, wallet):
        raise NotEligibleError("No eligible NFT found. NFT must be staked for at least 7 days.")


async def _check_invite_credential(db: AsyncSession, invite_code: str | None) -> int:
    """Verify the invite code and return its row id."""
    if not invite_code:
        raise ValidationError(
            "Invite code is required for invite registration",
            error="Missing invite code",
        )
    verification = await verify_invite_code(db, invite_code)
    if not verification.valid or verification.code_id is None:
        raise InvalidCredentialError(verification.message or MSG_NOT_FOUND)
    return verification.code_id


async def reserve(
    db: AsyncSession,
    redis: Redis,
    staking_client: StakingContractClient,
    request: ReserveRequest,
) -> Registration:
    """
    Reserve a registration slot.

    Returns:
        The committed Registration.

    Raises:
        RateLimitError: Too many reservations for this email in the window.
        ConflictError: Email or wallet already registered.
        ValidationError: Missing wallet/signature/code, or bad signature.
        NotEligibleError: Wallet has no eligible staked NFT.
        InvalidCredentialError: Invite code not found, inactive or used up.
        DependencyError: The on-chain eligibility check failed.
    """
    email = normalize_email(request.email)
    wallet = normalize_wallet(request.wallet)

    status = await check_rate_limit(redis, email)
    if status.limited:
        logger.info("registration_rate_limited", email=email)
        raise RateLimitError("Too many requests. Please try again later.")

    if await is_email_used(db, email):
        raise _email_taken()
    if wallet and await is_wallet_used(db, wallet):
        raise _wallet_taken()

    invite_code_id: int | None = None
    if request.registration_type == "nft":
        await _check_nft_credential(redis, staking_client, email, wallet, request.signature)
    else:
        invite_code_id = await _check_invite_credential(db, request.invite_code)

    try:
        registration = await create_registration(
            db,
            email=email,
            wallet=wallet,
            invite_code_id=invite_code_id,
            registration_type=request.registration_type,
        )
    except IntegrityError as e:
        # Lost a concurrent race on the unique email/wallet constraint.
        await db.rollback()
        if await is_email_used(db, email):
            raise _email_taken() from e
        raise _wallet_taken() from e

    if invite_code_id is not None and not await increment_code_usage(db, invite_code_id):
        await db.rollback()
        logger.warning("invite_code_consumption_lost", email=email, invite_code_id=invite_code_id)
        raise InvalidCredentialError(MSG_NO_USES_LEFT)

    await db.commit()
    logger.info(
        "registration_created",
        registration_id=registration.id,
        email=email,
        registration_type=registration.registration_type,
        invite_code_id=invite_code_id,
    )

    await increment_rate_limit(redis, email)
    return registration
