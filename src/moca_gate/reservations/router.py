"""Public gating endpoints: verify-code, check-email, check-wallet, reserve, vip-status."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from moca_gate.database import get_session
from moca_gate.errors import ValidationError
from moca_gate.invites.service import verify_invite_code
from moca_gate.nft.chain import StakingContractClient, get_staking_client
from moca_gate.redis_client import get_redis
from moca_gate.registrations.service import get_registration_by_wallet, is_email_used, is_wallet_used
from moca_gate.reservations.rate_limit import get_rate_limit_info
from moca_gate.reservations.schemas import (
    RegistrationSummary,
    ReserveRequest,
    ReserveResponse,
    UsedResponse,
    VipRegistration,
    VipStatusResponse,
)
from moca_gate.reservations.service import reserve
from moca_gate.validation import is_valid_invite_code, is_valid_wallet, normalize_email

router = APIRouter(prefix="/api", tags=["Gating"])

_email_adapter = TypeAdapter(EmailStr)


def _require_param(value: str | None, name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(error=f"Missing {name} parameter")
    return value.strip()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


@router.get("/verify-code")
async def verify_code(
    code: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Check whether an invite code exists and still has uses left."""
    code = _require_param(code, "code")
    if not is_valid_invite_code(code):
        return {"valid": False, "message": "Invalid code format"}
    result = await verify_invite_code(db, code)
    return result.to_response()


@router.get("/check-email", response_model=UsedResponse)
async def check_email(
    email: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> UsedResponse:
    """Whether an email already has a registration."""
    email = normalize_email(_require_param(email, "email"))
    try:
        _email_adapter.validate_python(email)
    except PydanticValidationError as e:
        raise ValidationError(error="Invalid email format") from e
    return UsedResponse(used=await is_email_used(db, email))


@router.get("/check-wallet", response_model=UsedResponse)
async def check_wallet(
    wallet: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> UsedResponse:
    """Whether a wallet already has a registration."""
    wallet = _require_param(wallet, "wallet")
    if not is_valid_wallet(wallet):
        raise ValidationError(error="Invalid wallet address format")
    return UsedResponse(used=await is_wallet_used(db, wallet))


@router.get("/vip-status", response_model=VipStatusResponse, response_model_exclude_none=True)
async def vip_status(
    wallet: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> VipStatusResponse:
    """Whether a wallet is registered, with the registration details."""
    if wallet is None or not wallet.strip():
        raise ValidationError(error="Wallet address is required")
    found = await get_registration_by_wallet(db, wallet)
    if found is None:
        return VipStatusResponse(is_vip=False, message="Wallet not registered")
    registration, invite_code = found
    return VipStatusResponse(
        is_vip=True,
        registration=VipRegistration(
            email=registration.email,
            type=registration.registration_type,
            registered_at=registration.registered_at,
            invite_code=invite_code,
        ),
    )


# ---------------------------------------------------------------------------
# Reserve
# ---------------------------------------------------------------------------


@router.post("/reserve", response_model=ReserveResponse, status_code=201)
async def reserve_spot(
    body: ReserveRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
    staking_client: StakingContractClient = Depends(get_staking_client),
) -> ReserveResponse:
    """Reserve a spot using either a staked NFT or an invite code."""
    registration = await reserve(db, redis, staking_client, body)

    info = await get_rate_limit_info(redis, registration.email)
    response.headers["X-Registration-Limit-Remaining"] = str(info["remaining"])

    return ReserveResponse(
        registration=RegistrationSummary(
            email=registration.email,
            type=registration.registration_type,
            registered_at=registration.registered_at,
        ),
    )
