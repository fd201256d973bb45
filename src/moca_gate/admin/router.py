"""Admin endpoints, all guarded by the X-API-Key header at router level."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from moca_gate.admin.schemas import (
    CacheInvalidateResponse,
    DeactivateResponse,
    GenerateCodeRequest,
    GenerateCodeResponse,
    InviteCodeCounts,
    InviteCodeItem,
    InviteCodeListResponse,
    Pagination,
    RegistrationCounts,
    StatsResponse,
)
from moca_gate.database import get_session
from moca_gate.dependencies import require_admin_key
from moca_gate.errors import ValidationError
from moca_gate.invites.service import (
    deactivate_invite_code,
    invite_code_stats,
    issue_invite_code,
    list_invite_codes,
)
from moca_gate.nft.eligibility import invalidate_nft_cache
from moca_gate.redis_client import get_redis
from moca_gate.registrations.service import registration_stats
from moca_gate.validation import is_valid_wallet

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin_key)],
)


# ---------------------------------------------------------------------------
# Invite codes
# ---------------------------------------------------------------------------


@router.post("/generate-code", response_model=GenerateCodeResponse, status_code=201)
async def generate_code(
    body: GenerateCodeRequest | None = None,
    db: AsyncSession = Depends(get_session),
) -> GenerateCodeResponse:
    """Issue a new invite code."""
    body = body or GenerateCodeRequest()
    invite = await issue_invite_code(db, referrer_email=body.referrer_email, max_uses=body.max_uses)
    await db.commit()
    return GenerateCodeResponse(
        code=invite.code,
        max_uses=invite.max_uses,
        referrer_email=invite.referrer_email,
    )


@router.get("/invite-codes", response_model=InviteCodeListResponse)
async def get_invite_codes(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    status: Literal["active", "inactive", "all"] = Query("all"),
    db: AsyncSession = Depends(get_session),
) -> InviteCodeListResponse:
    """Paginated invite code listing with derived status."""
    codes, total = await list_invite_codes(db, status=status, limit=limit, offset=offset)
    return InviteCodeListResponse(
        data=[
            InviteCodeItem(
                code=c.code,
                referrer_email=c.referrer_email,
                max_uses=c.max_uses,
                current_uses=c.current_uses,
                is_active=c.is_active,
                created_at=c.created_at,
                status=c.status,
            )
            for c in codes
        ],
        pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + limit < total),
    )


@router.post("/invite-codes/{code}/deactivate", response_model=DeactivateResponse)
async def deactivate_code(
    code: str,
    db: AsyncSession = Depends(get_session),
) -> DeactivateResponse:
    """Soft-deactivate an invite code."""
    invite = await deactivate_invite_code(db, code)
    if invite is None:
        raise HTTPException(status_code=404, detail="Invite code not found")
    await db.commit()
    return DeactivateResponse(code=invite.code, is_active=invite.is_active)


# ---------------------------------------------------------------------------
# Stats / cache
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    db: AsyncSession = Depends(get_session),
) -> StatsResponse:
    """Invite code and registration counters."""
    codes = await invite_code_stats(db)
    registrations = await registration_stats(db)
    return StatsResponse(
        invite_codes=InviteCodeCounts(**codes),
        registrations=RegistrationCounts(**registrations),
    )


@router.delete("/nft-cache/{wallet}", response_model=CacheInvalidateResponse)
async def invalidate_cache(
    wallet: str,
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
) -> CacheInvalidateResponse:
    """Forget the cached NFT eligibility of a wallet."""
    if not is_valid_wallet(wallet):
        raise ValidationError(error="Invalid wallet address format")
    ok = await invalidate_nft_cache(redis, wallet)
    return CacheInvalidateResponse(success=ok, wallet=wallet.lower())
