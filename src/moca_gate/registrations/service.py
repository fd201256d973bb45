"""Registration persistence and lookups.

Email and wallet uniqueness is owned by the table's unique constraints; the
lookups here are the fast pre-checks the reservation flow runs first.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from moca_gate.db.models import InviteCode, Registration
from moca_gate.validation import normalize_email, normalize_wallet

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def is_email_used(db: AsyncSession, email: str) -> bool:
    """Whether the normalized email already has a registration."""
    result = await db.execute(select(Registration.id).where(Registration.email == normalize_email(email)))
    return result.first() is not None


async def is_wallet_used(db: AsyncSession, wallet: str) -> bool:
    """Whether the lowercased wallet already has a registration."""
    result = await db.execute(
        select(Registration.id).where(Registration.wallet_address == normalize_wallet(wallet))
    )
    return result.first() is not None


async def create_registration(
    db: AsyncSession,
    email: str,
    wallet: str | None,
    invite_code_id: int | None,
    registration_type: str,
) -> Registration:
    """Insert a registration row. Flushes but does not commit.

    Raises:
        sqlalchemy.exc.IntegrityError: If the email or wallet is already registered.
    """
    registration = Registration(
        email=normalize_email(email),
        wallet_address=normalize_wallet(wallet),
        invite_code_id=invite_code_id,
        registration_type=registration_type,
    )
    db.add(registration)
    await db.flush()
    return registration


async def get_registration_by_wallet(db: AsyncSession, wallet: str) -> tuple[Registration, str | None] | None:
    """Latest registration for a wallet, with the invite code string it used (if any)."""
    result = await db.execute(
        select(Registration, InviteCode.code)
        .outerjoin(InviteCode, Registration.invite_code_id == InviteCode.id)
        .where(Registration.wallet_address == normalize_wallet(wallet))
        .order_by(Registration.registered_at.desc())
        .limit(1)
    )
    row = result.first()
    if row is None:
        return None
    return row[0], row[1]


async def registration_stats(db: AsyncSession) -> dict[str, int]:
    """Registration totals, overall and per registration type."""
    result = await db.execute(
        select(Registration.registration_type, func.count()).group_by(Registration.registration_type)
    )
    per_type = {rtype: int(count) for rtype, count in result.all()}
    nft = per_type.get("nft", 0)
    invite = per_type.get("invite", 0)
    return {"total": nft + invite, "nft": nft, "invite": invite}
