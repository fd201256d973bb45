"""
Invite-code lifecycle.

Issue, verify and consume bounded-use invite codes, plus the admin listing and
counters. Consumption is a single conditional UPDATE so ``current_uses`` can
never exceed ``max_uses``, even when two reservations race on the last slot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import and_, func, not_, or_, select, update

from moca_gate.db.models import InviteCode
from moca_gate.invites.codes import generate_unique_invite_code
from moca_gate.validation import normalize_email

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

MSG_NOT_FOUND = "Invite code not found"
MSG_INACTIVE = "Invite code is no longer active"
MSG_NO_USES_LEFT = "Invite code has no uses left"

STATUS_FILTERS = ("active", "inactive", "all")


@dataclass(frozen=True)
class CodeVerification:
    """Outcome of :func:`verify_invite_code`."""

    valid: bool
    uses_left: int | None = None
    code_id: int | None = None
    message: str | None = None

    def to_response(self) -> dict[str, object]:
        if self.valid:
            return {"valid": True, "usesLeft": self.uses_left, "codeId": self.code_id}
        return {"valid": False, "message": self.message}


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------


async def issue_invite_code(
    db: AsyncSession,
    referrer_email: str | None = None,
    max_uses: int = 1,
) -> InviteCode:
    """Create a fresh invite code with no uses consumed.

    Raises:
        ValueError: If ``max_uses`` is not positive.
        CodeGenerationError: If no unique code could be generated.
    """
    if max_uses < 1:
        msg = "max_uses must be a positive integer"
        raise ValueError(msg)

    code = await generate_unique_invite_code(db)
    invite = InviteCode(
        code=code,
        referrer_email=normalize_email(referrer_email) if referrer_email else None,
        max_uses=max_uses,
        current_uses=0,
        is_active=True,
    )
    db.add(invite)
    await db.flush()
    logger.info("invite_code_issued", code=code, max_uses=max_uses, referrer_email=invite.referrer_email)
    return invite


# ---------------------------------------------------------------------------
# Verify / consume
# ---------------------------------------------------------------------------


async def get_invite_code(db: AsyncSession, code: str) -> InviteCode | None:
    """Fetch an invite code by its exact string."""
    result = await db.execute(
        select(InviteCode).where(InviteCode.code == code).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def verify_invite_code(db: AsyncSession, code: str) -> CodeVerification:
    """Check whether a code can still be used. Pure read, reserves nothing."""
    invite = await get_invite_code(db, code)
    if invite is None:
        return CodeVerification(valid=False, message=MSG_NOT_FOUND)
    if not invite.is_active:
        return CodeVerification(valid=False, message=MSG_INACTIVE)
    uses_left = invite.uses_left
    if uses_left <= 0:
        return CodeVerification(valid=False, message=MSG_NO_USES_LEFT)
    return CodeVerification(valid=True, uses_left=uses_left, code_id=invite.id)


async def increment_code_usage(db: AsyncSession, code_id: int) -> bool:
    """Consume one use of an invite code.

    The increment only applies while the code is active and has uses left.
    Returns False when no slot was consumed (lost race, deactivated meanwhile).
    """
    result = await db.execute(
        update(InviteCode)
        .where(
            InviteCode.id == code_id,
            InviteCode.is_active.is_(True),
            InviteCode.current_uses < InviteCode.max_uses,
        )
        .values(current_uses=InviteCode.current_uses + 1)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount == 1


async def deactivate_invite_code(db: AsyncSession, code: str) -> InviteCode | None:
    """Soft-deactivate a code. Returns None if the code does not exist."""
    invite = await get_invite_code(db, code)
    if invite is None:
        return None
    invite.is_active = False
    await db.flush()
    logger.info("invite_code_deactivated", code=code)
    return invite


# ---------------------------------------------------------------------------
# Admin listing / stats
# ---------------------------------------------------------------------------


def _usable_clause():  # noqa: ANN202
    return and_(InviteCode.is_active.is_(True), InviteCode.current_uses < InviteCode.max_uses)


async def list_invite_codes(
    db: AsyncSession,
    status: str = "all",
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[InviteCode], int]:
    """List invite codes newest first.

    ``status="active"`` keeps usable codes, ``"inactive"`` keeps deactivated or
    exhausted ones, ``"all"`` keeps everything.

    Returns:
        Tuple of (page of codes, total matching count).
    """
    if status not in STATUS_FILTERS:
        msg = f"Unknown status filter: {status}"
        raise ValueError(msg)

    query = select(InviteCode)
    count_query = select(func.count()).select_from(InviteCode)
    if status == "active":
        query = query.where(_usable_clause())
        count_query = count_query.where(_usable_clause())
    elif status == "inactive":
        clause = or_(not_(InviteCode.is_active), InviteCode.current_uses >= InviteCode.max_uses)
        query = query.where(clause)
        count_query = count_query.where(clause)

    result = await db.execute(
        query.order_by(InviteCode.created_at.desc(), InviteCode.id.desc()).limit(limit).offset(offset)
    )
    total = (await db.execute(count_query)).scalar_one()
    return list(result.scalars().all()), int(total)


async def invite_code_stats(db: AsyncSession) -> dict[str, int]:
    """Total codes and codes that can still be used."""
    total = (await db.execute(select(func.count()).select_from(InviteCode))).scalar_one()
    active = (
        await db.execute(select(func.count()).select_from(InviteCode).where(_usable_clause()))
    ).scalar_one()
    return {"total": int(total), "active": int(active)}
