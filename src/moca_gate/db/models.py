"""ORM models for the gating tables.

The schema is created by Alembic revision ``001_gating_tables``; these models
must stay in sync with it.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from moca_gate.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Invite codes
# ---------------------------------------------------------------------------


class InviteCode(Base):
    """Bounded-use invite credential. Never deleted, only deactivated."""

    __tablename__ = "invite_codes"
    __table_args__ = (
        CheckConstraint("max_uses > 0", name="invite_codes_max_uses_positive"),
        CheckConstraint("current_uses >= 0", name="invite_codes_current_uses_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    referrer_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    current_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def uses_left(self) -> int:
        return self.max_uses - self.current_uses

    @property
    def status(self) -> str:
        """Derived status: inactive wins over exhausted."""
        if not self.is_active:
            return "inactive"
        if self.current_uses >= self.max_uses:
            return "exhausted"
        return "active"


# ---------------------------------------------------------------------------
# Registrations
# ---------------------------------------------------------------------------


class Registration(Base):
    """One successful gated sign-up. Immutable once created."""

    __tablename__ = "registrations"
    __table_args__ = (
        CheckConstraint(
            "registration_type IN ('nft', 'invite')",
            name="registrations_type_valid",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    wallet_address: Mapped[str | None] = mapped_column(String(42), unique=True, nullable=True)
    invite_code_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("invite_codes.id"), nullable=True)
    registration_type: Mapped[str] = mapped_column(String(16), nullable=False)
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
