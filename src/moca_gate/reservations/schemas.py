"""Request/response schemas for the public gating endpoints.

Wire names are camelCase (the frontend contract); Python attributes are snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from moca_gate.validation import INVITE_CODE_PATTERN, WALLET_PATTERN, normalize_email

RegistrationType = Literal["nft", "invite"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Reserve
# ---------------------------------------------------------------------------


class ReserveRequest(_CamelModel):
    """Reserve a spot with either a staked NFT or an invite code."""

    email: EmailStr
    wallet: str | None = Field(None, pattern=WALLET_PATTERN.pattern)
    invite_code: str | None = Field(None, alias="inviteCode", pattern=INVITE_CODE_PATTERN.pattern)
    signature: str | None = Field(None, max_length=256)
    registration_type: RegistrationType = Field(..., alias="registrationType")

    @field_validator("email", mode="before")
    @classmethod
    def normalize(cls, v: object) -> object:
        """Normalize email to trimmed lowercase before format validation."""
        if isinstance(v, str):
            return normalize_email(v)
        return v


class RegistrationSummary(_CamelModel):
    email: str
    type: RegistrationType
    registered_at: datetime = Field(..., serialization_alias="registeredAt")


class ReserveResponse(_CamelModel):
    success: bool = True
    message: str = "Registration successful"
    registration: RegistrationSummary


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


class UsedResponse(BaseModel):
    used: bool


class VipRegistration(_CamelModel):
    email: str
    type: RegistrationType
    registered_at: datetime = Field(..., serialization_alias="registeredAt")
    invite_code: str | None = Field(None, serialization_alias="inviteCode")


class VipStatusResponse(_CamelModel):
    is_vip: bool = Field(..., serialization_alias="isVip")
    registration: VipRegistration | None = None
    message: str | None = None
