"""Request/response schemas for admin endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from moca_gate.validation import normalize_email


class GenerateCodeRequest(BaseModel):
    """Issue a new invite code."""

    model_config = ConfigDict(populate_by_name=True)

    referrer_email: EmailStr | None = Field(None, alias="referrerEmail")
    max_uses: int = Field(1, alias="maxUses", ge=1, le=1_000_000)

    @field_validator("referrer_email", mode="before")
    @classmethod
    def normalize(cls, v: object) -> object:
        if isinstance(v, str):
            return normalize_email(v) or None
        return v


class GenerateCodeResponse(BaseModel):
    success: bool = True
    code: str
    max_uses: int = Field(..., serialization_alias="maxUses")
    referrer_email: str | None = Field(None, serialization_alias="referrerEmail")


class InviteCodeItem(BaseModel):
    """One row of the admin listing (snake_case, as the admin tooling expects)."""

    code: str
    referrer_email: str | None
    max_uses: int
    current_uses: int
    is_active: bool
    created_at: datetime
    status: str


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool = Field(..., serialization_alias="hasMore")


class InviteCodeListResponse(BaseModel):
    success: bool = True
    data: list[InviteCodeItem]
    pagination: Pagination


class InviteCodeCounts(BaseModel):
    total: int
    active: int


class RegistrationCounts(BaseModel):
    total: int
    nft: int
    invite: int


class StatsResponse(BaseModel):
    invite_codes: InviteCodeCounts = Field(..., serialization_alias="inviteCodes")
    registrations: RegistrationCounts


class DeactivateResponse(BaseModel):
    success: bool = True
    code: str
    is_active: bool = Field(..., serialization_alias="isActive")


class CacheInvalidateResponse(BaseModel):
    success: bool
    wallet: str
