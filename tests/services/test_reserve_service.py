"""Reservation flow against SQLite + fakeredis with a fake staking contract."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from conftest import sign_registration
from moca_gate.db.models import InviteCode, Registration
from moca_gate.errors import (
    ConflictError,
    DependencyError,
    InvalidCredentialError,
    NotEligibleError,
    RateLimitError,
    ValidationError,
)
from moca_gate.invites.service import CodeVerification, issue_invite_code, verify_invite_code
from moca_gate.registrations.service import get_registration_by_wallet, registration_stats
from moca_gate.reservations import service as reservation_service
from moca_gate.reservations.rate_limit import increment_rate_limit, rate_limit_key
from moca_gate.reservations.schemas import ReserveRequest
from moca_gate.reservations.service import reserve


async def _registration_count(db) -> int:  # noqa: ANN001
    return (await db.execute(select(func.count()).select_from(Registration))).scalar_one()


async def _fresh_code(db, max_uses: int = 1) -> InviteCode:  # noqa: ANN001
    invite = await issue_invite_code(db, max_uses=max_uses)
    await db.commit()
    return invite


def _invite_request(email: str, code: str, wallet: str | None = None) -> ReserveRequest:
    return ReserveRequest(email=email, wallet=wallet, invite_code=code, registration_type="invite")


def _nft_request(email: str, wallet: str, signature: str | None) -> ReserveRequest:
    return ReserveRequest(email=email, wallet=wallet, signature=signature, registration_type="nft")


class TestInvitePath:
    @pytest.mark.asyncio
    async def test_reserve_with_invite_code(self, db_session, redis_client, staking_client):
        invite = await _fresh_code(db_session, max_uses=3)

        registration = await reserve(
            db_session, redis_client, staking_client, _invite_request("Alice@Example.com", invite.code)
        )

        assert registration.email == "alice@example.com"
        assert registration.registration_type == "invite"
        assert registration.invite_code_id == invite.id
        assert registration.wallet_address is None
        assert (await verify_invite_code(db_session, invite.code)).uses_left == 2
        assert await redis_client.get(rate_limit_key("alice@example.com")) == "1"
        assert staking_client.calls == []

    @pytest.mark.asyncio
    async def test_wallet_is_stored_lowercase(self, db_session, redis_client, staking_client, wallet_account):
        invite = await _fresh_code(db_session)

        await reserve(
            db_session,
            redis_client,
            staking_client,
            _invite_request("bob@example.com", invite.code, wallet=wallet_account.address),
        )

        found = await get_registration_by_wallet(db_session, wallet_account.address.upper().replace("0X", "0x"))
        assert found is not None
        registration, code = found
        assert registration.wallet_address == wallet_account.address.lower()
        assert code == invite.code

    @pytest.mark.asyncio
    async def test_missing_invite_code(self, db_session, redis_client, staking_client):
        request = ReserveRequest(email="carol@example.com", registration_type="invite")

        with pytest.raises(ValidationError) as exc_info:
            await reserve(db_session, redis_client, staking_client, request)
        assert exc_info.value.error == "Missing invite code"

    @pytest.mark.asyncio
    async def test_unknown_invite_code(self, db_session, redis_client, staking_client):
        with pytest.raises(InvalidCredentialError) as exc_info:
            await reserve(
                db_session, redis_client, staking_client, _invite_request("carol@example.com", "MOCA-ABCDEFGH")
            )
        assert exc_info.value.message == "Invite code not found"
        assert await _registration_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_exhausted_code_rejected(self, db_session, redis_client, staking_client):
        invite = await _fresh_code(db_session, max_uses=1)
        await reserve(db_session, redis_client, staking_client, _invite_request("first@example.com", invite.code))

        with pytest.raises(InvalidCredentialError) as exc_info:
            await reserve(
                db_session, redis_client, staking_client, _invite_request("second@example.com", invite.code)
            )
        assert exc_info.value.message == "Invite code has no uses left"
        assert await _registration_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_deactivated_code_rejected(self, db_session, redis_client, staking_client):
        invite = await _fresh_code(db_session, max_uses=5)
        invite.is_active = False
        await db_session.commit()

        with pytest.raises(InvalidCredentialError) as exc_info:
            await reserve(db_session, redis_client, staking_client, _invite_request("dan@example.com", invite.code))
        assert exc_info.value.message == "Invite code is no longer active"

    @pytest.mark.asyncio
    async def test_lost_consumption_race_rolls_back_registration(
        self, db_session, redis_client, staking_client, monkeypatch
    ):
        invite = await _fresh_code(db_session, max_uses=1)

        async def slot_taken(db, code_id):  # noqa: ANN001, ANN202
            return False

        monkeypatch.setattr(reservation_service, "increment_code_usage", slot_taken)

        with pytest.raises(InvalidCredentialError) as exc_info:
            await reserve(db_session, redis_client, staking_client, _invite_request("eve@example.com", invite.code))
        assert exc_info.value.message == "Invite code has no uses left"
        assert await _registration_count(db_session) == 0
        assert await redis_client.get(rate_limit_key("eve@example.com")) is None

    @pytest.mark.asyncio
    async def test_verification_without_row_id_is_rejected(
        self, db_session, redis_client, staking_client, monkeypatch
    ):
        async def valid_but_unbound(db, code):  # noqa: ANN001, ANN202
            return CodeVerification(valid=True, uses_left=1)

        monkeypatch.setattr(reservation_service, "verify_invite_code", valid_but_unbound)

        with pytest.raises(InvalidCredentialError) as exc_info:
            await reserve(
                db_session, redis_client, staking_client, _invite_request("fay@example.com", "MOCA-ABCDEFGH")
            )
        assert exc_info.value.message == "Invite code not found"
        assert await _registration_count(db_session) == 0


class TestDuplicates:
    @pytest.mark.asyncio
    async def test_duplicate_email_consumes_nothing(self, db_session, redis_client, staking_client):
        invite = await _fresh_code(db_session, max_uses=3)
        await reserve(db_session, redis_client, staking_client, _invite_request("x@y.com", invite.code))

        with pytest.raises(ConflictError) as exc_info:
            await reserve(db_session, redis_client, staking_client, _invite_request(" X@Y.com ", invite.code))

        assert exc_info.value.error == "Email already registered"
        assert exc_info.value.message == "This email has already been used"
        assert await _registration_count(db_session) == 1
        assert (await verify_invite_code(db_session, invite.code)).uses_left == 2

    @pytest.mark.asyncio
    async def test_duplicate_wallet(self, db_session, redis_client, staking_client, wallet_account):
        invite = await _fresh_code(db_session, max_uses=3)
        await reserve(
            db_session,
            redis_client,
            staking_client,
            _invite_request("one@example.com", invite.code, wallet=wallet_account.address),
        )

        with pytest.raises(ConflictError) as exc_info:
            await reserve(
                db_session,
                redis_client,
                staking_client,
                _invite_request("two@example.com", invite.code, wallet=wallet_account.address.lower()),
            )
        assert exc_info.value.error == "Wallet already registered"

    @pytest.mark.asyncio
    async def test_email_race_on_insert_reported_as_email_conflict(
        self, db_session, redis_client, staking_client, monkeypatch
    ):
        code = (await _fresh_code(db_session, max_uses=3)).code
        await reserve(db_session, redis_client, staking_client, _invite_request("race@example.com", code))
        await redis_client.flushall()

        real_is_email_used = reservation_service.is_email_used
        calls: list[str] = []

        async def stale_then_real(db, email):  # noqa: ANN001, ANN202
            calls.append(email)
            if len(calls) == 1:
                return False
            return await real_is_email_used(db, email)

        monkeypatch.setattr(reservation_service, "is_email_used", stale_then_real)

        with pytest.raises(ConflictError) as exc_info:
            await reserve(db_session, redis_client, staking_client, _invite_request("race@example.com", code))
        assert exc_info.value.error == "Email already registered"
        assert await _registration_count(db_session) == 1
        assert (await verify_invite_code(db_session, code)).uses_left == 2

    @pytest.mark.asyncio
    async def test_wallet_race_on_insert_reported_as_wallet_conflict(
        self, db_session, redis_client, staking_client, wallet_account, monkeypatch
    ):
        code = (await _fresh_code(db_session, max_uses=3)).code
        await reserve(
            db_session,
            redis_client,
            staking_client,
            _invite_request("w1@example.com", code, wallet=wallet_account.address),
        )

        async def never_used(db, wallet):  # noqa: ANN001, ANN202
            return False

        monkeypatch.setattr(reservation_service, "is_wallet_used", never_used)

        with pytest.raises(ConflictError) as exc_info:
            await reserve(
                db_session,
                redis_client,
                staking_client,
                _invite_request("w2@example.com", code, wallet=wallet_account.address),
            )
        assert exc_info.value.error == "Wallet already registered"
        assert await _registration_count(db_session) == 1
        assert (await verify_invite_code(db_session, code)).uses_left == 2


class TestNftPath:
    @pytest.mark.asyncio
    async def test_reserve_with_staked_nft(self, db_session, redis_client, staking_client, wallet_account):
        staking_client.set_eligible(wallet_account.address, True)
        signature = sign_registration(wallet_account, "holder@example.com")

        registration = await reserve(
            db_session,
            redis_client,
            staking_client,
            _nft_request("holder@example.com", wallet_account.address, signature),
        )

        assert registration.registration_type == "nft"
        assert registration.invite_code_id is None
        assert registration.wallet_address == wallet_account.address.lower()
        assert await registration_stats(db_session) == {"total": 1, "nft": 1, "invite": 0}

    @pytest.mark.asyncio
    async def test_not_eligible_writes_nothing(self, db_session, redis_client, staking_client, wallet_account):
        signature = sign_registration(wallet_account, "holder@example.com")

        with pytest.raises(NotEligibleError):
            await reserve(
                db_session,
                redis_client,
                staking_client,
                _nft_request("holder@example.com", wallet_account.address, signature),
            )
        assert await _registration_count(db_session) == 0
        assert await redis_client.get(rate_limit_key("holder@example.com")) is None

    @pytest.mark.asyncio
    async def test_missing_wallet(self, db_session, redis_client, staking_client):
        request = ReserveRequest(email="holder@example.com", registration_type="nft")

        with pytest.raises(ValidationError) as exc_info:
            await reserve(db_session, redis_client, staking_client, request)
        assert exc_info.value.error == "Missing required fields"
        assert staking_client.calls == []

    @pytest.mark.asyncio
    async def test_missing_signature(self, db_session, redis_client, staking_client, wallet_account):
        with pytest.raises(ValidationError) as exc_info:
            await reserve(
                db_session,
                redis_client,
                staking_client,
                _nft_request("holder@example.com", wallet_account.address, None),
            )
        assert exc_info.value.error == "Missing required fields"

    @pytest.mark.asyncio
    async def test_signature_from_other_wallet(
        self, db_session, redis_client, staking_client, wallet_account, other_wallet_account
    ):
        staking_client.set_eligible(wallet_account.address, True)
        signature = sign_registration(other_wallet_account, "holder@example.com")

        with pytest.raises(ValidationError) as exc_info:
            await reserve(
                db_session,
                redis_client,
                staking_client,
                _nft_request("holder@example.com", wallet_account.address, signature),
            )
        assert exc_info.value.error == "Invalid wallet signature"
        assert staking_client.calls == []

    @pytest.mark.asyncio
    async def test_chain_failure_writes_nothing(self, db_session, redis_client, staking_client, wallet_account):
        staking_client.error = DependencyError("Failed to verify NFT eligibility")
        signature = sign_registration(wallet_account, "holder@example.com")

        with pytest.raises(DependencyError):
            await reserve(
                db_session,
                redis_client,
                staking_client,
                _nft_request("holder@example.com", wallet_account.address, signature),
            )
        assert await _registration_count(db_session) == 0


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_sixth_attempt_in_window_is_limited(self, db_session, redis_client, staking_client):
        invite = await _fresh_code(db_session, max_uses=10)
        for _ in range(5):
            await increment_rate_limit(redis_client, "busy@example.com")

        with pytest.raises(RateLimitError) as exc_info:
            await reserve(db_session, redis_client, staking_client, _invite_request("busy@example.com", invite.code))
        assert exc_info.value.message == "Too many requests. Please try again later."
        assert await _registration_count(db_session) == 0
        assert (await verify_invite_code(db_session, invite.code)).uses_left == 10

    @pytest.mark.asyncio
    async def test_limit_checked_before_duplicates(self, db_session, redis_client, staking_client):
        invite = await _fresh_code(db_session, max_uses=10)
        await reserve(db_session, redis_client, staking_client, _invite_request("busy@example.com", invite.code))
        for _ in range(4):
            await increment_rate_limit(redis_client, "busy@example.com")

        with pytest.raises(RateLimitError):
            await reserve(db_session, redis_client, staking_client, _invite_request("busy@example.com", invite.code))
