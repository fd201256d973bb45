"""Shared test fixtures.

The relational store is a per-test SQLite file (aiosqlite) with the schema
created from the ORM metadata; Redis is fakeredis; the staking contract is a
recording fake injected through FastAPI dependency overrides.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from fakeredis import aioredis as fake_aioredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from moca_gate import redis_client as redis_client_module
from moca_gate.config import get_settings
from moca_gate.database import close_db, get_engine, get_session, init_db
from moca_gate.db import models  # noqa: F401
from moca_gate.db.base import Base
from moca_gate.main import create_app
from moca_gate.nft.chain import get_staking_client, reset_staking_client
from moca_gate.nft.signature import registration_message

ADMIN_KEY = "test-admin-key"

# Deterministic test wallets (never hold funds)
WALLET_KEY = "0x" + "11" * 32
OTHER_WALLET_KEY = "0x" + "22" * 32


class FakeStakingClient:
    """Records eligibility lookups and answers from a per-wallet table."""

    def __init__(self) -> None:
        self.eligible: dict[str, bool] = {}
        self.calls: list[str] = []
        self.error: Exception | None = None

    def set_eligible(self, wallet: str, eligible: bool = True) -> None:
        self.eligible[wallet.lower()] = eligible

    async def has_eligible_nft(self, wallet: str) -> bool:
        self.calls.append(wallet)
        if self.error is not None:
            raise self.error
        return self.eligible.get(wallet.lower(), False)


def sign_registration(account: LocalAccount, email: str) -> str:
    """0x-hex personal_sign signature of the registration message for ``email``."""
    signed = account.sign_message(encode_defunct(text=registration_message(email)))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Known admin key and console logs for every test."""
    monkeypatch.setenv("MOCA_ADMIN_API_KEY", ADMIN_KEY)
    monkeypatch.setenv("MOCA_LOG_FORMAT", "console")
    get_settings.cache_clear()
    reset_staking_client()
    yield
    get_settings.cache_clear()
    reset_staking_client()


@pytest_asyncio.fixture
async def db_session(tmp_path) -> AsyncGenerator[AsyncSession, None]:  # noqa: ANN001
    """Fresh SQLite database with the gating schema; yields a direct session."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'moca_test.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    sessions = get_session()
    session = await sessions.__anext__()
    yield session
    await sessions.aclose()

    await close_db()


@pytest_asyncio.fixture
async def redis_client(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[fake_aioredis.FakeRedis, None]:
    """In-memory Redis installed as the application pool, flushed after use."""
    fake = fake_aioredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(redis_client_module, "_pool", fake)
    yield fake
    await fake.flushall()
    await fake.aclose()


@pytest.fixture
def staking_client() -> FakeStakingClient:
    return FakeStakingClient()


@pytest.fixture
def wallet_account() -> LocalAccount:
    return Account.from_key(WALLET_KEY)


@pytest.fixture
def other_wallet_account() -> LocalAccount:
    return Account.from_key(OTHER_WALLET_KEY)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    redis_client: fake_aioredis.FakeRedis,
    staking_client: FakeStakingClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against a fresh app wired to the test stores."""
    app = create_app()
    app.dependency_overrides[get_staking_client] = lambda: staking_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-API-Key": ADMIN_KEY}


async def generate_code(client: AsyncClient, max_uses: int = 1, referrer_email: str | None = None) -> str:
    """Issue an invite code through the admin API and return it."""
    body: dict[str, object] = {"maxUses": max_uses}
    if referrer_email is not None:
        body["referrerEmail"] = referrer_email
    response = await client.post("/api/admin/generate-code", json=body, headers={"X-API-Key": ADMIN_KEY})
    assert response.status_code == 201, response.text
    return response.json()["code"]
