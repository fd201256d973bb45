"""Gating tables: invite_codes and registrations.

Uniqueness of registration email and wallet is enforced here, by the database;
the application pre-checks only to produce friendly errors.

Revision ID: 001_gating_tables
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_gating_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Invite codes ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS invite_codes (
            id SERIAL PRIMARY KEY,
            code VARCHAR(16) UNIQUE NOT NULL,
            referrer_email VARCHAR(320),
            max_uses INTEGER NOT NULL DEFAULT 1,
            current_uses INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT invite_codes_max_uses_positive CHECK (max_uses > 0),
            CONSTRAINT invite_codes_current_uses_non_negative CHECK (current_uses >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_invite_codes_created
        ON invite_codes(created_at DESC)
    """)

    # --- Registrations ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS registrations (
            id SERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            wallet_address VARCHAR(42) UNIQUE,
            invite_code_id INTEGER REFERENCES invite_codes(id),
            registration_type VARCHAR(16) NOT NULL,
            registered_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT registrations_type_valid CHECK (registration_type IN ('nft', 'invite'))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_registrations_invite_code
        ON registrations(invite_code_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_registrations_type
        ON registrations(registration_type)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS registrations CASCADE")
    op.execute("DROP TABLE IF EXISTS invite_codes CASCADE")
