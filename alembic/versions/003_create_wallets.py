"""003: create wallets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # wallets is the only table with a mutable updated_at
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_wallets_touch()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE wallets (
            identity    VARCHAR(64) PRIMARY KEY,
            balance     BIGINT      NOT NULL DEFAULT 0,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallets_balance_gte_0 CHECK (balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_wallets_updated_at
            BEFORE UPDATE ON wallets
            FOR EACH ROW EXECUTE FUNCTION fn_wallets_touch();
    """)
    op.execute(
        "COMMENT ON TABLE wallets IS 'Native balance that pays refundable storage deposits';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS wallets CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_wallets_touch();")
