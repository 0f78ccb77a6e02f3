"""002: create token_accounts table

Revision ID: 002
Revises: 001
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE token_accounts (
            address          VARCHAR(64) PRIMARY KEY,
            asset            VARCHAR(64) NOT NULL REFERENCES assets (address),
            authority        VARCHAR(64) NOT NULL,
            authority_kind   VARCHAR(10) NOT NULL,
            balance          BIGINT      NOT NULL DEFAULT 0,
            storage_deposit  BIGINT      NOT NULL DEFAULT 0,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_token_accounts_kind        CHECK (authority_kind IN ('USER', 'DERIVED')),
            CONSTRAINT ck_token_accounts_balance_gte_0 CHECK (balance >= 0),
            CONSTRAINT ck_token_accounts_deposit_gte_0 CHECK (storage_deposit >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_token_accounts_asset ON token_accounts (asset);")
    op.execute("CREATE INDEX idx_token_accounts_authority ON token_accounts (authority);")
    op.execute("""
        CREATE INDEX idx_token_accounts_custody
        ON token_accounts (authority)
        WHERE authority_kind = 'DERIVED';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS token_accounts CASCADE;")
