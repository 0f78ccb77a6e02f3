"""004: create offers table

Revision ID: 004
Revises: 003
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE offers (
            address          VARCHAR(64) PRIMARY KEY,
            maker            VARCHAR(64) NOT NULL,
            data             BYTEA       NOT NULL,
            storage_deposit  BIGINT      NOT NULL,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_offers_data_len CHECK (octet_length(data) = 122)
        );
    """)
    op.execute("CREATE INDEX idx_offers_maker ON offers (maker, created_at DESC);")
    op.execute("COMMENT ON TABLE offers IS 'Open offers; data holds the fixed binary record';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS offers CASCADE;")
