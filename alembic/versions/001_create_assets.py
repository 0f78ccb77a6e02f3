"""001: create assets table

Revision ID: 001
Revises: 
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE assets (
            address     VARCHAR(64) PRIMARY KEY,
            decimals    INTEGER     NOT NULL,
            supply      BIGINT      NOT NULL DEFAULT 0,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_assets_decimals_range CHECK (decimals BETWEEN 0 AND 18),
            CONSTRAINT ck_assets_supply_gte_0   CHECK (supply >= 0)
        );
    """)
    op.execute("COMMENT ON TABLE assets IS 'Registered fungible assets, amounts in base units';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS assets CASCADE;")
