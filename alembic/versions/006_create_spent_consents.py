"""006: create spent_consents table

Revision ID: 006
Revises: 005
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE spent_consents (
            digest      VARCHAR(64) PRIMARY KEY,
            identity    VARCHAR(64) NOT NULL,
            action      VARCHAR(20) NOT NULL,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_spent_consents_action CHECK (
                action IN ('make_offer', 'take_offer', 'cancel_offer')
            )
        );
    """)
    op.execute("CREATE INDEX idx_spent_consents_identity ON spent_consents (identity);")
    op.execute(
        "COMMENT ON TABLE spent_consents IS 'Consent signatures already acted on, never reused';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS spent_consents CASCADE;")
