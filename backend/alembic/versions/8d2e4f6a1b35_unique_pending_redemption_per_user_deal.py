"""unique pending redemption request per user and deal

Revision ID: 8d2e4f6a1b35
Revises: 3f1c9a2b7d10
Create Date: 2026-10-12
"""

from alembic import op
from sqlalchemy import text

# revision identifiers, used by Alembic.
revision = "8d2e4f6a1b35"
down_revision = "3f1c9a2b7d10"
branch_labels = None
depends_on = None

INDEX_NAME = "uq_redemption_requests_pending_user_deal"


def upgrade() -> None:
    op.create_index(
        INDEX_NAME,
        "redemption_requests",
        ["user_id", "deal_id"],
        unique=True,
        postgresql_where=text("status = 'pending'"),
        sqlite_where=text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index(INDEX_NAME, table_name="redemption_requests")
