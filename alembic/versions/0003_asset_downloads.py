"""Add asset_downloads table

Revision ID: 0003_asset_downloads
Revises: 0002_append_only_audit
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0003_asset_downloads"
down_revision = "0002_append_only_audit"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "asset_downloads",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("asset_id", sa.String(length=36), sa.ForeignKey("assets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("downloaded_by_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("platform_intent", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column(
            "downloaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")
        ),
    )
    op.create_index("ix_asset_downloads_asset_downloaded_at", "asset_downloads", ["asset_id", "downloaded_at"])
    op.create_index("ix_asset_downloads_downloaded_by_id", "asset_downloads", ["downloaded_by_id"])


def downgrade() -> None:
    op.drop_index("ix_asset_downloads_downloaded_by_id", table_name="asset_downloads")
    op.drop_index("ix_asset_downloads_asset_downloaded_at", table_name="asset_downloads")
    op.drop_table("asset_downloads")
