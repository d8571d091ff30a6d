"""Reject UPDATE and DELETE on audit_logs and approvals

Revision ID: 0002_append_only_audit
Revises: 0001_initial
Create Date: 2026-10-18
"""
from alembic import op

# revision identifiers, used by Alembic.
revision = "0002_append_only_audit"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

_TABLES = ("audit_logs", "approvals")


def upgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute(
        """
        CREATE OR REPLACE FUNCTION assetflow_refuse_change() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION '% rows are append-only', TG_TABLE_NAME;
        END;
        $$ LANGUAGE plpgsql
        """
    )
    for table in _TABLES:
        op.execute(
            f"CREATE TRIGGER {table}_append_only BEFORE UPDATE OR DELETE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION assetflow_refuse_change()"
        )


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    for table in _TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS {table}_append_only ON {table}")
    op.execute("DROP FUNCTION IF EXISTS assetflow_refuse_change()")
