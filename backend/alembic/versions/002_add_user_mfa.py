"""Add user_mfa table.

Revision ID: 002_user_mfa
Revises: 001_workspaces_users
Create Date: 2026-10-19 09:30:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "002_user_mfa"
down_revision: str | None = "001_workspaces_users"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "user_mfa",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "workspace_id",
            sa.Uuid(),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("secret_encrypted", sa.String(), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("method", sa.String(20), nullable=False, server_default="totp"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        # Upserts conflict on this key
        sa.UniqueConstraint("user_id", "workspace_id", name="uq_user_mfa_user_id_workspace_id"),
    )
    op.create_index("ix_user_mfa_user_id", "user_mfa", ["user_id"])
    op.create_index("ix_user_mfa_workspace_id", "user_mfa", ["workspace_id"])


def downgrade() -> None:
    op.drop_index("ix_user_mfa_workspace_id", table_name="user_mfa")
    op.drop_index("ix_user_mfa_user_id", table_name="user_mfa")
    op.drop_table("user_mfa")
