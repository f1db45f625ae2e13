"""create automations, logs, outputs and settings tables

Revision ID: 5f3c2a9d8e41
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5f3c2a9d8e41"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "automations",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("script", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="idle"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "automation_id",
            sa.String(length=64),
            sa.ForeignKey("automations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("automation_name", sa.String(length=200), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("output", sa.Text()),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_logs_automation_id", "logs", ["automation_id"])
    op.create_index("ix_logs_timestamp", "logs", ["timestamp"])

    op.create_table(
        "outputs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "automation_id",
            sa.String(length=64),
            sa.ForeignKey("automations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False, server_default="text"),
        sa.Column("data", sa.Text()),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_outputs_automation_id", "outputs", ["automation_id"])
    op.create_index("ix_outputs_type", "outputs", ["type"])
    op.create_index("ix_outputs_timestamp", "outputs", ["timestamp"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=100), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_index("ix_outputs_timestamp", table_name="outputs")
    op.drop_index("ix_outputs_type", table_name="outputs")
    op.drop_index("ix_outputs_automation_id", table_name="outputs")
    op.drop_table("outputs")
    op.drop_index("ix_logs_timestamp", table_name="logs")
    op.drop_index("ix_logs_automation_id", table_name="logs")
    op.drop_table("logs")
    op.drop_table("automations")
