"""Create patterns and episodes tables.

Revision ID: 0001_patterns_episodes
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_patterns_episodes"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"
    json_type = postgresql.JSONB() if is_postgres else sa.JSON()

    op.create_table(
        "patterns",
        sa.Column("id", sa.String(length=255), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("context", json_type, nullable=False),
        sa.Column("problem", sa.Text(), nullable=False),
        sa.Column("solution", sa.Text(), nullable=False),
        sa.Column("examples", json_type, nullable=False),
        sa.Column("relations", json_type, nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_used_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "confidence >= 0 AND confidence <= 1",
            name="ck_patterns_confidence_range",
        ),
    )
    op.create_index("ix_patterns_confidence", "patterns", ["confidence"])
    op.create_index("ix_patterns_usage_count", "patterns", ["usage_count"])

    op.create_table(
        "episodes",
        sa.Column("id", sa.String(length=255), primary_key=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("context", sa.Text(), nullable=False),
        sa.Column("actions", json_type, nullable=False),
        sa.Column("outcome", sa.Text(), nullable=False),
        sa.Column("pattern_ids", json_type, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_episodes_timestamp", "episodes", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_episodes_timestamp", table_name="episodes")
    op.drop_table("episodes")
    op.drop_index("ix_patterns_usage_count", table_name="patterns")
    op.drop_index("ix_patterns_confidence", table_name="patterns")
    op.drop_table("patterns")
