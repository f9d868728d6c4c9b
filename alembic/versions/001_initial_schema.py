"""Initial schema: hookup rounds and photo entries.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. hookups ──────────────────────────────────────────────────
    op.create_table(
        "hookups",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("gender", sa.String, nullable=False),
        sa.Column(
            "status",
            sa.String,
            nullable=False,
            comment="active/inactive",
        ),
        sa.Column(
            "winner_id",
            sa.Uuid,
            nullable=True,
            comment="User id of the winning entry",
        ),
        sa.Column(
            "decided_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="When the winner was set",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_hookups_gender_status", "hookups", ["gender", "status"]
    )
    op.create_index(
        "uq_hookups_active_gender",
        "hookups",
        ["gender"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    # ── 2. hookup_entries ───────────────────────────────────────────
    op.create_table(
        "hookup_entries",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "hookup_id",
            sa.Uuid,
            sa.ForeignKey("hookups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid, nullable=False),
        sa.Column(
            "image",
            sa.String,
            nullable=False,
            comment="Stored filename under the upload dir",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("hookup_id", "user_id", name="uq_hookup_entry_user"),
    )
    op.create_index(
        "ix_hookup_entries_hookup_id", "hookup_entries", ["hookup_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_hookup_entries_hookup_id", table_name="hookup_entries")
    op.drop_table("hookup_entries")
    op.drop_index("uq_hookups_active_gender", table_name="hookups")
    op.drop_index("ix_hookups_gender_status", table_name="hookups")
    op.drop_table("hookups")
