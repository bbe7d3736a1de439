"""Initial schema: assemblies, parts and bom_items tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "assemblies",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("parent_assembly_id", sa.Text, nullable=True),
        sa.Column("drawing_url", sa.Text, nullable=True),
    )
    op.create_table(
        "parts",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("part_number", sa.Text, nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("min_stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("price", sa.Float, nullable=False, server_default="0"),
    )
    op.create_table(
        "bom_items",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("assembly_id", sa.Text, sa.ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_number", sa.Text, nullable=False),
        sa.Column("part_id", sa.Text, sa.ForeignKey("parts.id", ondelete="CASCADE"), nullable=True),
        sa.Column("sub_assembly_id", sa.Text, sa.ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=True),
        sa.Column("x_position", sa.Float, nullable=False, server_default="-1"),
        sa.Column("y_position", sa.Float, nullable=False, server_default="-1"),
        sa.UniqueConstraint("assembly_id", "item_number", name="uq_bom_items_callout"),
        sa.CheckConstraint("(part_id IS NULL) <> (sub_assembly_id IS NULL)", name="ck_bom_items_single_ref"),
    )
    op.create_index("ix_bom_items_assembly_id", "bom_items", ["assembly_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_bom_items_assembly_id", table_name="bom_items")
    op.drop_table("bom_items")
    op.drop_table("parts")
    op.drop_table("assemblies")
