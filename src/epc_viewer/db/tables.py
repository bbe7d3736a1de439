"""SQLAlchemy Core table definitions shared by the store and the migrations."""

import sqlalchemy as sa

metadata = sa.MetaData()

assemblies = sa.Table(
    "assemblies",
    metadata,
    sa.Column("id", sa.Text, primary_key=True),
    sa.Column("name", sa.Text, nullable=False),
    # Not a foreign key: stored hierarchies may dangle and the tree builder copes.
    sa.Column("parent_assembly_id", sa.Text, nullable=True),
    sa.Column("drawing_url", sa.Text, nullable=True),
)

parts = sa.Table(
    "parts",
    metadata,
    sa.Column("id", sa.Text, primary_key=True),
    sa.Column("name", sa.Text, nullable=False),
    sa.Column("part_number", sa.Text, nullable=True),
    sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
    sa.Column("min_stock", sa.Integer, nullable=False, server_default="0"),
    sa.Column("price", sa.Float, nullable=False, server_default="0"),
)

bom_items = sa.Table(
    "bom_items",
    metadata,
    sa.Column("id", sa.Text, primary_key=True),
    sa.Column(
        "assembly_id", sa.Text, sa.ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=False, index=True
    ),
    sa.Column("item_number", sa.Text, nullable=False),
    sa.Column("part_id", sa.Text, sa.ForeignKey("parts.id", ondelete="CASCADE"), nullable=True),
    sa.Column("sub_assembly_id", sa.Text, sa.ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=True),
    sa.Column("x_position", sa.Float, nullable=False, server_default="-1"),
    sa.Column("y_position", sa.Float, nullable=False, server_default="-1"),
    sa.UniqueConstraint("assembly_id", "item_number", name="uq_bom_items_callout"),
    sa.CheckConstraint(
        "(part_id IS NULL) <> (sub_assembly_id IS NULL)",
        name="ck_bom_items_single_ref",
    ),
)
