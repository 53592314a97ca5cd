"""create_eav_tables

Revision ID: 5c1e0a9d2b7f
Revises:
Create Date: 2026-10-19 09:12:44.318204

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1e0a9d2b7f"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

VALUE_TABLES = {
    "eav_value_int": sa.Integer(),
    "eav_value_numeric": sa.Numeric(precision=20, scale=6, asdecimal=False),
    "eav_value_varchar": sa.String(length=255),
    "eav_value_text": sa.Text(),
    "eav_value_date": sa.Date(),
    "eav_value_datetime": sa.DateTime(),
}


def upgrade() -> None:
    """Create attribute catalog and value tables."""
    op.create_table(
        "eav_set",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False, comment="Attribute set name"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "eav_attribute",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("eav_set_id", sa.Integer(), nullable=False, comment="Foreign key to eav_set table"),
        sa.Column("name", sa.String(length=64), nullable=False, comment="Attribute name, unique within the set"),
        sa.Column("label", sa.String(length=255), nullable=True, comment="Display label"),
        sa.Column(
            "data_type",
            sa.String(length=32),
            nullable=False,
            comment="Value store tag (int, numeric, varchar, text, date, datetime)",
        ),
        sa.Column(
            "cardinality",
            sa.String(length=16),
            server_default="single",
            nullable=False,
            comment="'single' or 'multiple'",
        ),
        sa.Column("rules", sa.Text(), nullable=True, comment="JSON list of rule specifications"),
        sa.ForeignKeyConstraint(["eav_set_id"], ["eav_set.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("eav_set_id", "name", name="uq_eav_attribute_set_name"),
    )
    op.create_index(op.f("ix_eav_attribute_eav_set_id"), "eav_attribute", ["eav_set_id"], unique=False)

    for table_name, value_type in VALUE_TABLES.items():
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("attribute_id", sa.Integer(), nullable=False, comment="Foreign key to eav_attribute table"),
            sa.Column("entity_type", sa.String(length=100), nullable=False, comment="Entity type identifier"),
            sa.Column("entity_id", sa.Integer(), nullable=False, comment="Primary key of the owning record"),
            sa.Column("value", value_type, nullable=True),
            sa.ForeignKeyConstraint(["attribute_id"], ["eav_attribute.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            f"ix_{table_name}_lookup",
            table_name,
            ["attribute_id", "entity_type", "entity_id"],
            unique=False,
        )


def downgrade() -> None:
    """Drop attribute catalog and value tables."""
    for table_name in reversed(list(VALUE_TABLES)):
        op.drop_index(f"ix_{table_name}_lookup", table_name=table_name)
        op.drop_table(table_name)
    op.drop_index(op.f("ix_eav_attribute_eav_set_id"), table_name="eav_attribute")
    op.drop_table("eav_attribute")
    op.drop_table("eav_set")
