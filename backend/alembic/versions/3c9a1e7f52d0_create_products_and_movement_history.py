"""create products and movement history

Revision ID: 3c9a1e7f52d0
Revises:
Create Date: 2026-10-12 10:04:51.214907

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c9a1e7f52d0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False, server_default=""),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("max_stock", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("stock >= 0", name="ck_stock_non_negative"),
        sa.CheckConstraint("min_stock > 0", name="ck_min_stock_positive"),
        sa.CheckConstraint("max_stock > 0", name="ck_max_stock_positive"),
    )
    op.create_index(op.f("ix_products_id"), "products", ["id"], unique=False)
    op.create_index("ix_products_name", "products", ["name"], unique=False)
    op.create_index("ix_products_category", "products", ["category"], unique=False)

    op.create_table(
        "movement_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("product_name", sa.String(), nullable=False),
        sa.Column("action_type", sa.String(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("user_name", sa.String(), nullable=False, server_default="Sistema"),
        sa.CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        sa.CheckConstraint("action_type IN ('Entrada', 'Salida')", name="ck_movement_action_type"),
    )
    op.create_index(op.f("ix_movement_history_id"), "movement_history", ["id"], unique=False)
    op.create_index(op.f("ix_movement_history_product_id"), "movement_history", ["product_id"], unique=False)
    op.create_index(op.f("ix_movement_history_action_type"), "movement_history", ["action_type"], unique=False)
    op.create_index(op.f("ix_movement_history_date"), "movement_history", ["date"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_movement_history_date"), table_name="movement_history")
    op.drop_index(op.f("ix_movement_history_action_type"), table_name="movement_history")
    op.drop_index(op.f("ix_movement_history_product_id"), table_name="movement_history")
    op.drop_index(op.f("ix_movement_history_id"), table_name="movement_history")
    op.drop_table("movement_history")

    op.drop_index("ix_products_category", table_name="products")
    op.drop_index("ix_products_name", table_name="products")
    op.drop_index(op.f("ix_products_id"), table_name="products")
    op.drop_table("products")
