"""Initial schema: products and session carts

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

import_status = sa.Enum("draft", "published", name="import_status")


def upgrade() -> None:
    # --- Products ---
    op.create_table(
        "products",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("slug", sa.String(255), unique=True, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("image", sa.Text, nullable=True),
        sa.Column("images", JSONB, nullable=True),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column("stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("original_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("source_url", sa.Text, nullable=True),
        sa.Column("external_id", sa.String(255), unique=True, nullable=True),
        sa.Column("import_status", import_status, nullable=False, server_default="draft"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("metadata", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_products_review_queue", "products", ["import_status", "created_at"],
    )

    # --- Session carts ---
    op.create_table(
        "cart_sessions",
        sa.Column("session_key", sa.String(128), primary_key=True),
        sa.Column("storage_name", sa.String(64), primary_key=True, server_default="cart-storage"),
        sa.Column("items", JSONB, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_cart_sessions_updated_at", "cart_sessions", ["updated_at"])


def downgrade() -> None:
    op.drop_index("ix_cart_sessions_updated_at", table_name="cart_sessions")
    op.drop_table("cart_sessions")
    op.drop_index("ix_products_review_queue", table_name="products")
    op.drop_table("products")
    import_status.drop(op.get_bind(), checkfirst=True)
