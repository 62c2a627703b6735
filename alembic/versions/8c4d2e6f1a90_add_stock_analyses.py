"""add stock_analyses (cached AI commentary)

Revision ID: 8c4d2e6f1a90
Revises: 3e1f0a9b7c21
Create Date: 2026-03-01
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "8c4d2e6f1a90"
down_revision: Union[str, None] = "3e1f0a9b7c21"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "stock_analyses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ticker", sa.String(length=10), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=False),
        sa.Column("cached", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "watchlist_id",
            sa.Integer(),
            sa.ForeignKey("watchlists.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "portfolio_id",
            sa.Integer(),
            sa.ForeignKey("portfolios.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_stock_analyses_user_ticker_created",
        "stock_analyses",
        ["user_id", "ticker", "created_at"],
    )
    op.create_index("ix_stock_analyses_watchlist_created", "stock_analyses", ["watchlist_id", "created_at"])
    op.create_index("ix_stock_analyses_portfolio_created", "stock_analyses", ["portfolio_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_stock_analyses_portfolio_created", table_name="stock_analyses")
    op.drop_index("ix_stock_analyses_watchlist_created", table_name="stock_analyses")
    op.drop_index("ix_stock_analyses_user_ticker_created", table_name="stock_analyses")
    op.drop_table("stock_analyses")
