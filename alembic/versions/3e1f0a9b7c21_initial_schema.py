"""initial schema: users, watchlists, portfolios, transactions, prices

Revision ID: 3e1f0a9b7c21
Revises:
Create Date: 2026-02-25
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "3e1f0a9b7c21"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True) -> list:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if with_updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        *_timestamps(with_updated=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "tickers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("symbol", sa.String(length=10), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_tickers_symbol", "tickers", ["symbol"], unique=True)

    op.create_table(
        "daily_prices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "symbol",
            sa.String(length=10),
            sa.ForeignKey("tickers.symbol", ondelete="CASCADE", onupdate="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("open", sa.Float(), nullable=True),
        sa.Column("high", sa.Float(), nullable=True),
        sa.Column("low", sa.Float(), nullable=True),
        sa.Column("close", sa.Float(), nullable=False),
        sa.Column("volume", sa.BigInteger(), nullable=True),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint("symbol", "date", name="uq_daily_prices_symbol_date"),
    )
    op.create_index("ix_daily_prices_symbol_date", "daily_prices", ["symbol", "date"])

    op.create_table(
        "watchlists",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_watchlists_user_id", "watchlists", ["user_id"])
    op.create_index("ix_watchlists_user_created", "watchlists", ["user_id", "created_at"])

    op.create_table(
        "watchlist_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("watchlist_id", sa.Integer(), sa.ForeignKey("watchlists.id", ondelete="CASCADE"), nullable=False),
        sa.Column("symbol", sa.String(length=10), nullable=False),
        sa.Column("notes", sa.String(length=200), nullable=True),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint("watchlist_id", "symbol", name="uq_watchlist_items_watchlist_symbol"),
    )
    op.create_index("ix_watchlist_items_watchlist_id", "watchlist_items", ["watchlist_id"])
    op.create_index("ix_watchlist_items_symbol", "watchlist_items", ["symbol"])

    op.create_table(
        "portfolios",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_portfolios_user_id", "portfolios", ["user_id"])
    op.create_index("ix_portfolios_user_created", "portfolios", ["user_id", "created_at"])

    transaction_type = sa.Enum("BUY", "SELL", name="portfolio_transaction_type")
    op.create_table(
        "portfolio_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", transaction_type, nullable=False, server_default="BUY"),
        sa.Column("symbol", sa.String(length=10), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("notes", sa.String(length=200), nullable=True),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(with_updated=False),
    )
    op.create_index(
        "ix_portfolio_transactions_portfolio_executed",
        "portfolio_transactions",
        ["portfolio_id", "executed_at"],
    )
    op.create_index("ix_portfolio_transactions_symbol", "portfolio_transactions", ["symbol"])


def downgrade() -> None:
    op.drop_index("ix_portfolio_transactions_symbol", table_name="portfolio_transactions")
    op.drop_index("ix_portfolio_transactions_portfolio_executed", table_name="portfolio_transactions")
    op.drop_table("portfolio_transactions")
    sa.Enum(name="portfolio_transaction_type").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_portfolios_user_created", table_name="portfolios")
    op.drop_index("ix_portfolios_user_id", table_name="portfolios")
    op.drop_table("portfolios")

    op.drop_index("ix_watchlist_items_symbol", table_name="watchlist_items")
    op.drop_index("ix_watchlist_items_watchlist_id", table_name="watchlist_items")
    op.drop_table("watchlist_items")
    op.drop_index("ix_watchlists_user_created", table_name="watchlists")
    op.drop_index("ix_watchlists_user_id", table_name="watchlists")
    op.drop_table("watchlists")

    op.drop_index("ix_daily_prices_symbol_date", table_name="daily_prices")
    op.drop_table("daily_prices")
    op.drop_index("ix_tickers_symbol", table_name="tickers")
    op.drop_table("tickers")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
