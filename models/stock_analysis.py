# models/stock_analysis.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockAnalysis(Base):
    __tablename__ = "stock_analyses"
    __table_args__ = (
        Index("ix_stock_analyses_user_ticker_created", "user_id", "ticker", "created_at"),
        Index("ix_stock_analyses_watchlist_created", "watchlist_id", "created_at"),
        Index("ix_stock_analyses_portfolio_created", "portfolio_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    ticker: Mapped[str] = mapped_column(String(10), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    # prompt payload the summary was generated from
    data: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    cached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    watchlist_id: Mapped[int | None] = mapped_column(
        ForeignKey("watchlists.id", ondelete="SET NULL"), nullable=True
    )
    portfolio_id: Mapped[int | None] = mapped_column(
        ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True
    )
    # set client-side so the 12h cache window compares like with like on every backend
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
