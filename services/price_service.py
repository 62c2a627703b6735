# services/price_service.py
from __future__ import annotations

from typing import Dict, Iterable, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.price import DailyPrice


def build_latest_close_map(db: Session, symbols: Iterable[str]) -> Dict[str, float]:
    """symbol -> most recent ingested close. Symbols with no price rows are left out."""
    unique_symbols = sorted({s for s in symbols if s})
    if not unique_symbols:
        return {}

    latest_dates = (
        db.query(DailyPrice.symbol, func.max(DailyPrice.date).label("max_date"))
        .filter(DailyPrice.symbol.in_(unique_symbols))
        .group_by(DailyPrice.symbol)
        .subquery()
    )
    rows = (
        db.query(DailyPrice.symbol, DailyPrice.close)
        .join(
            latest_dates,
            (DailyPrice.symbol == latest_dates.c.symbol) & (DailyPrice.date == latest_dates.c.max_date),
        )
        .all()
    )
    return {symbol: float(close) for symbol, close in rows}


def get_recent_daily_prices(db: Session, symbol: str, limit: int = 120) -> List[DailyPrice]:
    """Latest ``limit`` daily rows for ``symbol``, oldest first."""
    rows_desc = (
        db.query(DailyPrice)
        .filter(DailyPrice.symbol == symbol)
        .order_by(DailyPrice.date.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(rows_desc))
