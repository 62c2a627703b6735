# services/analysis_service.py
"""
AI stock commentary.

A commentary is generated from the latest ingested daily prices of a ticker
and stored per user. Requests for the same user/ticker/context within
ANALYSIS_CACHE_HOURS are answered from the stored row instead of calling the
model again.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from math import fsum
from typing import Any, Callable, Dict, List, Optional, Tuple

from openai import OpenAI
from sqlalchemy.orm import Session

from models.price import DailyPrice
from models.stock_analysis import StockAnalysis
from services.openai.client import OPENAI_MODEL
from services.price_service import get_recent_daily_prices
from utils.common_helpers import clamp

logger = logging.getLogger(__name__)

ANALYSIS_CACHE_HOURS = int(os.getenv("ANALYSIS_CACHE_HOURS", "12"))
PRICE_HISTORY_LIMIT = 120
MIN_PRICE_ROWS = 30
STATS_WINDOW_DAYS = 60
PROMPT_TAIL_ROWS = 20

SYSTEM_PROMPT = (
    "You are an analyst assistant. Provide neutral, educational stock commentary. "
    "No financial advice. Be concise."
)

USER_PROMPT_TEMPLATE = (
    "Analyze this stock data and explain:\n"
    "1) trend summary, 2) volatility/risk signals, 3) notable volume shifts, 4) what to watch next.\n\n"
    "Return plain text with short bullet points.\n\nDATA:\n{data}"
)


class InsufficientPriceHistoryError(ValueError):
    pass


def _row_to_dict(row: DailyPrice) -> Dict[str, Any]:
    return {
        "date": row.date.isoformat(),
        "open": row.open or 0.0,
        "high": row.high or 0.0,
        "low": row.low or 0.0,
        "close": row.close,
        "volume": int(row.volume) if row.volume else 0,
    }


def compute_simple_stats(rows: List[Dict[str, Any]], days: int = 30) -> Dict[str, Any]:
    """Window stats over the last ``days`` rows (oldest first)."""
    recent = rows[-days:] if days > 0 else []
    if not recent:
        return {
            "windowDays": 0,
            "startDate": None,
            "endDate": None,
            "startClose": None,
            "endClose": None,
            "changePct": 0.0,
            "avgClose": 0.0,
            "avgAbsDailyMovePct": 0.0,
        }

    first, last = recent[0], recent[-1]
    change_pct = (last["close"] - first["close"]) / first["close"] * 100.0 if first["close"] else 0.0

    closes = [r["close"] for r in recent]
    avg_close = fsum(closes) / len(closes)

    moves = [
        abs((cur["close"] - prev["close"]) / prev["close"]) * 100.0
        for prev, cur in zip(recent, recent[1:])
        if prev["close"]
    ]
    avg_abs_move = fsum(moves) / max(1, len(recent) - 1)

    return {
        "windowDays": len(recent),
        "startDate": first["date"],
        "endDate": last["date"],
        "startClose": first["close"],
        "endClose": last["close"],
        "changePct": round(change_pct, 2),
        "avgClose": round(avg_close, 2),
        "avgAbsDailyMovePct": round(avg_abs_move, 2),
    }


def build_prompt_payload(ticker: str, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "ticker": ticker,
        "stats": compute_simple_stats(rows, STATS_WINDOW_DAYS),
        "last20": [
            {"date": r["date"], "close": r["close"], "volume": r["volume"]}
            for r in rows[-PROMPT_TAIL_ROWS:]
        ],
    }


def generate_commentary(client: OpenAI, payload: Dict[str, Any], model: str = OPENAI_MODEL) -> str:
    completion = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": USER_PROMPT_TEMPLATE.format(data=json.dumps(payload))},
        ],
    )
    content = None
    if completion.choices:
        content = completion.choices[0].message.content
    return (content or "").strip() or "No output."


def find_cached_analysis(
    db: Session,
    user_id: int,
    ticker: str,
    *,
    watchlist_id: Optional[int] = None,
    portfolio_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> StockAnalysis | None:
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=ANALYSIS_CACHE_HOURS)

    query = db.query(StockAnalysis).filter(
        StockAnalysis.user_id == user_id,
        StockAnalysis.ticker == ticker,
        StockAnalysis.created_at >= cutoff,
    )
    # a context-free analysis must not be served for a watchlist/portfolio request and vice versa
    if watchlist_id is not None:
        query = query.filter(StockAnalysis.watchlist_id == watchlist_id)
    else:
        query = query.filter(StockAnalysis.watchlist_id.is_(None))
    if portfolio_id is not None:
        query = query.filter(StockAnalysis.portfolio_id == portfolio_id)
    else:
        query = query.filter(StockAnalysis.portfolio_id.is_(None))

    return query.order_by(StockAnalysis.created_at.desc(), StockAnalysis.id.desc()).first()


def analyze_stock(
    db: Session,
    get_client: Callable[[], OpenAI],
    user_id: int,
    ticker: str,
    *,
    watchlist_id: Optional[int] = None,
    portfolio_id: Optional[int] = None,
) -> Tuple[StockAnalysis, bool]:
    """
    Return ``(analysis, cached)``.

    Raises InsufficientPriceHistoryError when fewer than MIN_PRICE_ROWS daily
    prices are stored. ``get_client`` is only called on a cache miss;
    OpenAI errors (including a missing API key) propagate to the caller.
    """
    cached = find_cached_analysis(
        db, user_id, ticker, watchlist_id=watchlist_id, portfolio_id=portfolio_id
    )
    if cached:
        logger.info("stock_analysis_cache_hit user_id=%s ticker=%s", user_id, ticker)
        return cached, True

    prices = get_recent_daily_prices(db, ticker, limit=PRICE_HISTORY_LIMIT)
    if len(prices) < MIN_PRICE_ROWS:
        raise InsufficientPriceHistoryError(
            "Not enough historical data in DB, please run ingest job first"
        )

    payload = build_prompt_payload(ticker, [_row_to_dict(r) for r in prices])
    logger.info("stock_analysis_generate user_id=%s ticker=%s rows=%d", user_id, ticker, len(prices))
    summary = generate_commentary(get_client(), payload)

    analysis = StockAnalysis(
        user_id=user_id,
        ticker=ticker,
        summary=summary,
        data=payload,
        cached=False,
        watchlist_id=watchlist_id,
        portfolio_id=portfolio_id,
    )
    db.add(analysis)
    db.commit()
    db.refresh(analysis)
    return analysis, False


def list_analyses(
    db: Session,
    user_id: int,
    *,
    ticker: Optional[str] = None,
    watchlist_id: Optional[int] = None,
    portfolio_id: Optional[int] = None,
    limit: int = 20,
) -> List[StockAnalysis]:
    query = db.query(StockAnalysis).filter(StockAnalysis.user_id == user_id)
    if ticker:
        query = query.filter(StockAnalysis.ticker == ticker)
    if watchlist_id is not None:
        query = query.filter(StockAnalysis.watchlist_id == watchlist_id)
    if portfolio_id is not None:
        query = query.filter(StockAnalysis.portfolio_id == portfolio_id)

    return (
        query.order_by(StockAnalysis.created_at.desc(), StockAnalysis.id.desc())
        .limit(clamp(limit, 1, 100))
        .all()
    )
