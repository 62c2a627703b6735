# services/ingest_service.py
"""
Daily OHLCV ingestion from Stooq.

Example feed: https://stooq.com/q/d/l/?s=aapl.us&i=d

    Date,Open,High,Low,Close,Volume
    2026-02-24,181.2,183.9,180.7,183.1,51234000

Rows are inserted once per (symbol, date); re-running the job only adds
dates that aren't stored yet.
"""
from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.price import DailyPrice, Ticker
from services.tickers import normalize_ticker, to_stooq_symbol
from utils.common_helpers import safe_float

logger = logging.getLogger(__name__)

STOOQ_DAILY_URL = "https://stooq.com/q/d/l/"
DEFAULT_LOOKBACK_DAYS = 365


class TickerFetchError(ValueError):
    pass


@dataclass
class PriceRow:
    date: date
    open: Optional[float]
    high: Optional[float]
    low: Optional[float]
    close: float
    volume: Optional[int]


def parse_stooq_csv(text: str, symbol: str) -> List[PriceRow]:
    lines = (text or "").strip().splitlines()
    if len(lines) < 3:
        raise TickerFetchError(f"No data for {symbol}")

    rows: List[PriceRow] = []
    for record in csv.DictReader(io.StringIO("\n".join(lines))):
        close = safe_float(record.get("Close"))
        if close is None:
            continue
        try:
            day = date.fromisoformat((record.get("Date") or "").strip())
        except ValueError:
            continue

        # volume is sometimes fractional ("1496329307.4141")
        volume = safe_float(record.get("Volume"))
        rows.append(
            PriceRow(
                date=day,
                open=safe_float(record.get("Open")),
                high=safe_float(record.get("High")),
                low=safe_float(record.get("Low")),
                close=close,
                volume=int(math.floor(volume)) if volume is not None else None,
            )
        )
    return rows


def fetch_stooq_daily(symbol: str, client: Optional[httpx.Client] = None) -> List[PriceRow]:
    stooq_symbol = to_stooq_symbol(symbol)
    if not stooq_symbol:
        raise TickerFetchError(f"Bad symbol: {symbol}")

    owns_client = client is None
    client = client or httpx.Client(timeout=httpx.Timeout(15.0, connect=5.0))
    try:
        resp = client.get(STOOQ_DAILY_URL, params={"s": stooq_symbol, "i": "d"})
    finally:
        if owns_client:
            client.close()

    if resp.status_code >= 400:
        raise TickerFetchError(f"Stooq fetch failed: {symbol} ({resp.status_code})")
    return parse_stooq_csv(resp.text, symbol)


def upsert_ticker_and_prices(
    db: Session,
    symbol: str,
    rows: List[PriceRow],
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> int:
    """Store rows newer than the lookback window. Returns the number of new rows."""
    sym = normalize_ticker(symbol)
    if not sym:
        raise TickerFetchError(f"Bad symbol: {symbol}")

    ticker = db.query(Ticker).filter(Ticker.symbol == sym).first()
    if ticker:
        ticker.is_active = True
    else:
        db.add(Ticker(symbol=sym, is_active=True))
    db.flush()

    cutoff = (datetime.now(timezone.utc) - timedelta(days=lookback_days)).date()
    recent = [r for r in rows if r.date >= cutoff]

    existing = {
        d for (d,) in db.query(DailyPrice.date).filter(DailyPrice.symbol == sym).all()
    }
    inserted = 0
    for r in recent:
        if r.date in existing:
            continue
        db.add(
            DailyPrice(
                symbol=sym,
                date=r.date,
                open=r.open,
                high=r.high,
                low=r.low,
                close=r.close,
                volume=r.volume,
            )
        )
        existing.add(r.date)
        inserted += 1

    db.commit()
    return inserted


def ingest_tickers(
    db: Session,
    tickers: List[str],
    *,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    client: Optional[httpx.Client] = None,
) -> dict[str, int]:
    """Ingest each ticker; one ticker failing doesn't stop the rest."""
    results: dict[str, int] = {}
    for t in tickers:
        try:
            logger.info("ingest_fetch symbol=%s", t)
            rows = fetch_stooq_daily(t, client=client)
            results[t] = upsert_ticker_and_prices(db, t, rows, lookback_days)
            logger.info("ingest_ok symbol=%s rows=%d inserted=%d", t, len(rows), results[t])
        except (TickerFetchError, httpx.HTTPError, SQLAlchemyError) as exc:
            db.rollback()
            logger.error("ingest_failed symbol=%s error=%s", t, exc)
    return results
