#!/usr/bin/env python3
"""
Ingest daily OHLCV prices from Stooq into daily_prices.

Usage:
    python scripts/ingest_prices.py                      # default ticker set
    python scripts/ingest_prices.py AAPL MSFT            # specific tickers
    python scripts/ingest_prices.py --lookback-days 365  # keep one year
    python scripts/ingest_prices.py --from-db            # every active ticker already stored
"""

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv()

from config.logging_config import configure_logging
from database import SessionLocal
from models.price import Ticker
from services.ingest_service import ingest_tickers
from services.tickers import normalize_ticker

logger = logging.getLogger("ingest")

DEFAULT_TICKERS = ["AAPL", "MSFT", "NVDA", "TSLA", "AMZN", "GOOGL"]
DEFAULT_LOOKBACK_DAYS = 730  # keep 2 years


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Ingest daily prices from Stooq")
    parser.add_argument("tickers", nargs="*", help="Ticker symbols (default: a small large-cap set)")
    parser.add_argument("--lookback-days", type=int, default=DEFAULT_LOOKBACK_DAYS)
    parser.add_argument("--from-db", action="store_true", help="Ingest every active ticker in the tickers table")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)

    db = SessionLocal()
    try:
        if args.from_db:
            tickers = [t.symbol for t in db.query(Ticker).filter(Ticker.is_active.is_(True)).all()]
        else:
            tickers = [normalize_ticker(t) or t.upper() for t in args.tickers] or DEFAULT_TICKERS

        logger.info("ingest_start tickers=%s", ",".join(tickers))
        results = ingest_tickers(db, tickers, lookback_days=args.lookback_days)
    finally:
        db.close()

    failed = [t for t in tickers if t not in results]
    logger.info("ingest_done ok=%d failed=%d", len(results), len(failed))
    return 1 if tickers and len(failed) == len(tickers) else 0


if __name__ == "__main__":
    sys.exit(main())
