# services/tickers.py
from __future__ import annotations

import re
from typing import Any, Optional

_TICKER_RE = re.compile(r"^[A-Z][A-Z.]{0,9}$")


def normalize_ticker(value: Any) -> Optional[str]:
    """'  aapl.us ' -> 'AAPL'; anything that isn't a 1-10 char letters/dot symbol -> None."""
    raw = str(value or "").strip().upper()
    if raw.endswith(".US"):
        raw = raw[: -len(".US")]
    if not _TICKER_RE.match(raw):
        return None
    return raw


def to_stooq_symbol(value: Any) -> Optional[str]:
    normalized = normalize_ticker(value)
    if not normalized:
        return None
    return f"{normalized.lower()}.us"
