from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from models.watchlist import Watchlist, WatchlistItem
from services.tickers import normalize_ticker

logger = logging.getLogger(__name__)


def list_watchlists(db: Session, user_id: int) -> List[Watchlist]:
    return (
        db.query(Watchlist)
        .options(selectinload(Watchlist.items))
        .filter(Watchlist.user_id == user_id)
        .order_by(Watchlist.created_at.desc(), Watchlist.id.desc())
        .all()
    )


def get_watchlist(db: Session, user_id: int, watchlist_id: int) -> Watchlist | None:
    return (
        db.query(Watchlist)
        .options(selectinload(Watchlist.items))
        .filter(Watchlist.user_id == user_id, Watchlist.id == watchlist_id)
        .first()
    )


def create_watchlist(db: Session, user_id: int, *, name: str) -> Watchlist:
    watchlist = Watchlist(user_id=user_id, name=name)
    db.add(watchlist)
    db.commit()
    logger.info("watchlist_created user_id=%s watchlist_id=%s", user_id, watchlist.id)
    return get_watchlist(db, user_id, watchlist.id)  # type: ignore[return-value]


def rename_watchlist(db: Session, user_id: int, watchlist_id: int, *, name: str) -> Watchlist:
    watchlist = get_watchlist(db, user_id, watchlist_id)
    if not watchlist:
        raise ValueError("Watchlist not found")

    watchlist.name = name
    db.commit()
    return get_watchlist(db, user_id, watchlist_id)  # type: ignore[return-value]


def delete_watchlist(db: Session, user_id: int, watchlist_id: int) -> None:
    watchlist = get_watchlist(db, user_id, watchlist_id)
    if not watchlist:
        raise ValueError("Watchlist not found")

    db.delete(watchlist)
    db.commit()
    logger.info("watchlist_deleted user_id=%s watchlist_id=%s", user_id, watchlist_id)


def add_watchlist_item(
    db: Session,
    user_id: int,
    watchlist_id: int,
    *,
    symbol: str,
    notes: str | None = None,
) -> Watchlist:
    watchlist = get_watchlist(db, user_id, watchlist_id)
    if not watchlist:
        raise ValueError("Watchlist not found")

    exists = (
        db.query(WatchlistItem)
        .filter(WatchlistItem.watchlist_id == watchlist_id, WatchlistItem.symbol == symbol)
        .first()
    )
    if exists:
        raise ValueError("Ticker already exists in this watchlist")

    db.add(WatchlistItem(watchlist_id=watchlist_id, symbol=symbol, notes=notes))
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent insert of the same symbol
        db.rollback()
        raise ValueError("Ticker already exists in this watchlist")

    return get_watchlist(db, user_id, watchlist_id)  # type: ignore[return-value]


def remove_watchlist_item(db: Session, user_id: int, watchlist_id: int, *, symbol: str) -> Watchlist:
    """Remove ``symbol`` from the watchlist. Removing a missing symbol is a no-op."""
    watchlist = get_watchlist(db, user_id, watchlist_id)
    if not watchlist:
        raise ValueError("Watchlist not found")

    normalized_symbol = normalize_ticker(symbol) or (symbol or "").strip().upper()
    item = (
        db.query(WatchlistItem)
        .filter(WatchlistItem.watchlist_id == watchlist_id, WatchlistItem.symbol == normalized_symbol)
        .first()
    )
    if item:
        db.delete(item)
        db.commit()

    return get_watchlist(db, user_id, watchlist_id)  # type: ignore[return-value]
