# routers/watchlist_routes.py
"""
Watchlist CRUD. Every route is scoped to the session user; someone else's
watchlist id answers 404 exactly like a missing one.
"""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.watchlist import WatchlistCreate, WatchlistItemCreate, WatchlistOut, WatchlistUpdate
from services import watchlist_service
from services.auth import get_current_user

router = APIRouter()


def _http_error(exc: ValueError) -> HTTPException:
    # services only raise "... not found" or duplicate-ticker errors
    message = str(exc)
    code = 404 if "not found" in message.lower() else 409
    return HTTPException(status_code=code, detail=message)


@router.get("", response_model=List[WatchlistOut])
def list_my_watchlists(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return watchlist_service.list_watchlists(db, user.id)


@router.post("", response_model=WatchlistOut, status_code=status.HTTP_201_CREATED)
def create_my_watchlist(
    payload: WatchlistCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return watchlist_service.create_watchlist(db, user.id, name=payload.name)


@router.get("/{watchlist_id}", response_model=WatchlistOut)
def read_my_watchlist(
    watchlist_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    watchlist = watchlist_service.get_watchlist(db, user.id, watchlist_id)
    if watchlist is None:
        raise HTTPException(status_code=404, detail="Watchlist not found")
    return watchlist


@router.patch("/{watchlist_id}", response_model=WatchlistOut)
def rename_my_watchlist(
    watchlist_id: int,
    payload: WatchlistUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        return watchlist_service.rename_watchlist(db, user.id, watchlist_id, name=payload.name)
    except ValueError as exc:
        raise _http_error(exc)


@router.delete("/{watchlist_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_watchlist(
    watchlist_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        watchlist_service.delete_watchlist(db, user.id, watchlist_id)
    except ValueError as exc:
        raise _http_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{watchlist_id}/items", response_model=WatchlistOut)
def add_ticker(
    watchlist_id: int,
    payload: WatchlistItemCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Add a ticker; the symbol is already normalized by the schema."""
    try:
        return watchlist_service.add_watchlist_item(
            db, user.id, watchlist_id, symbol=payload.symbol, notes=payload.notes
        )
    except ValueError as exc:
        raise _http_error(exc)


@router.delete("/{watchlist_id}/items/{symbol}", response_model=WatchlistOut)
def remove_ticker(
    watchlist_id: int,
    symbol: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        return watchlist_service.remove_watchlist_item(db, user.id, watchlist_id, symbol=symbol)
    except ValueError as exc:
        raise _http_error(exc)
