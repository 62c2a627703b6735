# routers/analysis_routes.py
"""
FastAPI routes for AI stock commentary.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from openai import OpenAI, OpenAIError
from sqlalchemy.orm import Session

from database import get_db
from middleware.rate_limit import ANALYZE_RATE_LIMIT, limiter
from models.user import User
from schemas.analysis import AnalysisOut
from services.analysis_service import InsufficientPriceHistoryError, analyze_stock, list_analyses
from services.auth import get_current_user
from services.openai.client import get_openai_client_factory
from services.portfolio_service import get_portfolio
from services.tickers import normalize_ticker
from services.watchlist_service import get_watchlist

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_watchlist(db: Session, user: User, watchlist_id: Optional[int]) -> None:
    if watchlist_id is not None and not get_watchlist(db, user.id, watchlist_id):
        raise HTTPException(status_code=404, detail="Watchlist not found")


def _require_portfolio(db: Session, user: User, portfolio_id: Optional[int]) -> None:
    if portfolio_id is not None and not get_portfolio(db, user.id, portfolio_id):
        raise HTTPException(status_code=404, detail="Portfolio not found")


@router.get("/stocks/analyze", response_model=AnalysisOut)
@limiter.limit(ANALYZE_RATE_LIMIT)
def analyze(
    request: Request,
    ticker: str = Query(""),
    watchlist_id: Optional[int] = Query(None),
    portfolio_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    get_client: Callable[[], OpenAI] = Depends(get_openai_client_factory),
):
    """
    AI commentary for one ticker.

    Returns the stored result if one for the same context is less than 12h
    old; otherwise asks the model and stores the answer.
    """
    symbol = normalize_ticker(ticker)
    if symbol is None:
        raise HTTPException(status_code=400, detail="Invalid analyze request")

    _require_watchlist(db, user, watchlist_id)
    _require_portfolio(db, user, portfolio_id)

    try:
        analysis, cached = analyze_stock(
            db,
            get_client,
            user.id,
            symbol,
            watchlist_id=watchlist_id,
            portfolio_id=portfolio_id,
        )
    except InsufficientPriceHistoryError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except OpenAIError:
        logger.exception("stock_analysis_llm_failed user_id=%s ticker=%s", user.id, symbol)
        raise HTTPException(status_code=502, detail="Analysis provider unavailable")

    out = AnalysisOut.model_validate(analysis)
    if cached:
        out = out.model_copy(update={"cached": True})
    return out


@router.get("/analyses", response_model=List[AnalysisOut])
def get_analyses(
    ticker: Optional[str] = Query(None),
    watchlist_id: Optional[int] = Query(None),
    portfolio_id: Optional[int] = Query(None),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    symbol = None
    if ticker and ticker.strip():
        symbol = normalize_ticker(ticker) or ticker.strip().upper()
    return list_analyses(
        db,
        user.id,
        ticker=symbol,
        watchlist_id=watchlist_id,
        portfolio_id=portfolio_id,
        limit=limit,
    )


@router.get("/watchlists/{watchlist_id}/analyses", response_model=List[AnalysisOut])
def get_watchlist_analyses(
    watchlist_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _require_watchlist(db, user, watchlist_id)
    return list_analyses(db, user.id, watchlist_id=watchlist_id, limit=50)


@router.get("/portfolios/{portfolio_id}/analyses", response_model=List[AnalysisOut])
def get_portfolio_analyses(
    portfolio_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _require_portfolio(db, user, portfolio_id)
    return list_analyses(db, user.id, portfolio_id=portfolio_id, limit=50)
