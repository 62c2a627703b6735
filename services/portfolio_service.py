# services/portfolio_service.py
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from sqlalchemy.orm import Session, selectinload

from models.portfolio import Portfolio, PortfolioTransaction, TransactionType
from services.positions import derive_positions, ensure_can_sell, summarize_positions
from services.price_service import build_latest_close_map

logger = logging.getLogger(__name__)


def owned_portfolio_query(db: Session, user_id: int, portfolio_id: int, *, for_update: bool = False):
    query = (
        db.query(Portfolio)
        .options(selectinload(Portfolio.transactions))
        .filter(Portfolio.user_id == user_id, Portfolio.id == portfolio_id)
    )
    if for_update:
        # serializes concurrent writes to one portfolio; SQLite ignores it
        query = query.with_for_update(of=Portfolio)
    return query


def get_portfolio(db: Session, user_id: int, portfolio_id: int, *, for_update: bool = False) -> Portfolio | None:
    return owned_portfolio_query(db, user_id, portfolio_id, for_update=for_update).first()


def create_portfolio(db: Session, user_id: int, *, name: str) -> Portfolio:
    portfolio = Portfolio(user_id=user_id, name=name)
    db.add(portfolio)
    db.commit()
    logger.info("portfolio_created user_id=%s portfolio_id=%s", user_id, portfolio.id)
    return get_portfolio(db, user_id, portfolio.id)  # type: ignore[return-value]


def delete_portfolio(db: Session, user_id: int, portfolio_id: int) -> None:
    portfolio = get_portfolio(db, user_id, portfolio_id)
    if not portfolio:
        raise ValueError("Portfolio not found")

    db.delete(portfolio)
    db.commit()
    logger.info("portfolio_deleted user_id=%s portfolio_id=%s", user_id, portfolio_id)


def _enrich(portfolio: Portfolio, latest_close_map: Dict[str, float]) -> Dict[str, Any]:
    positions, realized_pnl = derive_positions(portfolio.transactions, latest_close_map)
    summary = summarize_positions(
        positions,
        realized_pnl,
        transactions_count=len(portfolio.transactions),
    )
    return {
        "id": portfolio.id,
        "name": portfolio.name,
        "created_at": portfolio.created_at,
        "updated_at": portfolio.updated_at,
        "transactions": portfolio.transactions,
        "positions": [asdict(p) for p in positions],
        "summary": asdict(summary),
    }


def list_portfolios_with_positions(db: Session, user_id: int) -> List[Dict[str, Any]]:
    portfolios = (
        db.query(Portfolio)
        .options(selectinload(Portfolio.transactions))
        .filter(Portfolio.user_id == user_id)
        .order_by(Portfolio.created_at.desc(), Portfolio.id.desc())
        .all()
    )

    # one price lookup shared by every portfolio
    all_symbols = [tx.symbol for p in portfolios for tx in p.transactions]
    latest_close_map = build_latest_close_map(db, all_symbols)

    return [_enrich(p, latest_close_map) for p in portfolios]


def get_portfolio_summary(db: Session, user_id: int, portfolio_id: int) -> Optional[Dict[str, Any]]:
    portfolio = get_portfolio(db, user_id, portfolio_id)
    if not portfolio:
        return None

    latest_close_map = build_latest_close_map(db, [tx.symbol for tx in portfolio.transactions])
    enriched = _enrich(portfolio, latest_close_map)
    return {
        "portfolio": {"id": portfolio.id, "name": portfolio.name},
        "summary": enriched["summary"],
        "positions": enriched["positions"],
    }


def add_transaction(
    db: Session,
    user_id: int,
    portfolio_id: int,
    *,
    symbol: str,
    type: Literal["BUY", "SELL"],
    quantity: float,
    price: float,
    notes: str | None = None,
    executed_at: datetime | None = None,
) -> PortfolioTransaction:
    """
    Append a transaction to an owned portfolio.

    SELLs are checked against the position derived from the portfolio's
    existing same-symbol history; an oversell raises ``OversellError`` and
    nothing is written. The portfolio row stays locked until the commit so
    two concurrent SELLs cannot both pass the check.
    """
    portfolio = get_portfolio(db, user_id, portfolio_id, for_update=True)
    if not portfolio:
        raise ValueError("Portfolio not found")

    tx_type = TransactionType(type)
    if tx_type is TransactionType.SELL:
        existing = (
            db.query(PortfolioTransaction)
            .filter(
                PortfolioTransaction.portfolio_id == portfolio.id,
                PortfolioTransaction.symbol == symbol,
            )
            .order_by(PortfolioTransaction.executed_at.asc(), PortfolioTransaction.created_at.asc())
            .all()
        )
        ensure_can_sell(existing, symbol, quantity)

    transaction = PortfolioTransaction(
        portfolio_id=portfolio.id,
        symbol=symbol,
        type=tx_type,
        quantity=quantity,
        price=price,
        notes=notes,
        executed_at=executed_at or datetime.now(timezone.utc),
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    logger.info(
        "portfolio_transaction_created portfolio_id=%s transaction_id=%s type=%s symbol=%s",
        portfolio.id, transaction.id, tx_type.value, symbol,
    )
    return transaction


def delete_transaction(db: Session, user_id: int, portfolio_id: int, transaction_id: int) -> None:
    portfolio = get_portfolio(db, user_id, portfolio_id)
    if not portfolio:
        raise ValueError("Portfolio not found")

    transaction = (
        db.query(PortfolioTransaction)
        .filter(PortfolioTransaction.id == transaction_id, PortfolioTransaction.portfolio_id == portfolio.id)
        .first()
    )
    if not transaction:
        raise ValueError("Transaction not found")

    db.delete(transaction)
    db.commit()
    logger.info("portfolio_transaction_deleted portfolio_id=%s transaction_id=%s", portfolio.id, transaction_id)
