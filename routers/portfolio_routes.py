# routers/portfolio_routes.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.portfolio import (
    PortfolioCreate,
    PortfolioOut,
    PortfolioSummaryResponse,
    TransactionCreate,
    TransactionOut,
)
from services.auth import get_current_user
from services.portfolio_service import (
    add_transaction,
    create_portfolio,
    delete_portfolio,
    delete_transaction,
    get_portfolio_summary,
    list_portfolios_with_positions,
)
from services.positions import OversellError

router = APIRouter()


@router.get("", response_model=List[PortfolioOut])
def get_user_portfolios(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return list_portfolios_with_positions(db, user.id)


@router.post("", response_model=PortfolioOut, status_code=status.HTTP_201_CREATED)
def create_user_portfolio(
    payload: PortfolioCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return create_portfolio(db, user.id, name=payload.name)


@router.delete("/{portfolio_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user_portfolio(
    portfolio_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        delete_portfolio(db, user.id, portfolio_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{portfolio_id}/transactions", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def create_portfolio_transaction(
    portfolio_id: int,
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        return add_transaction(
            db,
            user.id,
            portfolio_id,
            symbol=payload.symbol,
            type=payload.type,
            quantity=payload.quantity,
            price=payload.price,
            notes=payload.notes,
            executed_at=payload.executed_at,
        )
    except OversellError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.delete("/{portfolio_id}/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_portfolio_transaction(
    portfolio_id: int,
    transaction_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        delete_transaction(db, user.id, portfolio_id, transaction_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{portfolio_id}/summary", response_model=PortfolioSummaryResponse)
def get_user_portfolio_summary(
    portfolio_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    summary = get_portfolio_summary(db, user.id, portfolio_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    return summary
