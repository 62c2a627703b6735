from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.watchlist import _validate_name, _validate_notes
from services.tickers import normalize_ticker


class PortfolioCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _validate_name(value)


class TransactionCreate(BaseModel):
    symbol: str
    type: Literal["BUY", "SELL"] = "BUY"
    quantity: float = Field(gt=0)
    price: float = Field(gt=0)
    notes: Optional[str] = None
    executed_at: Optional[datetime] = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, value: str) -> str:
        symbol = normalize_ticker(value)
        if symbol is None:
            raise ValueError("Invalid ticker")
        return symbol

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, value: Optional[str]) -> Optional[str]:
        return _validate_notes(value)


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    portfolio_id: int
    type: Literal["BUY", "SELL"]
    symbol: str
    quantity: float
    price: float
    notes: Optional[str] = None
    executed_at: datetime
    created_at: datetime

    @field_validator("type", mode="before")
    @classmethod
    def unwrap_enum(cls, value):
        return getattr(value, "value", value)


class PositionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    quantity: float
    average_cost: float
    cost_basis: float
    latest_close: Optional[float] = None
    market_value: Optional[float] = None
    unrealized_pnl: Optional[float] = None
    buy_transactions: int
    sell_transactions: int


class ConcentrationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    weight_pct: float
    market_value: float


class PortfolioSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_market_value: float
    total_cost_basis: float
    unrealized_pnl: float
    realized_pnl: float
    positions_count: int
    transactions_count: int
    concentration: List[ConcentrationOut] = Field(default_factory=list)


class PortfolioOut(BaseModel):
    """Portfolio with its raw history and the positions derived from it."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
    updated_at: datetime
    transactions: List[TransactionOut] = Field(default_factory=list)
    positions: List[PositionOut] = Field(default_factory=list)
    summary: Optional[PortfolioSummaryOut] = None


class PortfolioRef(BaseModel):
    id: int
    name: str


class PortfolioSummaryResponse(BaseModel):
    portfolio: PortfolioRef
    summary: PortfolioSummaryOut
    positions: List[PositionOut] = Field(default_factory=list)
