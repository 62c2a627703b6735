# services/positions.py
"""
Portfolio position derivation.

Positions are never stored. They are rebuilt from a portfolio's BUY/SELL
history on every request using average-cost accounting:

- a BUY adds ``quantity * price`` to the symbol's cost basis;
- a SELL removes ``quantity * average_cost`` from it and books
  ``quantity * (price - average_cost)`` as realized P&L.

Everything here is pure. Each call owns its accumulator mapping, so the
functions are safe to call from concurrent requests. Rounding happens only
when the display fields are produced.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from math import fsum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

BUY = "BUY"
SELL = "SELL"


class TransactionLike(Protocol):
    symbol: str
    type: Any  # "BUY"/"SELL" or TransactionType
    quantity: float
    price: float
    executed_at: datetime


@dataclass(frozen=True)
class TransactionRecord:
    """Plain transaction input, for callers that don't hold ORM rows."""

    symbol: str
    type: str
    quantity: float
    price: float
    executed_at: datetime
    created_at: Optional[datetime] = None


@dataclass
class _Accumulator:
    symbol: str
    quantity: float = 0.0
    total_cost_basis: float = 0.0
    average_cost: float = 0.0
    buy_transactions: int = 0
    sell_transactions: int = 0


@dataclass
class Position:
    symbol: str
    quantity: float
    average_cost: float
    cost_basis: float
    latest_close: Optional[float]
    market_value: Optional[float]
    unrealized_pnl: Optional[float]
    buy_transactions: int
    sell_transactions: int


@dataclass
class ConcentrationEntry:
    symbol: str
    weight_pct: float
    market_value: float


@dataclass
class PortfolioSummary:
    total_market_value: float
    total_cost_basis: float
    unrealized_pnl: float
    realized_pnl: float
    positions_count: int
    transactions_count: int
    concentration: List[ConcentrationEntry] = field(default_factory=list)


class OversellError(ValueError):
    def __init__(self, symbol: str, requested: float, available: float):
        self.symbol = symbol
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot sell {_plain_number(requested)} shares of {symbol}. "
            f"Only {format_quantity(available)} shares available."
        )


def format_quantity(value: float) -> str:
    """5.0 -> '5', 2.5 -> '2.5' (share counts are shown at 4dp at most)."""
    text = f"{float(value):.4f}".rstrip("0").rstrip(".")
    return text or "0"


def _plain_number(value: float) -> str:
    # requested amounts are echoed as sent, without rounding
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _type_name(value: Any) -> str:
    # Accepts plain strings and str-valued enums alike
    return str(getattr(value, "value", value)).upper()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _sort_key(tx: TransactionLike) -> Tuple[datetime, datetime]:
    executed = _as_utc(tx.executed_at)
    created = _as_utc(getattr(tx, "created_at", None)) or executed
    return executed, created


def derive_positions(
    transactions: Iterable[TransactionLike],
    latest_close_by_symbol: Optional[Mapping[str, float]] = None,
) -> Tuple[List[Position], float]:
    """
    Fold a transaction history into open positions.

    Returns ``(positions, realized_pnl)``. Closed positions (quantity 0) are
    left out but their realized P&L is kept. Symbols missing from
    ``latest_close_by_symbol`` get ``None`` market fields.
    """
    latest_close_by_symbol = latest_close_by_symbol or {}
    accumulators: Dict[str, _Accumulator] = {}
    realized_pnl = 0.0

    # sorted() is stable, so equal keys keep insertion order
    for tx in sorted(transactions, key=_sort_key):
        current = accumulators.get(tx.symbol)
        if current is None:
            current = accumulators[tx.symbol] = _Accumulator(symbol=tx.symbol)

        quantity = float(tx.quantity)
        price = float(tx.price)

        if _type_name(tx.type) == BUY:
            current.total_cost_basis += quantity * price
            current.quantity += quantity
            current.buy_transactions += 1
        else:
            # Selling out of an empty position books the full proceeds as profit.
            avg_cost = current.total_cost_basis / current.quantity if current.quantity > 0 else 0.0
            current.total_cost_basis = max(0.0, current.total_cost_basis - quantity * avg_cost)
            current.quantity = max(0.0, current.quantity - quantity)
            current.sell_transactions += 1
            realized_pnl += quantity * (price - avg_cost)

        current.average_cost = current.total_cost_basis / current.quantity if current.quantity > 0 else 0.0

    positions: List[Position] = []
    for acc in accumulators.values():
        if acc.quantity <= 0:
            continue

        latest_close = latest_close_by_symbol.get(acc.symbol)
        market_value = round(acc.quantity * latest_close, 2) if latest_close is not None else None
        cost_basis = round(acc.total_cost_basis, 2)
        unrealized_pnl = round(market_value - cost_basis, 2) if market_value is not None else None

        positions.append(
            Position(
                symbol=acc.symbol,
                quantity=round(acc.quantity, 4),
                average_cost=round(acc.average_cost, 2),
                cost_basis=cost_basis,
                latest_close=latest_close,
                market_value=market_value,
                unrealized_pnl=unrealized_pnl,
                buy_transactions=acc.buy_transactions,
                sell_transactions=acc.sell_transactions,
            )
        )

    return positions, round(realized_pnl, 2)


def summarize_positions(
    positions: List[Position],
    realized_pnl: float,
    *,
    transactions_count: int = 0,
) -> PortfolioSummary:
    """Portfolio totals over positions that have a known market value."""
    priced = [p for p in positions if p.market_value is not None]
    market_value = fsum(p.market_value for p in priced)  # type: ignore[misc]
    cost_basis = fsum(p.cost_basis for p in priced)

    concentration: List[ConcentrationEntry] = []
    if market_value > 0:
        concentration = sorted(
            (
                ConcentrationEntry(
                    symbol=p.symbol,
                    weight_pct=round(p.market_value / market_value * 100.0, 2),  # type: ignore[operator]
                    market_value=p.market_value,  # type: ignore[arg-type]
                )
                for p in priced
            ),
            key=lambda entry: -entry.weight_pct,
        )

    return PortfolioSummary(
        total_market_value=round(market_value, 2),
        total_cost_basis=round(cost_basis, 2),
        unrealized_pnl=round(market_value - cost_basis, 2),
        realized_pnl=realized_pnl,
        positions_count=len(positions),
        transactions_count=transactions_count,
        concentration=concentration,
    )


def available_quantity(transactions: Iterable[TransactionLike], symbol: str) -> float:
    positions, _ = derive_positions(transactions)
    for position in positions:
        if position.symbol == symbol:
            return position.quantity
    return 0.0


def ensure_can_sell(transactions: Iterable[TransactionLike], symbol: str, quantity: float) -> float:
    """Raise OversellError if ``quantity`` exceeds the derived holding of ``symbol``."""
    available = available_quantity(transactions, symbol)
    if available < quantity:
        raise OversellError(symbol, quantity, available)
    return available
