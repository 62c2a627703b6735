from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.tickers import normalize_ticker


def _validate_name(value: str) -> str:
    name = (value or "").strip()
    if not name or len(name) > 50:
        raise ValueError("name must be 1-50 characters")
    return name


def _validate_notes(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    notes = value.strip()
    if len(notes) > 200:
        raise ValueError("notes must be at most 200 characters")
    return notes


class WatchlistItemCreate(BaseModel):
    symbol: str
    notes: Optional[str] = None

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


class WatchlistCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _validate_name(value)


class WatchlistUpdate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _validate_name(value)


class WatchlistItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    symbol: str
    notes: Optional[str] = None
    created_at: datetime


class WatchlistOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
    updated_at: datetime
    items: list[WatchlistItemOut] = Field(default_factory=list)
