from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class AnalysisOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticker: str
    summary: str
    data: Dict[str, Any]
    cached: bool
    created_at: datetime
    watchlist_id: Optional[int] = None
    portfolio_id: Optional[int] = None
