import math
from typing import Any, Optional

def safe_float(x: Any) -> Optional[float]:
    """float(x), or None for missing/blank/non-numeric/NaN/inf input."""
    try:
        if x is None:
            return None
        if isinstance(x, str):
            x = x.strip()
            if not x:
                return None
        f = float(x)
        if math.isnan(f) or math.isinf(f):
            return None
        return f
    except (TypeError, ValueError):
        return None

def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(value, hi))
