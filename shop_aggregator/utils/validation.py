from __future__ import annotations

import math
import re
from typing import Any, Optional

from ..errors import ValidationError
from ..models import SearchRequest

MAX_TERM_LENGTH = 100
DEFAULT_MAX_PRICE = 10_000_000.0
DEFAULT_MAX_CATEGORY_LENGTH = 50
PRICE_PRECISION = 2

_UNSAFE_TERM_CHARS = re.compile(r"[^A-Za-z0-9 \-]")
_WHITESPACE = re.compile(r"\s+")


def validate_search_params(
    term: Any,
    price_ceiling: Any = None,
    category: Any = None,
    *,
    max_price: float = DEFAULT_MAX_PRICE,
    max_category_length: int = DEFAULT_MAX_CATEGORY_LENGTH,
) -> SearchRequest:
    """
    Turn raw query parameters into a SearchRequest.

    The term is trimmed, whitespace-collapsed and stripped of anything outside
    letters, digits, spaces and hyphens. An empty or missing price ceiling or
    category means "not given". Raises ValidationError on bad input.
    """
    return SearchRequest(
        term=_clean_term(term),
        price_ceiling=_clean_price(price_ceiling, max_price),
        category=_clean_category(category, max_category_length),
    )


def _clean_term(term: Any) -> str:
    if not isinstance(term, str):
        raise ValidationError("Search query is required and must be a string")
    term = term.strip()
    if not term:
        raise ValidationError("Search query is required and must be a string")
    if len(term) > MAX_TERM_LENGTH:
        raise ValidationError("Search query too long")

    cleaned = _WHITESPACE.sub(" ", _UNSAFE_TERM_CHARS.sub("", term)).strip()
    if not cleaned:
        raise ValidationError("Search query must contain letters or digits")
    return cleaned[:MAX_TERM_LENGTH]


def _clean_price(raw: Any, max_price: float) -> Optional[float]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        raise ValidationError("High price must be a positive number")
    try:
        value = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        raise ValidationError("High price must be a positive number") from None
    if not math.isfinite(value) or value < 0:
        raise ValidationError("High price must be a positive number")
    if value > max_price:
        raise ValidationError(f"High price must not exceed {max_price:g}")
    return round(value, PRICE_PRECISION)


def _clean_category(raw: Any, max_length: int) -> Optional[str]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError("Category must be a string")
    raw = raw.strip()
    if not raw:
        return None
    if len(raw) > max_length:
        raise ValidationError(f"Category must be at most {max_length} characters")
    return raw
