from __future__ import annotations

import math
import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

# First number in the text; thousands separators allowed, one decimal part.
_PRICE_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?")
_WHITESPACE = re.compile(r"\s+")


def parse_price(text: Optional[str]) -> Optional[float]:
    """
    Turn storefront price text into a number.

    Currency symbols, labels and thousands separators are dropped, so
    "₹1,299.00" and "Rs. 1299" both give 1299.0. Returns None when nothing
    numeric is left or the value is not finite.
    """
    if not text:
        return None
    match = _PRICE_NUMBER.search(text)
    if not match:
        return None
    try:
        value = float(match.group(0).replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def format_price(value: Optional[float]) -> str:
    """Render a price for a storefront URL: 2000.0 -> "2000", 1999.5 -> "1999.50"."""
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def normalize_title(title: str) -> str:
    """Case- and whitespace-insensitive form used for de-duplication."""
    return _WHITESPACE.sub(" ", title).strip().lower()


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing the fragment.
    """
    parts = list(urlparse(url))
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


def absolutize(href: str, origin: str) -> str:
    """Resolve a storefront-relative link against the storefront origin."""
    href = href.strip()
    if not urlparse(href).scheme:
        # Bare paths like "shoes/nike/123/buy" are rooted at the origin.
        href = "/" + href.lstrip("/")
    return normalize_url(urljoin(origin, href))


def strip_query(url: str) -> str:
    parts = list(urlparse(url))
    parts[4] = ""
    return urlunparse(parts)


def add_query_param(url: str, key: str, value: str) -> str:
    """Set key=value on the URL's query string, replacing an existing value."""
    parts = list(urlparse(url))
    query = [(k, v) for k, v in parse_qsl(parts[4], keep_blank_values=True) if k != key]
    query.append((key, value))
    parts[4] = urlencode(query)
    return urlunparse(parts)

