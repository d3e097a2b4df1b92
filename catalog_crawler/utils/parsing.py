from __future__ import annotations

import re
from decimal import Decimal
from typing import Optional
from urllib.parse import parse_qsl, quote_plus, urlencode, urljoin, urlparse, urlunparse

from bs4.element import Tag

_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_CODE_PREFIX = re.compile(r"^\s*(?:code|sku)\s*:", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing fragments.
    """
    parts = list(urlparse(url))
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


def absolute_url(base_url: str, href: str) -> str:
    return normalize_url(urljoin(base_url, href))


def with_query(url: str, **params: object) -> str:
    """
    Set query parameters on a URL, replacing existing values and keeping the order of the rest.
    """
    parts = list(urlparse(url))
    query = [(k, v) for k, v in parse_qsl(parts[4], keep_blank_values=True) if k not in params]
    query.extend((k, str(v)) for k, v in params.items())
    parts[4] = urlencode(query)
    return urlunparse(parts)


def search_url(base_url: str, template: str, brand: str, per_page: int) -> str:
    return base_url + template.format(brand=quote_plus(brand), per_page=per_page)


def text_of(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return node.get_text(" ", strip=True)


def to_decimal(raw: Optional[str]) -> Decimal:
    """
    Parse a displayed amount ("£6.03", "12 in stock", "1,250.00") into a Decimal.
    Thousands separators are dropped and the first number wins, so "£6.03 (£7.24 inc VAT)"
    is 6.03. Text without a number is 0.
    """
    if not raw:
        return Decimal(0)
    match = _NUMBER.search(raw.replace(",", ""))
    if match is None:
        return Decimal(0)
    return Decimal(match.group(0))


def clean_code(raw: str) -> str:
    return _CODE_PREFIX.sub("", raw, count=1).strip()


def parse_price(structured: Optional[str], displayed: Optional[str]) -> Decimal:
    """Prefer the structured `data-price` value over the displayed price text."""
    if structured and structured.strip():
        return to_decimal(structured)
    return to_decimal(displayed)


def parse_quantity(input_max: Optional[str], stock_text: Optional[str]) -> Decimal:
    """Prefer the quantity input's upper bound over the displayed stock text."""
    if input_max and input_max.strip():
        return to_decimal(input_max)
    return to_decimal(stock_text)
