"""
Price text parsing.

Turns free-form price text ("€12,50", "USD 1,234.56", "19.99 kr SEK") into a
PriceInfo with a normalized decimal amount and the currency symbol or code
found in the text.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from models import PriceInfo

CURRENCY_SYMBOLS = "€$£¥₹₩฿"
CURRENCY_CODES = (
    "USD", "EUR", "GBP", "JPY", "CNY", "AUD", "CAD", "CHF", "DKK", "NOK", "SEK", "INR", "RON",
)

_SYM = f"[{re.escape(CURRENCY_SYMBOLS)}]"
_CODE = r"\b(?:" + "|".join(CURRENCY_CODES) + r")\b"
# Digits with "." / "," separators; a space only counts when a 3-digit group follows
_NUMBER = r"(\d[\d.,]*(?: \d{3}(?!\d)[\d.,]*)*)"

# Tried in order; the first match decides the number
_PRICE_PATTERNS = [
    re.compile(_SYM + r"\s*" + _NUMBER),
    re.compile(_NUMBER + r"\s*" + _SYM),
    re.compile(_CODE + r"\s*" + _NUMBER, re.IGNORECASE),
    re.compile(_NUMBER + r"\s*" + _CODE, re.IGNORECASE),
]
_SYMBOL_RE = re.compile(_SYM)
_CODE_RE = re.compile(_CODE, re.IGNORECASE)

_THOUSANDS_SEP_RE = re.compile(r"[, ](?=\d{3}(?!\d))")
_FINAL_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_WS_RE = re.compile(r"\s+")

# Last-resort scan of visible page text
PAGE_TEXT_PRICE_RE = re.compile(_SYM + r" ?\d[\d.,\s]*")


def parse_price(text: Any) -> PriceInfo | None:
    """Parse one candidate string. Returns None unless it carries a currency and a positive amount."""
    if not text or not isinstance(text, str):
        return None
    raw = _WS_RE.sub(" ", text).strip()

    for pattern in _PRICE_PATTERNS:
        match = pattern.search(raw)
        if not match:
            continue
        amount = parse_amount(match.group(1))
        if amount:
            return PriceInfo(raw=raw, amount=amount, currency=find_currency(raw))
    return None


def find_currency(text: str) -> str | None:
    """Currency mentioned anywhere in text; a symbol beats a code."""
    symbol = _SYMBOL_RE.search(text)
    if symbol:
        return symbol.group(0)
    code = _CODE_RE.search(text)
    if code:
        return code.group(0).upper()
    return None


def parse_amount(value: Any) -> str | None:
    """Normalize a bare number ("1,234.50", "12,50", 19.99) to a decimal string.

    Returns None when no positive amount can be read.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = _format_number(value)
    if not isinstance(value, str):
        return None

    num = _WS_RE.sub(" ", value).strip()
    if "," in num and "." not in num and num.count(",") == 1:
        # Decimal comma: 12,50 -> 12.50
        num = num.replace(" ", "").replace(",", ".")
    else:
        num = _THOUSANDS_SEP_RE.sub("", num)

    match = _FINAL_NUMBER_RE.search(num)
    if not match:
        return None
    amount = match.group(0)
    try:
        if Decimal(amount) <= 0:
            return None
    except InvalidOperation:
        return None
    return amount


def _format_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    # Avoid exponent notation for small/large floats
    return format(Decimal(repr(value)), "f")
