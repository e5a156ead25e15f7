import re
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, Field, field_validator

from config import MAX_IMAGES

_AMOUNT_RE = re.compile(r"^\d+(?:\.\d+)?$")
_WS_RE = re.compile(r"\s+")


class PriceInfo(BaseModel):
    raw: str  # original matched text
    amount: str  # normalized decimal: digits with at most one "."
    currency: str | None = None  # symbol ("€") or code ("EUR")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        if not _AMOUNT_RE.match(v):
            raise ValueError(f"Price amount '{v}' is not a normalized decimal")
        try:
            if Decimal(v) <= 0:
                raise ValueError(f"Price amount '{v}' is not positive")
        except InvalidOperation as e:
            raise ValueError(f"Price amount '{v}' is not a decimal") from e
        return v


class ProductRecord(BaseModel):
    """Normalized product read from one page.

    Built fresh on every extraction pass; ``raw`` carries the source payloads
    for debugging and is never read by extraction logic.
    """

    title: str | None = None
    description: str | None = None
    images: list[str] = []
    price: PriceInfo | None = None
    sku: str | None = None
    brand: str | None = None
    materials: list[str] = []  # set semantics, first-seen order
    url: str
    site: str
    confidence: int = Field(default=0, ge=0, le=10)
    raw: dict[str, Any] = {}

    @field_validator("images")
    @classmethod
    def dedup_and_cap_images(cls, v: list[str]) -> list[str]:
        result: list[str] = []
        for url in v:
            url = url.strip()
            if url and url not in result:
                result.append(url)
            if len(result) >= MAX_IMAGES:
                break
        return result

    @field_validator("materials")
    @classmethod
    def normalize_materials(cls, v: list[str]) -> list[str]:
        normalized = [_WS_RE.sub(" ", m).strip() for m in v]
        return list(dict.fromkeys(m for m in normalized if m))

    def fingerprint_fields(self) -> dict[str, str | None]:
        """Fields whose change is significant enough to notify about."""
        return {
            "title": self.title,
            "sku": self.sku,
            "price": self.price.amount if self.price else None,
            "url": self.url,
        }


# ---------------------------------------------------------------------------
# Message payloads
# ---------------------------------------------------------------------------


class ExtractResponse(BaseModel):
    """Answer to an on-demand extraction request."""

    ok: bool
    product: ProductRecord | None = None
    error: str | None = None


class ExtractRequest(BaseModel):
    url: str
    html: str


class FetchRequest(BaseModel):
    url: str
