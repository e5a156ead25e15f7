"""
Field extractors: one priority-ordered cascade per product field.

Each cascade runs structured data -> page metadata -> attribute/selector
heuristics -> last-resort text search, and returns None (or an empty list)
when no strategy matches. Nothing here raises on a missed strategy.
"""

import html as html_lib
import logging
from typing import Any

from bs4 import Tag

from config import MAX_IMAGES, MIN_IMAGE_SIDE, MIN_TITLE_LENGTH
from models import PriceInfo
from parser import Page, element_text, get_meta, image_size, image_source, is_rendered, normalize_text, resolve_url
from pricing import PAGE_TEXT_PRICE_RE, parse_amount, parse_price
from structured import ProductNode

logger = logging.getLogger(__name__)

TITLE_META = ("og:title", "twitter:title", "title")
TITLE_SELECTORS = ("[itemprop='name']", "h1.product-title", ".product-title", "h1", ".product h1", ".product-name")

DESCRIPTION_META = ("og:description", "description", "twitter:description")

IMAGE_META = ("og:image", "twitter:image")

BRAND_SELECTORS = "[itemprop='brand'], .brand, [class*='brand']"
SKU_SELECTORS = "[itemprop='sku'], .sku, [class*='sku']"

PRICE_META = ("product:price:amount", "og:price:amount", "price", "product:price", "twitter:data1")
CURRENCY_META = ("product:price:currency", "og:price:currency", "price:currency")
PRICE_ATTR_SELECTORS = (
    "[itemprop='price']",
    "[data-price]",
    "[data-price-amount]",
    "[data-priceamount]",
    "[data-product-price]",
)
PRICE_HEURISTIC_SELECTORS = (
    "[class*='price'], [id*='price'], .product-price, .price, [class*='amount'], [data-test*='price']"
)
# Offer keys holding the amount; lowPrice covers AggregateOffer
_OFFER_PRICE_KEYS = ("price", "lowPrice")

# Strategy names reported by find_price_with_source
PRICE_FROM_STRUCTURED = "structured"
PRICE_FROM_VARIANTS = "variants"
PRICE_FROM_META = "meta"
PRICE_FROM_ATTRIBUTES = "attributes"
PRICE_FROM_HEURISTICS = "heuristics"
PRICE_FROM_PAGE_TEXT = "page_text"


def clean_value(value: Any) -> str | None:
    """Non-empty, whitespace-normalized string form of a scalar, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = normalize_text(html_lib.unescape(value))
    return value or None


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


# ---------------------------------------------------------------------------
# Title / description
# ---------------------------------------------------------------------------


def find_title(page: Page, node: ProductNode | None) -> str | None:
    if node is not None:
        title = clean_value(node.get("name"))
        if title:
            return title

    for name in TITLE_META:
        title = clean_value(get_meta(page, name))
        if title:
            return title

    for selector in TITLE_SELECTORS:
        el = page.soup.select_one(selector)
        if el is None:
            continue
        text = element_text(el)
        if len(text) > MIN_TITLE_LENGTH:
            return text

    return page.title or None


def find_description(page: Page, node: ProductNode | None) -> str | None:
    if node is not None:
        desc = clean_value(node.get("description"))
        if desc:
            return desc

    for name in DESCRIPTION_META:
        desc = clean_value(get_meta(page, name))
        if desc:
            return desc

    el = page.soup.select_one("[itemprop='description']")
    if el is not None:
        return clean_value(el.get("content")) or clean_value(element_text(el))
    return None


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def image_urls_from_value(value: Any) -> list[str]:
    """Image URLs from a JSON-LD image value: string, list, or ImageObject."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        urls: list[str] = []
        for item in value:
            urls.extend(image_urls_from_value(item))
        return urls
    if isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl") or value.get("@id")
        return [url] if isinstance(url, str) and url.strip() else []
    return []


def merge_images(page: Page, *sources: list[str]) -> list[str]:
    """Resolve, de-duplicate in first-seen order and cap the image list."""
    result: list[str] = []
    for urls in sources:
        for url in urls:
            url = resolve_url(url, page.url)
            if url and url not in result:
                result.append(url)
            if len(result) >= MAX_IMAGES:
                return result
    return result


def _rendered_images(page: Page) -> list[str]:
    """<img> sources at least MIN_IMAGE_SIDE on both sides (skips icons, decorations)."""
    urls: list[str] = []
    for img in page.soup.find_all("img"):
        size = image_size(img)
        if size is None or size[0] < MIN_IMAGE_SIDE or size[1] < MIN_IMAGE_SIDE:
            continue
        src = image_source(img, page.url)
        if src:
            urls.append(src)
    return urls


def find_images(page: Page, node: ProductNode | None) -> list[str]:
    structured = image_urls_from_value(node.get("image")) if node is not None else []
    meta = [v for v in (get_meta(page, name) for name in IMAGE_META) if v]
    return merge_images(page, structured, meta, _rendered_images(page))


# ---------------------------------------------------------------------------
# Brand / SKU
# ---------------------------------------------------------------------------


def brand_from_value(value: Any) -> str | None:
    value = _first(value)
    if isinstance(value, dict):
        value = value.get("name")
    return clean_value(value)


def _selector_value(page: Page, selectors: str) -> str | None:
    el = page.soup.select_one(selectors)
    if el is None:
        return None
    return clean_value(el.get("content")) or clean_value(element_text(el))


def find_brand(page: Page, node: ProductNode | None) -> str | None:
    if node is not None:
        brand = brand_from_value(node.get("brand"))
        if brand:
            return brand
    return _selector_value(page, BRAND_SELECTORS)


def variant_sku(variant: dict[str, Any]) -> str | None:
    """SKU of a variant: its offer's sku first, then the variant's own."""
    offer = _first(variant.get("offers"))
    if isinstance(offer, dict):
        sku = clean_value(offer.get("sku"))
        if sku:
            return sku
    return clean_value(variant.get("sku"))


def find_sku(page: Page, node: ProductNode | None) -> str | None:
    if node is not None:
        sku = clean_value(node.get("sku"))
        if sku:
            return sku
        for variant in node.variants:
            sku = variant_sku(variant)
            if sku:
                return sku
    return _selector_value(page, SKU_SELECTORS)


# ---------------------------------------------------------------------------
# Price
# ---------------------------------------------------------------------------


def price_from_offer(offer: Any) -> PriceInfo | None:
    """PriceInfo from one schema.org Offer, reading nested priceSpecification too."""
    if not isinstance(offer, dict):
        return None

    raw = None
    currency = clean_value(offer.get("priceCurrency"))
    for key in _OFFER_PRICE_KEYS:
        if offer.get(key) is not None:
            raw = offer[key]
            break

    if raw is None or parse_amount(raw) is None:
        spec = _first(offer.get("priceSpecification"))
        if isinstance(spec, dict):
            raw = spec.get("price")
            currency = currency or clean_value(spec.get("priceCurrency"))

    amount = parse_amount(raw)
    if amount is None:
        return None
    return PriceInfo(raw=str(raw), amount=amount, currency=currency)


def price_from_offers(offers: Any) -> PriceInfo | None:
    """First usable price among an offers value (single Offer or list)."""
    if isinstance(offers, dict):
        offers = [offers]
    if not isinstance(offers, list):
        return None
    for offer in offers:
        price = price_from_offer(offer)
        if price:
            return price
    return None


def _currency_hint(page: Page) -> str | None:
    """Currency declared next to a bare amount (meta or itemprop=priceCurrency)."""
    for name in CURRENCY_META:
        currency = clean_value(get_meta(page, name))
        if currency:
            return currency
    el = page.soup.select_one("[itemprop='priceCurrency']")
    if el is not None:
        return clean_value(el.get("content")) or clean_value(element_text(el))
    return None


def _parse_explicit_price(page: Page, candidate: str) -> PriceInfo | None:
    """Parse a value from a field that is known to hold a price.

    Such fields often hold a bare number ("19.99"); the currency then comes
    from the page's currency declaration.
    """
    price = parse_price(candidate)
    if price:
        return price
    if not _is_bare_number(candidate):
        return None
    amount = parse_amount(candidate)
    if amount is None:
        return None
    return PriceInfo(raw=normalize_text(candidate), amount=amount, currency=_currency_hint(page))


def _is_bare_number(text: str) -> bool:
    text = text.strip()
    return bool(text) and all(c.isdigit() or c in ".," or c.isspace() for c in text)


def _price_from_meta(page: Page) -> PriceInfo | None:
    for name in PRICE_META:
        value = get_meta(page, name)
        if value:
            price = _parse_explicit_price(page, value)
            if price:
                return price
    return None


def _price_from_attributes(page: Page) -> PriceInfo | None:
    for selector in PRICE_ATTR_SELECTORS:
        el = page.soup.select_one(selector)
        if el is None:
            continue
        candidates = [
            el.get("data-price"),
            el.get("data-price-amount"),
            el.get("content"),
            element_text(el),
        ]
        for candidate in candidates:
            if isinstance(candidate, str) and candidate.strip():
                price = _parse_explicit_price(page, candidate)
                if price:
                    return price
    return None


def _heuristic_candidates(page: Page) -> list[str]:
    candidates: list[str] = []
    for el in page.soup.select(PRICE_HEURISTIC_SELECTORS):
        if not isinstance(el, Tag) or not is_rendered(el):
            continue
        text = el.get("data-price") or el.get("data-price-amount") or el.get("content") or element_text(el)
        if isinstance(text, str) and text.strip():
            candidates.append(text.strip())
    return candidates


def _price_from_heuristics(page: Page) -> PriceInfo | None:
    for candidate in _heuristic_candidates(page):
        price = parse_price(candidate)
        if price:
            return price
    return None


def _price_from_page_text(page: Page) -> PriceInfo | None:
    match = PAGE_TEXT_PRICE_RE.search(page.body_text)
    if not match:
        return None
    return parse_price(match.group(0))


def find_price_with_source(page: Page, node: ProductNode | None) -> tuple[PriceInfo | None, str | None]:
    """Run the price cascade; returns the price and the strategy that produced it."""
    if node is not None:
        price = price_from_offers(node.get("offers"))
        if price:
            return price, PRICE_FROM_STRUCTURED
        for variant in node.variants:
            price = price_from_offers(variant.get("offers"))
            if price:
                return price, PRICE_FROM_VARIANTS

    strategies = (
        (PRICE_FROM_META, _price_from_meta),
        (PRICE_FROM_ATTRIBUTES, _price_from_attributes),
        (PRICE_FROM_HEURISTICS, _price_from_heuristics),
        (PRICE_FROM_PAGE_TEXT, _price_from_page_text),
    )
    for source, strategy in strategies:
        price = strategy(page)
        if price:
            return price, source

    logger.debug(f"No price found on {page.url}")
    return None, None


def find_price(page: Page, node: ProductNode | None) -> PriceInfo | None:
    return find_price_with_source(page, node)[0]
