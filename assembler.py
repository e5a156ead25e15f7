"""
Product assembly: locate structured data, run the field cascades, score.

A located ProductGroup is reduced directly (title/description/images from
the group, price/sku from its variants). If that reduction fails, the
independent field extractors run instead.
"""

import logging
from typing import Any
from urllib.parse import urlparse

from models import PriceInfo, ProductRecord
from parser import Page, get_meta, resolve_url
from extractor import (
    brand_from_value,
    clean_value,
    find_brand,
    find_description,
    find_images,
    find_price,
    find_sku,
    find_title,
    image_urls_from_value,
    merge_images,
    price_from_offers,
    variant_sku,
)
from structured import ProductNode, flatten_materials, locate, normalize_materials

logger = logging.getLogger(__name__)

# Confidence weights per field present
TITLE_WEIGHT = 3
DESCRIPTION_WEIGHT = 1
IMAGES_WEIGHT = 2
PRICE_WEIGHT = 2
SKU_WEIGHT = 1
# Awarded when every scored field is present
COMPLETE_BONUS = 1
MAX_CONFIDENCE = 10

# Assembly paths reported by build_product_with_path
ASSEMBLED_FROM_GROUP = "product_group"
ASSEMBLED_FROM_FIELDS = "fields"

_VARIANT_MATERIAL_KEYS = ("material", "materials", "fabric", "materialComposition", "hasMaterial")


def score_confidence(
    title: str | None,
    description: str | None,
    images: list[str],
    price: PriceInfo | None,
    sku: str | None,
) -> int:
    """0-10 score from which fields were found; title weighs most."""
    score = 0
    if title:
        score += TITLE_WEIGHT
    if description:
        score += DESCRIPTION_WEIGHT
    if images:
        score += IMAGES_WEIGHT
    if price:
        score += PRICE_WEIGHT
    if sku:
        score += SKU_WEIGHT
    if title and description and images and price and sku:
        score += COMPLETE_BONUS
    return min(MAX_CONFIDENCE, score)


def _site_of(url: str) -> str:
    return urlparse(url).hostname or ""


# ---------------------------------------------------------------------------
# ProductGroup reduction
# ---------------------------------------------------------------------------


def _variant_price_and_sku(variants: list[dict[str, Any]]) -> tuple[PriceInfo | None, str | None]:
    """Price and sku from the first variant that has both.

    When no variant has both, each comes from the first variant carrying it.
    """
    first_price: PriceInfo | None = None
    first_sku: str | None = None
    for variant in variants:
        price = price_from_offers(variant.get("offers"))
        sku = variant_sku(variant)
        if price and sku:
            return price, sku
        first_price = first_price or price
        first_sku = first_sku or sku
    return first_price, first_sku


def _group_materials(node: ProductNode) -> list[str]:
    materials = list(node.materials)
    for variant in node.variants:
        for key in _VARIANT_MATERIAL_KEYS:
            materials.extend(flatten_materials(variant.get(key)))
    return normalize_materials(materials)


def extract_from_product_group(node: ProductNode, page: Page) -> ProductRecord | None:
    """Build a record straight from a ProductGroup node."""
    if not node.is_group:
        return None

    title = clean_value(node.get("name"))
    description = clean_value(node.get("description"))

    image_sources = [image_urls_from_value(node.get("image"))]
    image_sources.extend(image_urls_from_value(v.get("image")) for v in node.variants)
    images = merge_images(page, *image_sources)

    price, sku_from_variants = _variant_price_and_sku(node.variants)
    if price is None:
        # AggregateOffer on the group itself
        price = price_from_offers(node.get("offers"))
    sku = clean_value(node.get("sku")) or clean_value(node.get("productGroupID")) or sku_from_variants

    declared_url = clean_value(node.get("url"))
    url = resolve_url(declared_url, page.url) if declared_url else page.url

    return ProductRecord(
        title=title,
        description=description,
        images=images,
        price=price,
        sku=sku,
        brand=brand_from_value(node.get("brand")),
        materials=_group_materials(node),
        url=url,
        site=_site_of(url),
        confidence=score_confidence(title, description, images, price, sku),
        raw={"jsonld": node.data},
    )


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def _extract_independently(page: Page, node: ProductNode | None) -> ProductRecord:
    title = find_title(page, node)
    description = find_description(page, node)
    images = find_images(page, node)
    price = find_price(page, node)
    sku = find_sku(page, node)

    return ProductRecord(
        title=title,
        description=description,
        images=images,
        price=price,
        sku=sku,
        brand=find_brand(page, node),
        materials=node.materials if node is not None else [],
        url=page.url,
        site=page.site,
        confidence=score_confidence(title, description, images, price, sku),
        raw={
            "jsonld": page.json_ld,
            "og": {
                "title": get_meta(page, "og:title"),
                "description": get_meta(page, "og:description"),
                "image": get_meta(page, "og:image"),
            },
        },
    )


def build_product(page: Page) -> ProductRecord:
    """Produce one normalized ProductRecord for the page."""
    return build_product_with_path(page)[0]


def build_product_with_path(page: Page) -> tuple[ProductRecord, str]:
    """Like build_product, also naming the assembly path that produced the record."""
    node = locate(page)

    if node is not None and node.is_group:
        try:
            record = extract_from_product_group(node, page)
        except Exception:
            logger.debug(f"ProductGroup reduction failed on {page.url}, falling back", exc_info=True)
            record = None
        if record is not None:
            return record, ASSEMBLED_FROM_GROUP

    return _extract_independently(page, node), ASSEMBLED_FROM_FIELDS
