"""Tests for the per-field extraction cascades."""

import pytest

import extractor
from extractor import (
    PRICE_FROM_ATTRIBUTES,
    PRICE_FROM_HEURISTICS,
    PRICE_FROM_META,
    PRICE_FROM_PAGE_TEXT,
    PRICE_FROM_STRUCTURED,
    PRICE_FROM_VARIANTS,
    find_brand,
    find_description,
    find_images,
    find_price_with_source,
    find_sku,
    find_title,
)
from structured import locate

# ---------------------------------------------------------------------------
# Title / description
# ---------------------------------------------------------------------------


def test_title_prefers_structured_name(make_page) -> None:
    page = make_page(
        head='<meta property="og:title" content="OG Title">',
        json_ld=[{"@type": "Product", "name": "  Linen &amp; Cotton Shirt "}],
    )

    assert find_title(page, locate(page)) == "Linen & Cotton Shirt"


def test_title_from_meta_then_selectors(make_page) -> None:
    page = make_page(head='<meta name="twitter:title" content="Twitter Title">', body="<h1>Heading</h1>")
    assert find_title(page, None) == "Twitter Title"

    page = make_page(body='<div class="product"><h1 class="product-title">Trail Runner 2</h1></div>')
    assert find_title(page, None) == "Trail Runner 2"


def test_short_heading_falls_back_to_document_title(make_page) -> None:
    page = make_page(body="<h1>Hi</h1>", title="Document Title")

    assert find_title(page, None) == "Document Title"


def test_no_title_anywhere(make_page) -> None:
    assert find_title(make_page(), None) is None


def test_description_cascade(make_page) -> None:
    page = make_page(head='<meta name="description" content="Meta description">')
    assert find_description(page, None) == "Meta description"

    page = make_page(body='<div itemprop="description"><p>Soft   washed linen.</p></div>')
    assert find_description(page, None) == "Soft washed linen."

    assert find_description(make_page(), None) is None


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def test_images_merge_sources_in_order(make_page) -> None:
    page = make_page(
        head='<meta property="og:image" content="https://cdn.example.com/a.jpg">',
        json_ld=[{"@type": "Product", "image": ["https://cdn.example.com/a.jpg", {"url": "https://cdn.example.com/b.jpg"}]}],
        body=(
            '<img src="/img/c.jpg" width="300" height="300">'
            '<img src="/img/icon.png" width="50" height="50">'
            '<img src="/img/unknown.jpg">'
            '<img src="/img/d.jpg" data-natural-width="800" data-natural-height="600" width="80" height="60">'
        ),
    )

    assert find_images(page, locate(page)) == [
        "https://cdn.example.com/a.jpg",
        "https://cdn.example.com/b.jpg",
        "https://shop.example.com/img/c.jpg",
        "https://shop.example.com/img/d.jpg",
    ]


def test_images_capped_and_unique(make_page) -> None:
    body = "".join(f'<img src="https://cdn.example.com/{i % 8}.jpg" width="400" height="400">' for i in range(20))
    page = make_page(body=body)

    images = find_images(page, None)

    assert len(images) == 6
    assert len(set(images)) == 6


# ---------------------------------------------------------------------------
# Brand / SKU
# ---------------------------------------------------------------------------


def test_brand_from_structured_object_or_markup(make_page) -> None:
    page = make_page(json_ld=[{"@type": "Product", "brand": {"@type": "Brand", "name": "Acme"}}])
    assert find_brand(page, locate(page)) == "Acme"

    page = make_page(body='<span itemprop="brand">Acme Co</span>')
    assert find_brand(page, None) == "Acme Co"

    assert find_brand(make_page(body="<p>nothing</p>"), None) is None


def test_sku_from_group_variant_offer(make_page) -> None:
    page = make_page(
        json_ld=[{"@type": "ProductGroup", "hasVariant": [{"name": "no sku"}, {"offers": {"sku": "V-2"}, "sku": "X"}]}]
    )

    assert find_sku(page, locate(page)) == "V-2"


def test_sku_from_markup(make_page) -> None:
    page = make_page(body='<p>SKU: <span class="product-sku"> AB-1 </span></p>')

    assert find_sku(page, None) == "AB-1"


# ---------------------------------------------------------------------------
# Price cascade
# ---------------------------------------------------------------------------


def test_structured_offer_price(make_page) -> None:
    page = make_page(
        head='<meta property="product:price:amount" content="99.00">',
        json_ld=[{"@type": "Product", "offers": {"price": "19.99", "priceCurrency": "USD"}}],
    )

    price, source = find_price_with_source(page, locate(page))

    assert source == PRICE_FROM_STRUCTURED
    assert price.amount == "19.99"
    assert price.currency == "USD"
    assert price.raw == "19.99"


def test_offer_list_and_price_specification(make_page) -> None:
    page = make_page(
        json_ld=[
            {
                "@type": "Product",
                "offers": [
                    {"price": "n/a"},
                    {"priceSpecification": [{"price": 25, "priceCurrency": "EUR"}]},
                ],
            }
        ]
    )

    price, _ = find_price_with_source(page, locate(page))

    assert price.amount == "25"
    assert price.currency == "EUR"


def test_group_variant_offers_in_turn(make_page) -> None:
    page = make_page(
        json_ld=[
            {
                "@type": "ProductGroup",
                "hasVariant": [{"offers": {"price": "0"}}, {"offers": [{"price": 30.5, "priceCurrency": "GBP"}]}],
            }
        ]
    )

    price, source = find_price_with_source(page, locate(page))

    assert source == PRICE_FROM_VARIANTS
    assert price.amount == "30.5"
    assert price.currency == "GBP"


def test_meta_price_uses_declared_currency(make_page) -> None:
    page = make_page(
        head=(
            '<meta property="product:price:amount" content="49.00">'
            '<meta property="product:price:currency" content="EUR">'
        )
    )

    price, source = find_price_with_source(page, None)

    assert source == PRICE_FROM_META
    assert price.amount == "49.00"
    assert price.currency == "EUR"


def test_attribute_price(make_page) -> None:
    page = make_page(
        body='<meta itemprop="priceCurrency" content="USD"><span itemprop="price" content="12.00">$12.00</span>'
    )

    price, source = find_price_with_source(page, None)

    assert source == PRICE_FROM_ATTRIBUTES
    assert price.amount == "12.00"
    assert price.currency == "USD"


def test_heuristic_price_skips_hidden_elements(make_page) -> None:
    page = make_page(
        body=(
            '<div class="product-price" style="display: none">€99,00</div>'
            '<div hidden><span class="price">€88,00</span></div>'
            '<span class="sale-price" data-rendered-width="0" data-rendered-height="0">€77,00</span>'
            '<div class="price-box">€12,50</div>'
        )
    )

    price, source = find_price_with_source(page, None)

    assert source == PRICE_FROM_HEURISTICS
    assert price.amount == "12.50"
    assert price.currency == "€"


def test_page_text_is_last_resort(make_page) -> None:
    page = make_page(body="<p>Only today: £7.99 with code SUMMER</p><script>var p = '$1';</script>")

    price, source = find_price_with_source(page, None)

    assert source == PRICE_FROM_PAGE_TEXT
    assert price.amount == "7.99"
    assert price.currency == "£"


def test_no_price(make_page) -> None:
    assert find_price_with_source(make_page(body="<p>Sold out</p>"), None) == (None, None)


def test_structured_price_skips_fallbacks(make_page, monkeypatch) -> None:
    def fail(page):
        raise AssertionError("fallback strategy should not run")

    for name in ("_price_from_meta", "_price_from_attributes", "_price_from_heuristics", "_price_from_page_text"):
        monkeypatch.setattr(extractor, name, fail)

    page = make_page(json_ld=[{"@type": "Product", "offers": {"price": "19.99", "priceCurrency": "USD"}}])

    assert extractor.find_price(page, locate(page)).amount == "19.99"


@pytest.mark.parametrize("markup", ['<span class="price">call us</span>', '<span data-price="">€</span>'])
def test_unparseable_candidates_fall_through(make_page, markup) -> None:
    assert find_price_with_source(make_page(body=markup), None) == (None, None)
