"""
HTML snapshot parsing for product pages.

Turns one document snapshot into a ``Page``: the parsed tree for selector
heuristics, the JSON-LD blocks in document order, meta tags, the document
title and the visible body text.

No site-specific or page-specific logic.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")
_DISPLAY_NONE_RE = re.compile(r"(?:^|;)\s*(?:display\s*:\s*none|visibility\s*:\s*hidden)", re.IGNORECASE)
_NON_RENDERED_TAGS = frozenset({"script", "style", "noscript", "template", "head", "title", "meta", "link"})


class PageNotReadyError(RuntimeError):
    """The page has no readable document yet."""


@dataclass
class Page:
    """One immutable snapshot of a document."""

    url: str
    soup: BeautifulSoup
    json_ld: list[Any] = field(default_factory=list)
    meta_names: dict[str, str] = field(default_factory=dict)
    meta_properties: dict[str, str] = field(default_factory=dict)
    title: str = ""
    body_text: str = ""

    @property
    def site(self) -> str:
        return urlparse(self.url).hostname or ""


def parse_page(html: str | None, url: str) -> Page:
    """Parse an HTML snapshot. Raises PageNotReadyError when there is nothing to read."""
    if not html or not html.strip():
        raise PageNotReadyError(f"No document available for {url}")

    soup = BeautifulSoup(html, "lxml")
    meta_names, meta_properties = _extract_meta(soup)
    title_tag = soup.find("title")

    return Page(
        url=url,
        soup=soup,
        json_ld=_extract_json_ld(soup),
        meta_names=meta_names,
        meta_properties=meta_properties,
        title=normalize_text(title_tag.get_text()) if title_tag else "",
        body_text=_extract_body_text(soup),
    )


def normalize_text(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------


def _extract_json_ld(soup: BeautifulSoup) -> list[Any]:
    """Parse every <script type="application/ld+json"> block, in document order.

    Blocks are kept as-is (object or array); malformed ones are skipped.
    """
    results: list[Any] = []
    for tag in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = tag.string
        if not text or not text.strip():
            continue
        try:
            data = json.loads(text.strip())
        except (json.JSONDecodeError, TypeError):
            logger.debug("Skipping malformed JSON-LD block")
            continue
        if isinstance(data, (dict, list)):
            results.append(data)
    return results


# ---------------------------------------------------------------------------
# Meta tags
# ---------------------------------------------------------------------------


def _extract_meta(soup: BeautifulSoup) -> tuple[dict[str, str], dict[str, str]]:
    """Collect <meta> content keyed by name= and by property= (first occurrence wins)."""
    names: dict[str, str] = {}
    properties: dict[str, str] = {}
    for meta in soup.find_all("meta"):
        content = meta.get("content")
        if not content or not isinstance(content, str) or not content.strip():
            continue
        name = meta.get("name")
        if isinstance(name, str) and name and name not in names:
            names[name] = content.strip()
        prop = meta.get("property")
        if isinstance(prop, str) and prop and prop not in properties:
            properties[prop] = content.strip()
    return names, properties


def get_meta(page: Page, name: str) -> str | None:
    """Look a meta value up by name=, then by property=."""
    return page.meta_names.get(name) or page.meta_properties.get(name)


# ---------------------------------------------------------------------------
# Body text extraction
# ---------------------------------------------------------------------------


def _extract_body_text(soup: BeautifulSoup) -> str:
    """Visible text of the page body, scripts and styles excluded."""
    body = soup.find("body") or soup

    # Work on a copy so we don't mutate the original
    body_copy = BeautifulSoup(str(body), "lxml")
    for tag_name in ("script", "style", "noscript", "template"):
        for el in body_copy.find_all(tag_name):
            el.decompose()

    return normalize_text(body_copy.get_text(separator=" "))


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------


def element_text(el: Tag) -> str:
    return normalize_text(el.get_text(separator=" "))


def _int_attr(el: Tag, *names: str) -> int | None:
    for name in names:
        value = el.get(name)
        if not isinstance(value, str):
            continue
        match = re.match(r"\s*(\d+)", value)
        if match:
            return int(match.group(1))
    return None


def is_rendered(el: Tag) -> bool:
    """Whether an element occupies space on the rendered page.

    Hosts that snapshot a live DOM annotate elements with
    ``data-rendered-width``/``data-rendered-height``; otherwise hidden
    ancestors and inline ``display: none`` are the signal.
    """
    width = _int_attr(el, "data-rendered-width")
    height = _int_attr(el, "data-rendered-height")
    if width == 0 and height == 0:
        return False

    node: Tag | None = el
    while node is not None and node.name != "[document]":
        if node.name in _NON_RENDERED_TAGS:
            return False
        if node.has_attr("hidden"):
            return False
        if node.name == "input" and str(node.get("type", "")).lower() == "hidden":
            return False
        style = node.get("style")
        if isinstance(style, str) and _DISPLAY_NONE_RE.search(style):
            return False
        node = node.parent
    return True


def image_size(img: Tag) -> tuple[int, int] | None:
    """Intrinsic size of an <img>, or None when the snapshot doesn't say.

    Host-annotated natural dimensions win over the width/height attributes.
    """
    width = _int_attr(img, "data-natural-width", "width")
    height = _int_attr(img, "data-natural-height", "height")
    if width is None or height is None:
        return None
    return width, height


def image_source(img: Tag, base_url: str) -> str | None:
    """The URL an <img> displays: current src, lazy-load src, then best srcset entry."""
    for attr in ("data-current-src", "src", "data-src"):
        url = img.get(attr)
        if url and isinstance(url, str) and url.strip() and not url.startswith("data:"):
            return resolve_url(url, base_url)

    best_srcset = _best_from_srcset(img.get("srcset") or img.get("data-srcset"))
    if best_srcset:
        return resolve_url(best_srcset, base_url)
    return None


def _best_from_srcset(srcset: str | None) -> str | None:
    """Parse an srcset attribute and return the highest-resolution URL.

    Handles both width descriptors (e.g. '800w') and pixel-density
    descriptors (e.g. '2x').  Falls back to the last entry when no
    descriptor is present.
    """
    if not srcset or not isinstance(srcset, str):
        return None

    best_url: str | None = None
    best_value: float = 0

    for entry in srcset.split(","):
        parts = entry.strip().split()
        if not parts:
            continue
        url = parts[0]

        value: float = 1
        if len(parts) >= 2:
            descriptor = parts[-1].strip().lower()
            try:
                value = float(descriptor[:-1]) if descriptor.endswith(("w", "x")) else 0
            except ValueError:
                value = 0

        if value >= best_value:
            best_url = url
            best_value = value

    return best_url


def resolve_url(url: str, base_url: str) -> str:
    """Absolute form of a possibly relative or protocol-relative URL."""
    url = url.strip()
    if url.startswith("//"):
        return "https:" + url
    return urljoin(base_url, url)


def canonical_url(page: Page) -> str | None:
    """The page's declared canonical URL (<link rel=canonical> or og:url)."""
    link = page.soup.find("link", rel="canonical")
    href = link.get("href") if link else None
    if isinstance(href, str) and href.strip():
        return resolve_url(href, page.url)
    return page.meta_properties.get("og:url")
