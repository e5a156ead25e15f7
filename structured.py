"""
Structured-data (JSON-LD) product location.

Walks the page's JSON-LD blocks in document order and picks the product
node the rest of the engine reads from. A ProductGroup anywhere in the
document wins over a plain Product because it carries variant-level
price/sku/image data.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from parser import Page

logger = logging.getLogger(__name__)

PRODUCT = "product"
PRODUCT_GROUP = "productgroup"

# Properties vendors use for material/fabric composition
MATERIAL_KEYS = ("material", "materials", "materialComposition", "fabric", "hasMaterial")

_MATERIAL_SPLIT_RE = re.compile(r"[,;\n]")
_WS_RE = re.compile(r"\s+")


@dataclass
class ProductNode:
    """A located JSON-LD product. Lives for one extraction pass only."""

    kind: str  # PRODUCT or PRODUCT_GROUP
    data: dict[str, Any]
    materials: list[str] = field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.kind == PRODUCT_GROUP

    @property
    def variants(self) -> list[dict[str, Any]]:
        """Variant nodes of a group (hasVariant), non-dicts dropped."""
        has_variant = self.data.get("hasVariant")
        if isinstance(has_variant, dict):
            has_variant = [has_variant]
        if not isinstance(has_variant, list):
            return []
        return [v for v in has_variant if isinstance(v, dict)]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def iter_nodes(blocks: list[Any]) -> Iterator[dict[str, Any]]:
    """Yield every node of every block in document order, descending into @graph."""
    for block in blocks:
        yield from _walk(block, depth=0)


def _walk(value: Any, depth: int) -> Iterator[dict[str, Any]]:
    if depth > 10:
        return
    if isinstance(value, list):
        for item in value:
            yield from _walk(item, depth + 1)
    elif isinstance(value, dict):
        yield value
        graph = value.get("@graph")
        if graph is not None:
            yield from _walk(graph, depth + 1)


def node_types(node: dict[str, Any]) -> list[str]:
    """Lower-cased @type values; @type may be a string or a list of strings."""
    raw = node.get("@type")
    if isinstance(raw, str):
        return [raw.lower()]
    if isinstance(raw, list):
        return [t.lower() for t in raw if isinstance(t, str)]
    return []


def is_product_group(node: dict[str, Any]) -> bool:
    return any(PRODUCT_GROUP in t for t in node_types(node))


def is_product(node: dict[str, Any]) -> bool:
    """A plain product: type mentions "product" but is not a product group."""
    types = node_types(node)
    return any(PRODUCT in t for t in types) and not any(PRODUCT_GROUP in t for t in types)


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------


def find_product_group(page: Page) -> ProductNode | None:
    for node in iter_nodes(page.json_ld):
        if is_product_group(node):
            return _attach(node, PRODUCT_GROUP)
    return None


def find_product(page: Page) -> ProductNode | None:
    for node in iter_nodes(page.json_ld):
        if is_product(node):
            return _attach(node, PRODUCT)
    return None


def locate(page: Page) -> ProductNode | None:
    """The node to extract from: a ProductGroup if any, else the first Product."""
    node = find_product_group(page) or find_product(page)
    if node is None:
        logger.debug(f"No JSON-LD product among {len(page.json_ld)} blocks on {page.url}")
    return node


def _attach(node: dict[str, Any], kind: str) -> ProductNode:
    return ProductNode(kind=kind, data=node, materials=extract_materials(node))


# ---------------------------------------------------------------------------
# Materials
# ---------------------------------------------------------------------------


def extract_materials(node: dict[str, Any]) -> list[str]:
    """Material names mentioned on a node or its @graph children."""
    found: list[str] = []
    for key in MATERIAL_KEYS:
        found.extend(flatten_materials(node.get(key)))

    graph = node.get("@graph")
    if isinstance(graph, dict):
        graph = [graph]
    if isinstance(graph, list):
        for child in graph:
            if isinstance(child, dict):
                for key in MATERIAL_KEYS:
                    found.extend(flatten_materials(child.get(key)))

    return normalize_materials(found)


def flatten_materials(value: Any, depth: int = 0) -> list[str]:
    """Flatten a material value: split strings, reduce objects to a name, flatten lists."""
    if value is None or depth > 8:
        return []
    if isinstance(value, str):
        return [part.strip() for part in _MATERIAL_SPLIT_RE.split(value) if part.strip()]
    if isinstance(value, list):
        result: list[str] = []
        for item in value:
            result.extend(flatten_materials(item, depth + 1))
        return result
    if isinstance(value, dict):
        name = value.get("name") or value.get("material") or value.get("materialName")
        return flatten_materials(name, depth + 1)
    return []


def normalize_materials(materials: list[str]) -> list[str]:
    normalized = (_WS_RE.sub(" ", m).strip() for m in materials)
    return list(dict.fromkeys(m for m in normalized if m))
