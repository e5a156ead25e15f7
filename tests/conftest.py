import json

import pytest

from parser import Page, parse_page

PAGE_URL = "https://shop.example.com/products/linen-shirt"


def html_page(body: str = "", head: str = "", json_ld: list | None = None, title: str = "") -> str:
    """Assemble a small HTML document for extraction tests."""
    scripts = ""
    for block in json_ld or []:
        text = block if isinstance(block, str) else json.dumps(block)
        scripts += f'<script type="application/ld+json">{text}</script>\n'
    title_tag = f"<title>{title}</title>" if title else ""
    return f"<html><head>{title_tag}{head}{scripts}</head><body>{body}</body></html>"


@pytest.fixture
def make_page():
    def _make(body: str = "", head: str = "", json_ld: list | None = None, title: str = "", url: str = PAGE_URL) -> Page:
        return parse_page(html_page(body=body, head=head, json_ld=json_ld, title=title), url)

    return _make
