"""Tests for PageSession input guards."""

import pytest

from conftest import PAGE_URL, html_page
from parser import PageNotReadyError
from session import PUSH_STATE, PageSession, is_extractable_url


@pytest.mark.parametrize(
    "url, expected",
    [(PAGE_URL, True), ("file:///tmp/page.html", True), ("chrome://extensions", False), (5, False), (None, False)],
)
def test_is_extractable_url(url, expected) -> None:
    assert is_extractable_url(url) is expected


def test_unsupported_url_rejected() -> None:
    with pytest.raises(ValueError):
        PageSession(5)


@pytest.mark.parametrize("kind", ["reload", ["pushState"], None])
def test_unknown_navigation_kind_rejected(kind) -> None:
    session = PageSession(PAGE_URL, html_page(body="<h1>Page</h1>"))

    with pytest.raises(ValueError):
        session.navigate(kind)


def test_navigate_updates_url_and_snapshot() -> None:
    session = PageSession(PAGE_URL, html_page(body="<h1>First</h1>"))
    assert session.snapshot().url == PAGE_URL

    session.navigate(PUSH_STATE, url=PAGE_URL + "?v=2", html=html_page(body="<h1>Second</h1>"))

    page = session.snapshot()
    assert page.url == PAGE_URL + "?v=2"
    assert "Second" in page.body_text


def test_snapshot_without_document() -> None:
    with pytest.raises(PageNotReadyError):
        PageSession(PAGE_URL).snapshot()
