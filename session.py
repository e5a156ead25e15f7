"""
Live page state for one document.

The host that renders the page (browser extension, headless browser, test)
pushes what it observes into a PageSession: the current HTML, history
navigations and content mutations. Listeners registered here are the
engine's navigation hooks and content observer; they stay installed for
the lifetime of the session.
"""

import logging
from collections.abc import Callable
from urllib.parse import urlparse

from config import ALLOWED_URL_SCHEMES
from parser import Page, PageNotReadyError, parse_page

logger = logging.getLogger(__name__)

# Navigation kinds a host can report
PUSH_STATE = "pushState"
REPLACE_STATE = "replaceState"
POP_STATE = "popstate"
HASH_CHANGE = "hashchange"
NAVIGATION_KINDS = frozenset({PUSH_STATE, REPLACE_STATE, POP_STATE, HASH_CHANGE})

Listener = Callable[[], None]


def is_extractable_url(url: str) -> bool:
    """Only web and file pages are read; browser-internal pages are not."""
    return isinstance(url, str) and urlparse(url).scheme.lower() in ALLOWED_URL_SCHEMES


class PageSession:
    """Current document of one page plus its change signals."""

    def __init__(self, url: str, html: str | None = None):
        if not is_extractable_url(url):
            raise ValueError(f"Unsupported page URL: {url}")
        self.url = url
        self._html = html
        self._page: Page | None = None
        self._navigation_listeners: list[Listener] = []
        self._mutation_listeners: list[Listener] = []

    # ----- Snapshot -----

    def snapshot(self) -> Page:
        """Parsed view of the current document (cached until the next change)."""
        if self._page is None or self._page.url != self.url:
            if self._html is None:
                raise PageNotReadyError(f"No document loaded for {self.url}")
            self._page = parse_page(self._html, self.url)
        return self._page

    @property
    def html(self) -> str | None:
        return self._html

    # ----- Hooks -----

    def on_navigation(self, listener: Listener) -> None:
        self._navigation_listeners.append(listener)

    def on_mutation(self, listener: Listener) -> None:
        self._mutation_listeners.append(listener)

    # ----- Host signals -----

    def navigate(self, kind: str, url: str | None = None, html: str | None = None) -> None:
        """History mutation (pushState/replaceState) or pop/hash navigation."""
        if not isinstance(kind, str) or kind not in NAVIGATION_KINDS:
            raise ValueError(f"Unknown navigation kind: {kind}")
        if url is not None:
            if not is_extractable_url(url):
                raise ValueError(f"Unsupported page URL: {url}")
            self.url = url
        if html is not None:
            self._set_html(html)
        self._page = None
        logger.debug(f"{kind} -> {self.url}")
        self._fire(self._navigation_listeners)

    def mutate(self, html: str) -> None:
        """The document content changed without navigation."""
        self._set_html(html)
        self._fire(self._mutation_listeners)

    def _set_html(self, html: str) -> None:
        self._html = html
        self._page = None

    def _fire(self, listeners: list[Listener]) -> None:
        for listener in listeners:
            listener()
