"""Page fetching over HTTP for the CLI and the /api/fetch endpoint."""

import httpx

from config import FETCH_TIMEOUT, USER_AGENT


def new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(headers={"User-Agent": USER_AGENT}, timeout=FETCH_TIMEOUT)


async def fetch_html(url: str, client: httpx.AsyncClient | None = None) -> tuple[str, str]:
    """GET a page; returns (final_url, html) after redirects."""
    if client is None:
        async with new_client() as own_client:
            return await fetch_html(url, own_client)
    resp = await client.get(url, follow_redirects=True)
    resp.raise_for_status()
    return str(resp.url), resp.text
