"""
Batch product extraction.

Extracts every HTML page in data/ plus any URLs given on the command line
(fetched concurrently with httpx), runs each through parse -> locate ->
extract -> assemble, and writes the records to products.json.
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import time
from pathlib import Path

import httpx

from assembler import build_product
from config import DATA_DIR, OUTPUT_FILE
from fetcher import fetch_html, new_client
from models import ProductRecord
from parser import canonical_url, parse_page

logger = logging.getLogger(__name__)


def extract_file(filepath: Path) -> ProductRecord:
    """Extract one saved page. Its canonical URL stands in for the file path when declared."""
    logger.info(f"Processing {filepath.name}...")
    html = filepath.read_text(encoding="utf-8")

    page = parse_page(html, filepath.resolve().as_uri())
    declared = canonical_url(page)
    if declared and declared.startswith(("http://", "https://")):
        page = dataclasses.replace(page, url=declared)

    product = build_product(page)
    _log_result(product)
    return product


async def extract_url(url: str, client: httpx.AsyncClient) -> ProductRecord:
    logger.info(f"Fetching {url}...")
    final_url, html = await fetch_html(url, client)
    product = build_product(parse_page(html, final_url))
    _log_result(product)
    return product


def _log_result(product: ProductRecord) -> None:
    price = f"{product.price.amount} {product.price.currency or '?'}" if product.price else "no price"
    logger.info(
        f"  Result: {product.title} ({product.brand}) - {price} | "
        f"sku={product.sku} | Images: {len(product.images)} | "
        f"Materials: {len(product.materials)} | confidence={product.confidence}"
    )


async def process_all(urls: list[str]) -> tuple[list[tuple[str, ProductRecord]], int]:
    """Extract all data/ files and the given URLs.

    Returns ([(source, product)], failure_count).
    """
    html_files = sorted(DATA_DIR.glob("*.html"))
    logger.info(f"Found {len(html_files)} HTML files and {len(urls)} URLs to process")

    sources: list[str] = []
    results: list[ProductRecord | BaseException] = []

    for filepath in html_files:
        sources.append(filepath.name)
        try:
            results.append(extract_file(filepath))
        except Exception as e:
            results.append(e)

    if urls:
        async with new_client() as client:
            fetched = await asyncio.gather(
                *[extract_url(url, client) for url in urls],
                return_exceptions=True,
            )
        sources.extend(urls)
        results.extend(fetched)

    products: list[tuple[str, ProductRecord]] = []
    failures = 0
    for source, result in zip(sources, results):
        if isinstance(result, BaseException):
            logger.error(f"Failed to process {source}: {result}", exc_info=result)
            failures += 1
        else:
            products.append((source, result))

    return products, failures


def print_report(products: list[tuple[str, ProductRecord]], failures: int, wall_clock: float) -> None:
    total = len(products) + failures

    print(f"\n{'='*70}")
    print("EXTRACTION REPORT")
    print(f"{'='*70}")
    print(f"  Pages attempted:  {total}")
    print(f"  Succeeded:        {len(products)}")
    print(f"  Failed:           {failures}")
    print(f"  Wall clock:       {wall_clock:.2f}s")

    if not products:
        return

    print(f"\n  {'Source':<30} {'Conf':>5} {'Title':>6} {'Price':>6} {'SKU':>5} {'Imgs':>5} {'Mats':>5}")
    print(f"  {'-'*68}")
    for source, p in products:
        print(
            f"  {source[:30]:<30} {p.confidence:>5} "
            f"{'yes' if p.title else '-':>6} {'yes' if p.price else '-':>6} "
            f"{'yes' if p.sku else '-':>5} {len(p.images):>5} {len(p.materials):>5}"
        )
    avg = sum(p.confidence for _, p in products) / len(products)
    print(f"  {'-'*68}")
    print(f"  Average confidence: {avg:.1f}/10")
    print(f"\n{'='*70}")


async def main(urls: list[str], output: Path) -> None:
    t_wall_start = time.monotonic()
    products, failures = await process_all(urls)
    wall_clock = time.monotonic() - t_wall_start

    output.write_text(json.dumps([p.model_dump() for _, p in products], indent=2, ensure_ascii=False))
    logger.info(f"Wrote {len(products)} products to {output}")

    print_report(products, failures, wall_clock)


if __name__ == "__main__":
    arg_parser = argparse.ArgumentParser(description="Extract product records from HTML pages.")
    arg_parser.add_argument("urls", nargs="*", help="product page URLs to fetch in addition to data/*.html")
    arg_parser.add_argument("--output", type=Path, default=OUTPUT_FILE)
    args = arg_parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main(args.urls, args.output))
