"""
Diagnostic: run the field cascades on each data/*.html file and report which
strategy filled each field (or that nothing did).
"""

from pathlib import Path

from assembler import ASSEMBLED_FROM_GROUP, build_product_with_path
from config import DATA_DIR
from extractor import find_price_with_source
from parser import get_meta, parse_page
from structured import locate

FIELDS = ["title", "description", "images", "price", "sku", "brand", "materials"]


def diagnose_file(filepath: Path) -> dict:
    page = parse_page(filepath.read_text(encoding="utf-8"), filepath.resolve().as_uri())
    node = locate(page)
    product, assembly = build_product_with_path(page)
    if assembly == ASSEMBLED_FROM_GROUP:
        price_source = ASSEMBLED_FROM_GROUP
    else:
        _, price_source = find_price_with_source(page, node)

    report = {
        "file": filepath.name,
        "parser": {
            "json_ld_blocks": len(page.json_ld),
            "structured_node": node.kind if node else None,
            "variants": len(node.variants) if node else 0,
            "og_title": bool(get_meta(page, "og:title")),
            "body_text_chars": len(page.body_text),
        },
        "assembly": assembly,
        "price_source": price_source,
        "fields": {},
        "missing": [],
        "filled": [],
        "confidence": product.confidence,
    }

    for field in FIELDS:
        val = getattr(product, field)
        if val is None or val == []:
            report["missing"].append(field)
            report["fields"][field] = None
            continue
        report["filled"].append(field)
        if field == "price":
            report["fields"][field] = f"{val.amount} {val.currency or '?'} (raw: {val.raw[:40]})"
        elif isinstance(val, list):
            report["fields"][field] = f"{len(val)} items: {val[:3]}" if len(val) > 3 else val
        else:
            report["fields"][field] = val[:150] + ("..." if len(val) > 150 else "")

    return report


def main():
    html_files = sorted(DATA_DIR.glob("*.html"))
    print(f"Diagnosing {len(html_files)} files\n")

    all_reports = []
    for filepath in html_files:
        report = diagnose_file(filepath)
        all_reports.append(report)

        print(f"{'=' * 70}")
        print(f"  {report['file']}  (confidence {report['confidence']}/10)")
        print(f"{'=' * 70}")

        p = report["parser"]
        print(
            f"  Parser: {p['json_ld_blocks']} JSON-LD | node: {p['structured_node'] or 'none'} "
            f"({p['variants']} variants) | og:title: {'yes' if p['og_title'] else 'no'} | "
            f"{p['body_text_chars']} text chars"
        )
        print(f"  Assembled from: {report['assembly']}")
        print(f"  Price source: {report['price_source'] or 'none'}")

        print(f"\n  Filled ({len(report['filled'])}/{len(FIELDS)}):")
        for field in report["filled"]:
            print(f"    {field}: {report['fields'][field]}")

        if report["missing"]:
            print(f"\n  MISSING ({len(report['missing'])}): {report['missing']}")
        else:
            print("\n  All fields filled!")
        print()

    # Summary table
    print(f"\n{'=' * 70}")
    print("SUMMARY: Field coverage across all files")
    print(f"{'=' * 70}")
    print(f"{'Field':<14} ", end="")
    for r in all_reports:
        print(f"{r['file'][:12]:<14}", end="")
    print()
    print("-" * 90)

    for field in FIELDS:
        print(f"{field:<14} ", end="")
        for r in all_reports:
            print(f"{'OK' if field in r['filled'] else 'MISSING':<14}", end="")
        print()


if __name__ == "__main__":
    main()
