"""
Markdown product catalog parser.

The catalog is a Markdown document containing one pipe table::

    | Product Name | Features | Price |
    |--------------|----------|-------|
    | Fiber 1 Gig  | Symmetrical 1 Gbps speeds. Wi-Fi 6 router included. | $65/mo |

Rules
-----
- The table starts at the first pipe row whose text contains ``Product Name``;
  that header and the following separator row are skipped.
- Every later pipe row with at least three cells is a product:
  cell 1 = name, cell 2 = features, cell 3 = price.
- Features split on sentence-ending periods and on bullets (``•``); blank
  fragments are dropped.  Decimal points inside numbers are not split points.
- Price is the first ``$<number>`` in the price cell; 0.0 when absent.

Row order is preserved: it defines the scoring model's output order.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from broadband_recommender.errors import EmptyCatalogError
from broadband_recommender.models.product import Product

logger = logging.getLogger(__name__)

_FEATURE_SPLIT = re.compile(r"•|\.(?=\s|$)")
_PRICE         = re.compile(r"\$\s*(\d+(?:\.\d+)?)")
_SEPARATOR_ROW = re.compile(r"^\|?[\s:\-|]+\|?$")


def split_features(text: str) -> tuple[str, ...]:
    """Split a features cell into trimmed, non-empty phrases."""
    return tuple(part.strip() for part in _FEATURE_SPLIT.split(text) if part.strip())


def parse_price(text: str) -> float:
    """Return the first dollar amount in ``text``, or 0.0."""
    match = _PRICE.search(text)
    return float(match.group(1)) if match else 0.0


def _cells(line: str) -> list[str]:
    cells = [c.strip() for c in line.split("|")]
    # Drop the empty edges produced by the leading / trailing pipe.
    if cells and cells[0] == "":
        cells = cells[1:]
    if cells and cells[-1] == "":
        cells = cells[:-1]
    return cells


def parse_catalog_markdown(text: str) -> list[Product]:
    """Parse the product table out of a Markdown document.

    Returns:
        Products in table order (possibly empty).
    """
    products: list[Product] = []
    in_table = False

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line.startswith("|"):
            continue
        if not in_table:
            if "Product Name" in line:
                in_table = True
            continue
        if _SEPARATOR_ROW.match(line):
            continue

        cells = _cells(line)
        if len(cells) < 3 or not cells[0]:
            logger.warning("Skipping malformed catalog row: %r", line)
            continue

        products.append(
            Product(
                name=cells[0],
                features=split_features(cells[1]),
                price=parse_price(cells[2]),
            )
        )

    return products


def load_catalog(path: Path) -> list[Product]:
    """Load and validate the product catalog.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        EmptyCatalogError: If the file contains no products.
    """
    if not path.exists():
        raise FileNotFoundError(f"Product catalog not found: {path}")

    products = parse_catalog_markdown(path.read_text(encoding="utf-8"))
    if not products:
        raise EmptyCatalogError(str(path))

    names = [p.name for p in products]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        logger.warning("Duplicate product names in catalog: %s", ", ".join(duplicates))

    logger.info("Loaded %d product(s) from %s", len(products), path)
    for index, product in enumerate(products):
        logger.debug("  %d: %s", index, product.name)
    return products
