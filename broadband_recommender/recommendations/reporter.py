"""
Recommendation report output: ASCII table for the terminal and JSON files
for hand-off to other tools.

Pure formatting and file I/O; nothing here scores or ranks.

Output files
------------
  {output_dir}/recommendations_{customer_slug}_{date}.json
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Sequence

from broadband_recommender.models.recommendation import RankedRecommendation

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def customer_slug(name: str) -> str:
    """Filesystem-safe slug: ``"Jane O'Neil"`` -> ``"jane-o-neil"``."""
    slug = _SLUG_STRIP.sub("-", name.lower()).strip("-")
    return slug or "customer"


def format_recommendation_table(
    recs: Sequence[RankedRecommendation],
    top_n: int | None = None,
    show_explanations: bool = True,
) -> str:
    """Render ranked recommendations as a fixed-width text table.

    Args:
        recs:              Ranked recommendations (rank order).
        top_n:             Show only the first N rows; ``None`` shows all.
        show_explanations: Append each explanation on an indented line.
    """
    rows = list(recs if top_n is None else recs[:top_n])
    if not rows:
        return "  (no recommendations)"

    name_w = max(len("Product"), *(len(r.product_name) for r in rows))
    lines = [
        f"  {'Rank':>4}  {'Product':<{name_w}}  {'Score':>7}  {'Price':>9}",
        f"  {'-' * 4}  {'-' * name_w}  {'-' * 7}  {'-' * 9}",
    ]
    for r in rows:
        lines.append(
            f"  {r.rank:>4}  {r.product_name:<{name_w}}  {r.score:>7.4f}  {'$' + format(r.price, '.2f'):>9}"
        )
        if show_explanations:
            lines.append(f"        {r.explanation}")
    return "\n".join(lines)


def write_recommendation_json(
    recs: Sequence[RankedRecommendation],
    output_dir: Path,
    customer_name: str,
    run_date: date | None = None,
) -> Path:
    """Write ranked recommendations for one customer to a JSON file.

    Returns:
        Path to the written file.
    """
    if run_date is None:
        run_date = date.today()

    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"recommendations_{customer_slug(customer_name)}_{run_date}.json"

    payload = {
        "customer_name":   customer_name,
        "generated_at":    datetime.now(tz=timezone.utc).isoformat(),
        "n_products":      len(recs),
        "recommendations": [r.to_api_dict() for r in recs],
    }
    json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info("Recommendations written: %s", json_path)
    return json_path
