"""
Recommendation ranker: pairs catalog products with model scores and orders
them best-first.

Ordering rules
--------------
- Score descending.
- Exact score ties keep catalog order (stable sort) -- the catalog author's
  ordering is the tie-break, never anything arbitrary.
- Non-finite scores (NaN, +inf, -inf) sort after every finite score, in
  catalog order among themselves, and are reported at the lowest finite
  score (or 0.0, whichever is lower).  Reported scores therefore never
  increase down the list.
- Rank = 1-based position after sorting: a dense permutation of 1..N.
- Nothing is filtered.  Zero-scored products are still returned; top-N
  trimming is a presentation concern for callers.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from broadband_recommender.errors import ScoreWidthMismatchError
from broadband_recommender.models.product import Product
from broadband_recommender.models.recommendation import RankedRecommendation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedProduct:
    """A catalog product at its final rank, before explanation.

    Attributes:
        rank:    1-based position.
        product: The catalog entry.
        score:   Model score (non-finite values replaced, see module docs).
    """

    rank:    int
    product: Product
    score:   float

    def to_recommendation(self, explanation: str) -> RankedRecommendation:
        return RankedRecommendation(
            rank=self.rank,
            product_name=self.product.name,
            score=self.score,
            price=self.product.price,
            explanation=explanation,
        )


def _sort_key(score: float) -> tuple[int, float]:
    return (1, score) if math.isfinite(score) else (0, 0.0)


def rank_products(
    products: Sequence[Product],
    scores: Sequence[float],
) -> list[RankedProduct]:
    """Rank every product by its score.

    Args:
        products: Catalog in load order.
        scores:   One score per product, same order.

    Returns:
        All products as RankedProduct, best first.

    Raises:
        ScoreWidthMismatchError: If ``len(scores) != len(products)``.
    """
    if len(scores) != len(products):
        raise ScoreWidthMismatchError(expected=len(products), actual=len(scores))

    values = [float(s) for s in scores]
    order  = sorted(range(len(products)), key=lambda i: _sort_key(values[i]), reverse=True)
    floor  = min([0.0] + [s for s in values if math.isfinite(s)])

    ranked: list[RankedProduct] = []
    for position, i in enumerate(order, start=1):
        score = values[i]
        if not math.isfinite(score):
            logger.warning("Non-finite score %r for '%s'; reporting %s", score, products[i].name, floor,
                           extra={"product": products[i].name})
            score = floor
        ranked.append(RankedProduct(rank=position, product=products[i], score=score))
    return ranked
