"""
Ranked recommendation output model.

Produced fresh for every request and never persisted.  ``score`` is whatever
the scoring model returned: nominally a sigmoid probability in [0, 1], but it
is only validated as finite -- larger simply means more relevant.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RankedRecommendation(BaseModel):
    """One ranked, explained catalog item.

    Attributes:
        rank:         Dense 1-based position (1 = best).
        product_name: Catalog product name.
        score:        Model relevance score.
        price:        Catalog price.
        explanation:  Customer-facing justification.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rank: int = Field(ge=1)
    product_name: str = Field(alias="productName")
    score: float
    price: float = 0.0
    explanation: str = ""

    @field_validator("score")
    @classmethod
    def validate_score_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"score must be finite, got {v}.")
        return v

    def to_api_dict(self) -> dict:
        """Serialise with the camelCase keys the web client reads."""
        return self.model_dump(by_alias=True)
