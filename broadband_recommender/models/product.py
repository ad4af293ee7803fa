"""
Catalog product model.

Catalog order is significant: the scoring model's output position ``i``
belongs to the ``i``-th product as loaded.  Products are loaded once at
start-up and never mutated.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class Product(BaseModel):
    """One sellable catalog item.

    Attributes:
        name:     Unique product name, e.g. ``"Fiber 1 Gig"``.
        features: Feature / benefit phrases in catalog order.
        price:    Monthly price in dollars (0.0 when the catalog lists none).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    features: tuple[str, ...] = ()
    price: float = 0.0

    @field_validator("name")
    @classmethod
    def validate_name_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("product name must not be empty.")
        return v.strip()

    @field_validator("price")
    @classmethod
    def validate_price_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"price must be non-negative, got {v}.")
        return v
