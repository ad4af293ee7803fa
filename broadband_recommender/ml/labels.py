"""
Rule-based training labels.

There is no purchase history to learn from yet, so the trainer distils these
hand-written eligibility rules into the scoring model.  They run offline only;
serving never evaluates them.

Rules (each may fire independently -- targets are multi-label)
---------------------------------------------------------------
Fiber tier            exactly one of Fiber 500 / 1 Gig / 2 Gig / 5 Gig / 7 Gig,
                      the smallest tier covering the current plan speed
                      (<= 500, <= 1000, <= 2000, <= 5000 Mbps, else 7 Gig).
Whole-Home Wi-Fi      Large coverage, or weakest signal below -80 dBm.
Wi-Fi Security        no security add-on at all and > 1 Mbps average usage.
Wi-Fi Security Plus   already subscribed (renewal candidate).
Total Shield          > 5 Mbps average usage.
My Premium Tech Pro   > 15 devices, or mean signal below -70 dBm.
Identity Protection   region CA or TX.
YouTube TV            > 10 Mbps average receive rate.

Products are located by case-insensitive exact name; a rule whose product is
missing from the catalog is skipped.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from broadband_recommender.models.customer import CanonicalCustomerFeatures
from broadband_recommender.models.product import Product

# (inclusive upper bound in Mbps, product name); None = no upper bound.
FIBER_TIERS: tuple[tuple[float | None, str], ...] = (
    (500.0,  "fiber 500"),
    (1000.0, "fiber 1 gig"),
    (2000.0, "fiber 2 gig"),
    (5000.0, "fiber 5 gig"),
    (None,   "fiber 7 gig"),
)

WEAK_SIGNAL_MIN_DBM    = -80.0
WEAK_SIGNAL_MEAN_DBM   = -70.0
SECURITY_BANDWIDTH_BPS = 1_000_000.0
SHIELD_BANDWIDTH_BPS   = 5_000_000.0
STREAMING_RX_BPS       = 10_000_000.0
MANY_DEVICES           = 15
IDENTITY_REGIONS: tuple[str, ...] = ("CA", "TX")


@dataclass(frozen=True)
class LabelRule:
    """Marks ``product`` as a positive label when ``applies`` is true."""

    product: str
    applies: Callable[[CanonicalCustomerFeatures], bool]


def fiber_tier(network_speed: float) -> str:
    """Return the lowercased fiber product name for a plan speed in Mbps."""
    for ceiling, name in FIBER_TIERS:
        if ceiling is None or network_speed <= ceiling:
            return name
    return FIBER_TIERS[-1][1]


def _has_no_security(f: CanonicalCustomerFeatures) -> bool:
    return not (f.wifi_security or f.wifi_security_plus or f.total_shield)


LABEL_RULES: tuple[LabelRule, ...] = (
    LabelRule("whole-home wi-fi",
              lambda f: f.coverage_size_Large == 1 or f.rssi_min < WEAK_SIGNAL_MIN_DBM),
    LabelRule("wi-fi security",
              lambda f: _has_no_security(f) and f.avg_bandwidth_usage > SECURITY_BANDWIDTH_BPS),
    LabelRule("wi-fi security plus",
              lambda f: bool(f.wifi_security_plus)),
    LabelRule("total shield",
              lambda f: f.avg_bandwidth_usage > SHIELD_BANDWIDTH_BPS),
    LabelRule("my premium tech pro",
              lambda f: f.total_devices > MANY_DEVICES or f.rssi_mean < WEAK_SIGNAL_MEAN_DBM),
    LabelRule("identity protection",
              lambda f: any(getattr(f, f"state_{r}") == 1 for r in IDENTITY_REGIONS)),
    LabelRule("youtube tv",
              lambda f: f.rx_avg_bps > STREAMING_RX_BPS),
)


def _index_by_name(products: Sequence[Product]) -> dict[str, int]:
    index: dict[str, int] = {}
    for i, p in enumerate(products):
        index.setdefault(p.name.lower(), i)
    return index


def build_label_vector(
    features: CanonicalCustomerFeatures,
    products: Sequence[Product],
) -> list[int]:
    """Return a 0/1 label per catalog product for one customer."""
    index  = _index_by_name(products)
    labels = [0] * len(products)

    tier = index.get(fiber_tier(features.network_speed))
    if tier is not None:
        labels[tier] = 1

    for rule in LABEL_RULES:
        pos = index.get(rule.product)
        if pos is not None and rule.applies(features):
            labels[pos] = 1
    return labels


def label_distribution(
    labels: Sequence[Sequence[int]],
    products: Sequence[Product],
) -> dict[str, int]:
    """Count positive labels per product name (catalog order preserved)."""
    counts = {p.name: 0 for p in products}
    for row in labels:
        for p, val in zip(products, row):
            if val == 1:
                counts[p.name] += 1
    return counts
