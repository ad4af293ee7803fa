"""
Tests for broadband_recommender/ml/labels.py.

What we test
------------
fiber_tier():
  - Smallest tier covering the plan speed; above 5 Gig -> 7 Gig.

build_label_vector():
  - Exactly one fiber tier fires per customer.
  - Each rule fires on its own condition and only then.
  - Rules whose product is absent from the catalog are skipped.
  - Product lookup is case-insensitive.

label_distribution():
  - Counts positives per product in catalog order.
"""

from __future__ import annotations

import pytest

from broadband_recommender.features.extractor import extract
from broadband_recommender.ml.labels import build_label_vector, fiber_tier, label_distribution
from broadband_recommender.models.product import Product


# ── Fixtures ──────────────────────────────────────────────────────────────────

FULL_CATALOG = [
    Product(name=n) for n in (
        "Fiber 500", "Fiber 1 Gig", "Fiber 2 Gig", "Fiber 5 Gig", "Fiber 7 Gig",
        "Whole-Home Wi-Fi", "Wi-Fi Security", "Wi-Fi Security Plus", "Total Shield",
        "My Premium Tech Pro", "Identity Protection", "YouTube TV",
    )
]


@pytest.fixture
def labels_for(make_raw_customer):
    """``labels_for(**overrides)`` -> product name -> label over FULL_CATALOG."""
    def build(**overrides) -> dict[str, int]:
        vec = build_label_vector(extract(make_raw_customer(**overrides)), FULL_CATALOG)
        return {p.name: v for p, v in zip(FULL_CATALOG, vec)}
    return build


class TestFiberTier:
    @pytest.mark.parametrize("speed, tier", [
        (0.0, "fiber 500"),
        (450.0, "fiber 500"),
        (500.0, "fiber 500"),
        (500.1, "fiber 1 gig"),
        (2000.0, "fiber 2 gig"),
        (5000.0, "fiber 5 gig"),
        (7000.0, "fiber 7 gig"),
    ])
    def test_tiers(self, speed, tier):
        assert fiber_tier(speed) == tier


class TestBuildLabelVector:
    def test_exactly_one_fiber_tier(self, labels_for):
        labels = labels_for(network_speed="1.0G")
        fiber = {k: v for k, v in labels.items() if k.startswith("Fiber")}
        assert fiber == {
            "Fiber 500": 0, "Fiber 1 Gig": 1, "Fiber 2 Gig": 0, "Fiber 5 Gig": 0, "Fiber 7 Gig": 0,
        }

    def test_reference_customer(self, labels_for):
        # CA, 450 Mbps, 3 devices, 2.5 Mbps usage, mean signal -55, min -70.
        labels = labels_for()
        assert labels["Fiber 500"] == 1
        assert labels["Identity Protection"] == 1
        assert labels["Wi-Fi Security"] == 1
        assert labels["Whole-Home Wi-Fi"] == 0
        assert labels["Total Shield"] == 0
        assert labels["My Premium Tech Pro"] == 0
        assert labels["YouTube TV"] == 0
        assert labels["Wi-Fi Security Plus"] == 0

    def test_whole_home_on_large_coverage(self, labels_for):
        assert labels_for(extenders="2")["Whole-Home Wi-Fi"] == 1

    def test_whole_home_on_weak_signal(self, labels_for):
        assert labels_for(rssi_min="-85")["Whole-Home Wi-Fi"] == 1

    def test_existing_security_suppresses_security_label(self, labels_for):
        assert labels_for(total_shield="true")["Wi-Fi Security"] == 0

    def test_security_plus_renewal(self, labels_for):
        assert labels_for(wifi_security_plus="1")["Wi-Fi Security Plus"] == 1

    def test_heavy_usage(self, labels_for):
        labels = labels_for(rx_avg_bps="12000000")
        assert labels["Total Shield"] == 1
        assert labels["YouTube TV"] == 1

    def test_many_devices(self, labels_for):
        assert labels_for(wireless_clients_count="16")["My Premium Tech Pro"] == 1

    @pytest.mark.parametrize("state, expected", [("TX", 1), ("CA", 1), ("FL", 0), ("", 0)])
    def test_identity_regions(self, state, expected, labels_for):
        assert labels_for(state=state)["Identity Protection"] == expected

    def test_missing_products_are_skipped(self, make_raw_customer):
        catalog = [Product(name="Additional Extender"), Product(name="YouTube TV")]
        vec = build_label_vector(extract(make_raw_customer(rx_avg_bps="20000000")), catalog)
        assert vec == [0, 1]

    def test_case_insensitive_lookup(self, make_raw_customer):
        catalog = [Product(name="FIBER 500"), Product(name="identity protection")]
        assert build_label_vector(extract(make_raw_customer()), catalog) == [1, 1]


class TestLabelDistribution:
    def test_counts(self):
        products = [Product(name="A"), Product(name="B")]
        counts = label_distribution([[1, 0], [1, 1], [0, 0]], products)
        assert counts == {"A": 2, "B": 1}
        assert list(counts) == ["A", "B"]
