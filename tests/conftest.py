"""
Shared pytest fixtures for the broadband recommender test suite.

Provides:
  - Factory fixtures (``make_raw_customer``, ``make_customer_population``,
    ``make_constant_model``, ``write_customers_csv``) that return callables, so
    tests build variations without importing this module.
  - ``catalog_md``: the markdown table behind the ``catalog`` fixture.
  - Fixtures for a small catalog, normalization parameters, and a pipeline.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Sequence

import pytest

from broadband_recommender.features.extractor import extract
from broadband_recommender.features.normalizer import (
    NormalizationParameters,
    compute_normalization_params,
)
from broadband_recommender.features.schema import DEFAULT_SCHEMA
from broadband_recommender.ingestion.catalog_markdown import parse_catalog_markdown
from broadband_recommender.ml.scoring_model import ConstantScorer, ProductScoringModel
from broadband_recommender.models.product import Product
from broadband_recommender.recommendations.pipeline import RecommendationPipeline

CSV_COLUMNS: tuple[str, ...] = (
    "CustomerName",
    "state",
    "network_speed",
    "wireless_clients_count",
    "wired_clients_count",
    "extenders",
    "rx_avg_bps",
    "tx_avg_bps",
    "rx_p95_bps",
    "tx_p95_bps",
    "rx_max_bps",
    "tx_max_bps",
    "rssi_mean",
    "rssi_median",
    "rssi_max",
    "rssi_min",
    "wifi_security",
    "wifi_security_plus",
    "total_shield",
)

CATALOG_MD = """\
# Product Catalog

| Product Name | Features | Price |
|--------------|----------|-------|
| Fiber 500 | Symmetrical 500 Mbps speeds. Wi-Fi 6 router included. | $45/mo |
| Whole-Home Wi-Fi | • Mesh extenders • Eliminates dead zones | $10/mo |
| Wi-Fi Security Plus | VPN for up to 3 devices. Password manager. | $10/mo |
| Identity Protection | Dark web monitoring. Credit alerts. | $9.99/mo |
| YouTube TV | 100+ live channels. Unlimited DVR space. | $72.99/mo |
"""


# ── Builders ──────────────────────────────────────────────────────────────────

def _raw_customer(name: str = "John Doe", **overrides: str) -> dict[str, str]:
    """A CA customer on a 450 Mbps plan with 3 devices and no extenders."""
    row = {
        "CustomerName":           name,
        "state":                  "CA",
        "network_speed":          "450.0M",
        "wireless_clients_count": "2",
        "wired_clients_count":    "1",
        "extenders":              "0",
        "rx_avg_bps":             "2500000",
        "tx_avg_bps":             "400000",
        "rx_p95_bps":             "8000000",
        "tx_p95_bps":             "1200000",
        "rx_max_bps":             "15000000",
        "tx_max_bps":             "3000000",
        "rssi_mean":              "-55",
        "rssi_median":            "-54",
        "rssi_max":               "-40",
        "rssi_min":               "-70",
        "wifi_security":          "false",
        "wifi_security_plus":     "false",
        "total_shield":           "false",
    }
    row.update(overrides)
    return row


def _customer_population(n: int = 24) -> list[dict[str, str]]:
    """Deterministic customers spread over regions, speeds, and usage levels."""
    states = ("CA", "TX", "FL", "OH", "NV", "PA")
    speeds = ("300.0M", "500.0M", "1.0G", "2.0G", "5.0G")
    rows = []
    for i in range(n):
        rows.append(
            _raw_customer(
                name=f"Customer {i:02d}",
                state=states[i % len(states)],
                network_speed=speeds[i % len(speeds)],
                wireless_clients_count=str(2 + (i * 7) % 20),
                wired_clients_count=str(i % 3),
                extenders=str(i % 4),
                rx_avg_bps=str(500_000 + 900_000 * i),
                rssi_mean=str(-50 - i),
                rssi_min=str(-60 - 2 * i),
                wifi_security_plus="true" if i % 5 == 0 else "false",
            )
        )
    return rows


def _constant_model(
    priors: Sequence[float],
    product_names: Sequence[str] | None = None,
    feature_cols: Sequence[str] = DEFAULT_SCHEMA.feature_names,
) -> ProductScoringModel:
    """A 'fitted' model that always returns ``priors`` (one per product)."""
    model = ProductScoringModel()
    model._scorers       = [ConstantScorer(p) for p in priors]
    model._feature_cols  = list(feature_cols)
    model._product_names = list(product_names or [f"Product {i}" for i in range(len(priors))])
    model._trained_at    = "2026-01-01"
    return model


def _write_customers_csv(path: Path, rows: Sequence[dict[str, str]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(CSV_COLUMNS))
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


# ── Factory fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def make_raw_customer():
    """``make_raw_customer(name="John Doe", **overrides)`` -> CSV-style row."""
    return _raw_customer


@pytest.fixture
def make_customer_population():
    """``make_customer_population(n=24)`` -> varied rows, enough to train on."""
    return _customer_population


@pytest.fixture
def make_constant_model():
    """``make_constant_model(priors, product_names=None, feature_cols=...)``.

    A fitted ProductScoringModel whose scores are fixed per product, so
    ranking assertions do not depend on LightGBM.
    """
    return _constant_model


@pytest.fixture
def write_customers_csv():
    """``write_customers_csv(path, rows)`` -> path of the written export."""
    return _write_customers_csv


@pytest.fixture
def catalog_md() -> str:
    return CATALOG_MD


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def catalog() -> list[Product]:
    """Five-product catalog in a fixed order."""
    return parse_catalog_markdown(CATALOG_MD)


@pytest.fixture
def raw_customer() -> dict[str, str]:
    return _raw_customer()


@pytest.fixture
def customer_population() -> list[dict[str, str]]:
    return _customer_population()


@pytest.fixture
def normalization_params(customer_population) -> NormalizationParameters:
    return compute_normalization_params([extract(r) for r in customer_population])


@pytest.fixture
def constant_model(catalog) -> ProductScoringModel:
    """Scores: Fiber 500 0.9, Whole-Home 0.2, Security Plus 0.5, Identity 0.7, YouTube 0.2."""
    return _constant_model([0.9, 0.2, 0.5, 0.7, 0.2], [p.name for p in catalog])


@pytest.fixture
def pipeline(constant_model, normalization_params) -> RecommendationPipeline:
    return RecommendationPipeline(model=constant_model, params=normalization_params)
