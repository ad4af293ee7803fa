"""
Tests for broadband_recommender/recommendations/reporter.py.

What we test
------------
customer_slug():
  - Lowercase, non-alphanumerics collapsed to "-"; empty -> "customer".

format_recommendation_table():
  - Header plus one row per recommendation (plus explanation lines).
  - top_n trims rows; show_explanations=False drops explanation lines.
  - Empty input -> placeholder line.

write_recommendation_json():
  - File name embeds slug and run date; parent directories are created.
  - Payload carries camelCase recommendations in rank order.
"""

from __future__ import annotations

import json
from datetime import date

import pytest

from broadband_recommender.models.recommendation import RankedRecommendation
from broadband_recommender.recommendations.reporter import (
    customer_slug,
    format_recommendation_table,
    write_recommendation_json,
)


# ── Fixtures ──────────────────────────────────────────────────────────────────

def _recs() -> list[RankedRecommendation]:
    return [
        RankedRecommendation(rank=1, product_name="Fiber 500", score=0.91, price=45.0, explanation="Fast."),
        RankedRecommendation(rank=2, product_name="YouTube TV", score=0.4, price=72.99, explanation="TV."),
        RankedRecommendation(rank=3, product_name="Total Shield", score=0.0, price=10.0, explanation="Safe."),
    ]


class TestCustomerSlug:
    @pytest.mark.parametrize("name, slug", [
        ("John Doe", "john-doe"),
        ("Kevin O'Brien", "kevin-o-brien"),
        ("  ", "customer"),
        ("Zoë", "zo"),
    ])
    def test_slug(self, name, slug):
        assert customer_slug(name) == slug


class TestFormatTable:
    def test_rows_and_explanations(self):
        table = format_recommendation_table(_recs())
        lines = table.splitlines()
        assert "Rank" in lines[0] and "Product" in lines[0]
        assert len(lines) == 2 + 3 * 2
        assert "Fiber 500" in lines[2]
        assert "0.9100" in lines[2]
        assert "$45.00" in lines[2]
        assert lines[3].strip() == "Fast."

    def test_top_n_without_explanations(self):
        lines = format_recommendation_table(_recs(), top_n=2, show_explanations=False).splitlines()
        assert len(lines) == 4
        assert "Total Shield" not in "\n".join(lines)

    def test_empty(self):
        assert "no recommendations" in format_recommendation_table([])


class TestWriteJson:
    def test_file_and_payload(self, tmp_path):
        out_dir = tmp_path / "outputs" / "recommendations"
        path = write_recommendation_json(_recs(), out_dir, "John Doe", run_date=date(2026, 10, 17))
        assert path == out_dir / "recommendations_john-doe_2026-10-17.json"

        payload = json.loads(path.read_text())
        assert payload["customer_name"] == "John Doe"
        assert payload["n_products"] == 3
        assert "generated_at" in payload
        assert [r["productName"] for r in payload["recommendations"]] == [
            "Fiber 500", "YouTube TV", "Total Shield",
        ]
        assert payload["recommendations"][0]["rank"] == 1
