"""
Tests for broadband_recommender/features/normalizer.py.

What we test
------------
normalize():
  - Output is schema-width, continuous block scaled, categorical block
    passed through unchanged.
  - value == min -> 0.0; value == max -> 1.0.
  - min == max -> finite output (epsilon denominator), never NaN / inf.
  - Results past the float64 range are clamped, so the vector stays finite.
  - Values outside the training range extrapolate (no clipping).
  - Params built for another continuous block raise SchemaMismatchError.

NormalizationParameters:
  - Rejects mismatched lengths, max < min, and non-finite bounds.

compute_normalization_params():
  - Column-wise min / max over the population; zero rows -> ValueError.

save_normalization_params() / load_normalization_params():
  - JSON file with feature_names / input_min / input_max keys.
  - Missing file -> FileNotFoundError.
"""

from __future__ import annotations

import json

import numpy as np
import pytest
from pydantic import ValidationError

from broadband_recommender.errors import SchemaMismatchError
from broadband_recommender.features.extractor import extract
from broadband_recommender.features.normalizer import (
    EPSILON,
    NormalizationParameters,
    compute_normalization_params,
    load_normalization_params,
    normalize,
    save_normalization_params,
)
from broadband_recommender.features.schema import CONTINUOUS_FEATURES, DEFAULT_SCHEMA, FeatureSchema


# ── Fixtures ──────────────────────────────────────────────────────────────────

def _params(lo: float = 0.0, hi: float = 10.0) -> NormalizationParameters:
    n = len(CONTINUOUS_FEATURES)
    return NormalizationParameters(
        feature_names=CONTINUOUS_FEATURES,
        input_min=(lo,) * n,
        input_max=(hi,) * n,
    )


class TestNormalize:
    def test_width_and_categorical_passthrough(self, make_raw_customer):
        features = extract(make_raw_customer())
        vec = normalize(features, _params(0.0, 1e9))
        assert vec.shape == (DEFAULT_SCHEMA.width,)
        categorical = vec[len(CONTINUOUS_FEATURES):]
        assert categorical[0] == 1.0                     # coverage_size_Small
        assert categorical[DEFAULT_SCHEMA.categorical.index("state_CA")] == 1.0
        assert categorical.sum() == 2.0

    def test_value_at_min_is_zero_and_at_max_is_one(self):
        small = {name: 0.0 for name in CONTINUOUS_FEATURES}
        large = {name: 10.0 for name in CONTINUOUS_FEATURES}
        assert np.all(normalize(small, _params())[:12] == 0.0)
        assert np.allclose(normalize(large, _params())[:12], 1.0)

    def test_midpoint(self):
        values = {name: 2.5 for name in CONTINUOUS_FEATURES}
        assert np.allclose(normalize(values, _params())[:12], 0.25)

    def test_min_equals_max_stays_finite(self):
        params = _params(5.0, 5.0)
        same  = normalize({name: 5.0 for name in CONTINUOUS_FEATURES}, params)
        above = normalize({name: 6.0 for name in CONTINUOUS_FEATURES}, params)
        assert np.all(np.isfinite(same))
        assert np.all(same[:12] == 0.0)
        assert np.all(np.isfinite(above))
        assert above[0] == pytest.approx(1.0 / EPSILON)

    @pytest.mark.parametrize("value", [1e301, -1e301, 1.7e308])
    def test_overflow_is_clamped_to_finite(self, value):
        params = _params(0.0, 0.0)
        vector = normalize({name: value for name in CONTINUOUS_FEATURES}, params)
        assert np.all(np.isfinite(vector))
        assert vector[0] == np.sign(value) * np.finfo(np.float64).max

    def test_extreme_training_bounds_stay_finite(self):
        params = _params(-1e308, 1e308)
        vector = normalize({name: 1e308 for name in CONTINUOUS_FEATURES}, params)
        assert np.all(np.isfinite(vector))

    def test_out_of_range_is_not_clipped(self):
        values = {name: 20.0 for name in CONTINUOUS_FEATURES}
        assert np.allclose(normalize(values, _params())[:12], 2.0)

    def test_params_for_other_schema_raise(self):
        params = NormalizationParameters(feature_names=("a",), input_min=(0.0,), input_max=(1.0,))
        with pytest.raises(SchemaMismatchError):
            normalize({}, params)

    def test_custom_schema(self):
        schema = FeatureSchema(continuous=("a",), categorical=("flag",))
        params = NormalizationParameters(feature_names=("a",), input_min=(2.0,), input_max=(4.0,))
        np.testing.assert_allclose(normalize({"a": 3.0, "flag": 1}, params, schema), [0.5, 1.0])


class TestNormalizationParameters:
    def test_length_mismatch(self):
        with pytest.raises(ValidationError):
            NormalizationParameters(feature_names=("a", "b"), input_min=(0.0,), input_max=(1.0, 1.0))

    def test_max_below_min(self):
        with pytest.raises(ValidationError, match="max"):
            NormalizationParameters(feature_names=("a",), input_min=(2.0,), input_max=(1.0,))

    def test_non_finite(self):
        with pytest.raises(ValidationError, match="finite"):
            NormalizationParameters(feature_names=("a",), input_min=(0.0,), input_max=(float("inf"),))

    def test_denominators_floor_at_epsilon(self):
        params = NormalizationParameters(feature_names=("a", "b"), input_min=(1.0, 0.0), input_max=(1.0, 4.0))
        np.testing.assert_allclose(params.denominators(), [EPSILON, 4.0])


class TestComputeParams:
    def test_column_min_max(self, make_raw_customer):
        rows = [
            extract(make_raw_customer(rx_avg_bps="100", rssi_min="-90")),
            extract(make_raw_customer(rx_avg_bps="300", rssi_min="-60")),
        ]
        params = compute_normalization_params(rows)
        i_bw   = CONTINUOUS_FEATURES.index("avg_bandwidth_usage")
        i_rssi = CONTINUOUS_FEATURES.index("rssi_min")
        assert params.feature_names == CONTINUOUS_FEATURES
        assert (params.input_min[i_bw], params.input_max[i_bw]) == (100.0, 300.0)
        assert (params.input_min[i_rssi], params.input_max[i_rssi]) == (-90.0, -60.0)

    def test_population_scales_into_unit_interval(self, customer_population, normalization_params):
        for raw in customer_population:
            vec = normalize(extract(raw), normalization_params)
            assert np.all(vec[:12] >= 0.0)
            assert np.all(vec[:12] <= 1.0 + 1e-9)

    def test_zero_rows_raise(self):
        with pytest.raises(ValueError, match="zero rows"):
            compute_normalization_params([])


class TestPersistence:
    def test_save_writes_json(self, tmp_path):
        path = tmp_path / "nested" / "normalization.json"
        save_normalization_params(_params(), path)
        data = json.loads(path.read_text())
        assert set(data) == {"feature_names", "input_min", "input_max"}
        assert data["feature_names"] == list(CONTINUOUS_FEATURES)

    def test_load_restores_equal_params(self, tmp_path):
        path = tmp_path / "normalization.json"
        params = _params(-3.0, 7.0)
        save_normalization_params(params, path)
        assert load_normalization_params(path) == params

    def test_load_missing_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_normalization_params(tmp_path / "absent.json")
