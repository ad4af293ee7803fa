"""
Tests for broadband_recommender/ml/scoring_model.py.

What we test
------------
ProductScoringModel.is_fitted:
  - False before fit(), True after fit().

ProductScoringModel.fit():
  - Raises ValueError with fewer than 10 training rows.
  - Raises ValueError on label / feature shape mismatches.
  - A product whose labels are all one class gets a ConstantScorer.
  - Returns validation metrics (logloss, accuracy, n_val); empty dict with
    no validation rows.

ProductScoringModel.predict():
  - One score per product, each in [0, 1], catalog order.
  - RuntimeError when unfitted; ValueError on a wrong-width vector.
  - Deterministic: same input, same output.

ProductScoringModel.save() / load():
  - save() raises RuntimeError on an unfitted model.
  - Round-trip preserves feature columns, product names and predictions.
  - load() raises FileNotFoundError / ValueError on missing / foreign files.

ProductScoringModel.write_metadata():
  - Writes JSON listing products, constant products and hyperparameters.
"""

from __future__ import annotations

import json

import joblib
import numpy as np
import pytest

from broadband_recommender.ml.scoring_model import ConstantScorer, ProductScoringModel


# ── Fixtures ──────────────────────────────────────────────────────────────────

FEATURES = [f"f{i}" for i in range(4)]
PRODUCTS = ["Learned", "Never", "Always"]


def _synthetic(n: int, seed: int = 0) -> tuple[np.ndarray, np.ndarray]:
    """Column 0 drives the 'Learned' label; 'Never' is all 0, 'Always' all 1."""
    rng = np.random.default_rng(seed)
    X = rng.random((n, len(FEATURES)))
    learned = (X[:, 0] > 0.5).astype(float)
    Y = np.column_stack([learned, np.zeros(n), np.ones(n)])
    return X, Y


def _fitted(n_train: int = 60, n_val: int = 20) -> ProductScoringModel:
    X, Y = _synthetic(n_train + n_val)
    model = ProductScoringModel(n_estimators=30, min_child_samples=3)
    model.fit(X[:n_train], Y[:n_train], X[n_train:], Y[n_train:], FEATURES, PRODUCTS)
    return model


class TestFit:
    def test_is_fitted(self):
        model = ProductScoringModel()
        assert not model.is_fitted
        assert _fitted().is_fitted

    def test_too_few_rows(self):
        X, Y = _synthetic(9)
        with pytest.raises(ValueError, match=">= 10"):
            ProductScoringModel().fit(X, Y, X[:0], Y[:0], FEATURES, PRODUCTS)

    def test_feature_name_count_mismatch(self):
        X, Y = _synthetic(20)
        with pytest.raises(ValueError, match="feature names"):
            ProductScoringModel().fit(X, Y, X[:0], Y[:0], FEATURES[:3], PRODUCTS)

    def test_label_shape_mismatch(self):
        X, Y = _synthetic(20)
        with pytest.raises(ValueError, match="Y_train shape"):
            ProductScoringModel().fit(X, Y[:, :2], X[:0], Y[:0, :2], FEATURES, PRODUCTS)

    def test_single_class_products_use_constant_scorer(self):
        model = _fitted()
        assert not isinstance(model._scorers[0], ConstantScorer)
        assert model._scorers[1].prior == 0.0
        assert model._scorers[2].prior == 1.0

    def test_metrics_returned(self):
        model = _fitted()
        metrics = model.val_metrics
        assert set(metrics) == {"logloss", "accuracy", "n_val"}
        assert metrics["n_val"] == 20.0
        assert 0.0 <= metrics["accuracy"] <= 1.0

    def test_no_validation_rows(self):
        X, Y = _synthetic(30)
        model = ProductScoringModel(n_estimators=10, min_child_samples=3)
        assert model.fit(X, Y, X[:0], Y[:0], FEATURES, PRODUCTS) == {}

    def test_widths(self):
        model = _fitted()
        assert model.input_width == 4
        assert model.output_width == 3
        assert model.product_names == PRODUCTS


class TestPredict:
    def test_one_score_per_product(self):
        scores = _fitted().predict([0.9, 0.1, 0.1, 0.1])
        assert scores.shape == (3,)
        assert np.all((scores >= 0.0) & (scores <= 1.0))
        assert scores[1] == 0.0
        assert scores[2] == 1.0

    def test_learned_signal(self):
        model = _fitted()
        high = model.predict([0.95, 0.5, 0.5, 0.5])[0]
        low  = model.predict([0.05, 0.5, 0.5, 0.5])[0]
        assert high > low

    def test_deterministic(self):
        model = _fitted()
        vec = [0.3, 0.6, 0.2, 0.8]
        np.testing.assert_array_equal(model.predict(vec), model.predict(vec))

    def test_unfitted_raises(self):
        with pytest.raises(RuntimeError, match="not fitted"):
            ProductScoringModel().predict([0.0] * 4)

    def test_wrong_width_raises(self):
        with pytest.raises(ValueError, match="expects 4"):
            _fitted().predict([0.0] * 5)

    def test_predict_matrix_shape(self, make_constant_model):
        out = make_constant_model([0.1, 0.2], feature_cols=FEATURES).predict_matrix(np.zeros((3, 4)))
        assert out.shape == (3, 2)
        np.testing.assert_allclose(out[:, 1], 0.2)


class TestPersistence:
    def test_save_unfitted_raises(self, tmp_path):
        with pytest.raises(RuntimeError):
            ProductScoringModel().save(tmp_path / "model.pkl")

    def test_round_trip(self, tmp_path):
        model = _fitted()
        path = tmp_path / "artifacts" / "model.pkl"
        model.save(path)
        loaded = ProductScoringModel.load(path)
        vec = [0.7, 0.2, 0.4, 0.1]
        assert loaded.feature_cols == FEATURES
        assert loaded.product_names == PRODUCTS
        assert loaded.hyperparams == model.hyperparams
        np.testing.assert_allclose(loaded.predict(vec), model.predict(vec))

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ProductScoringModel.load(tmp_path / "absent.pkl")

    def test_load_foreign_pickle(self, tmp_path):
        path = tmp_path / "other.pkl"
        joblib.dump({"something": "else"}, path)
        with pytest.raises(ValueError, match="Not a product scoring model"):
            ProductScoringModel.load(path)

    def test_write_metadata(self, tmp_path):
        model = _fitted()
        meta_path = tmp_path / "model.json"
        model.write_metadata(meta_path, dataset_version="2026-10")
        meta = json.loads(meta_path.read_text())
        assert meta["product_names"] == PRODUCTS
        assert meta["constant_products"] == ["Never", "Always"]
        assert meta["dataset_version"] == "2026-10"
        assert meta["feature_columns"] == FEATURES
        assert "num_leaves" in meta["hyperparameters"]
