"""
Multi-label product scoring model.

One binary LightGBM booster per catalog product, all sharing the same
normalized input vector.  Each booster's sigmoid output is that product's
relevance probability; the model's output vector is ordered exactly like the
catalog it was trained against.

One booster per product
-----------------------
Targets are multi-label (a customer can warrant Fiber 1 Gig AND Whole-Home
Wi-Fi AND Identity Protection).  Independent binary objectives keep each
product's decision boundary separate and let a product with a trivial label
(every training customer 0, or every customer 1) fall back to a constant
prior instead of failing the whole fit.

Serving contract
----------------
- ``input_width``  == FeatureSchema.width (validated by RecommendationPipeline).
- ``output_width`` == number of catalog products (validated per request).
- ``predict()`` is read-only: one loaded instance is shared by all requests.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import date
from pathlib import Path
from typing import Any, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class ConstantScorer:
    """Stand-in for a booster whose training labels were all one class.

    Attributes:
        prior: Positive-label rate in the training set (0.0 or 1.0 in practice).
    """

    def __init__(self, prior: float) -> None:
        self.prior = float(prior)

    def predict(self, X: np.ndarray) -> np.ndarray:
        return np.full(len(X), self.prior, dtype=np.float64)

    def __repr__(self) -> str:
        return f"ConstantScorer(prior={self.prior})"


class ProductScoringModel:
    """Per-product LightGBM classifiers behind a single vector -> scores API.

    Attributes:
        MODEL_VERSION: Embedded in artifact metadata.
    """

    MODEL_VERSION = "v1.0.0"

    def __init__(
        self,
        num_leaves: int = 15,
        learning_rate: float = 0.05,
        n_estimators: int = 150,
        min_child_samples: int = 5,
        feature_fraction: float = 0.9,
        bagging_fraction: float = 0.8,
        bagging_freq: int = 5,
        early_stopping_rounds: int = 20,
    ) -> None:
        self._hyperparams: dict[str, Any] = {
            "num_leaves":        num_leaves,
            "learning_rate":     learning_rate,
            "n_estimators":      n_estimators,
            "min_child_samples": min_child_samples,
            "feature_fraction":  feature_fraction,
            "bagging_fraction":  bagging_fraction,
            "bagging_freq":      bagging_freq,
        }
        self._early_stopping_rounds = early_stopping_rounds
        self._scorers: list[Any] = []      # lgb.Booster | ConstantScorer, catalog order
        self._feature_cols: list[str] = []
        self._product_names: list[str] = []
        self._val_metrics: dict[str, float] = {}
        self._training_rows: int = 0
        self._trained_at: str = ""

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def is_fitted(self) -> bool:
        return bool(self._scorers)

    @property
    def feature_cols(self) -> list[str]:
        return list(self._feature_cols)

    @property
    def product_names(self) -> list[str]:
        return list(self._product_names)

    @property
    def input_width(self) -> int:
        return len(self._feature_cols)

    @property
    def output_width(self) -> int:
        return len(self._scorers)

    @property
    def val_metrics(self) -> dict[str, float]:
        return dict(self._val_metrics)

    @property
    def hyperparams(self) -> dict[str, Any]:
        return dict(self._hyperparams)

    # ── Training ──────────────────────────────────────────────────────────────

    def fit(
        self,
        X_train: np.ndarray,
        Y_train: np.ndarray,
        X_val: np.ndarray,
        Y_val: np.ndarray,
        feature_cols: Sequence[str],
        product_names: Sequence[str],
    ) -> dict[str, float]:
        """Fit one binary classifier per product column of ``Y_train``.

        Args:
            X_train:       (n_train, n_features) normalized inputs.
            Y_train:       (n_train, n_products) 0/1 labels.
            X_val:         Validation inputs (may have zero rows).
            Y_val:         Validation labels.
            feature_cols:  Input column names, in vector order.
            product_names: Catalog product names, in label-column order.

        Returns:
            Validation metrics (``logloss``, ``accuracy``, ``n_val``); empty
            when there is no validation set.

        Raises:
            ValueError: On shape mismatches or fewer than 10 training rows.
        """
        import lightgbm as lgb

        X_train = np.asarray(X_train, dtype=np.float64)
        Y_train = np.asarray(Y_train, dtype=np.float64)
        X_val   = np.asarray(X_val, dtype=np.float64).reshape(-1, len(feature_cols))
        Y_val   = np.asarray(Y_val, dtype=np.float64).reshape(-1, len(product_names))

        if len(X_train) < 10:
            raise ValueError(
                f"ProductScoringModel.fit() needs >= 10 training rows; got {len(X_train)}."
            )
        if X_train.shape[1] != len(feature_cols):
            raise ValueError(
                f"X_train has {X_train.shape[1]} columns but {len(feature_cols)} feature names."
            )
        if Y_train.shape != (len(X_train), len(product_names)):
            raise ValueError(
                f"Y_train shape {Y_train.shape} does not match "
                f"({len(X_train)} rows, {len(product_names)} products)."
            )

        lgb_params = {
            "objective":         "binary",
            "metric":            "binary_logloss",
            "num_leaves":        self._hyperparams["num_leaves"],
            "learning_rate":     self._hyperparams["learning_rate"],
            "feature_fraction":  self._hyperparams["feature_fraction"],
            "bagging_fraction":  self._hyperparams["bagging_fraction"],
            "bagging_freq":      self._hyperparams["bagging_freq"],
            "min_child_samples": self._hyperparams["min_child_samples"],
            "verbose":           -1,
            "n_jobs":            -1,
        }

        scorers: list[Any] = []
        for j, name in enumerate(product_names):
            y = Y_train[:, j]
            positives = float(y.mean())
            if positives in (0.0, 1.0):
                logger.info("Product '%s': single-class labels; using constant prior %.1f", name, positives)
                scorers.append(ConstantScorer(positives))
                continue

            dtrain = lgb.Dataset(X_train, label=y, feature_name=list(feature_cols), free_raw_data=False)
            callbacks = [lgb.log_evaluation(period=-1)]
            valid_sets  = [dtrain]
            valid_names = ["train"]
            y_val = Y_val[:, j]
            if len(X_val) and 0.0 < float(y_val.mean()) < 1.0:
                dval = lgb.Dataset(X_val, label=y_val, reference=dtrain, free_raw_data=False)
                valid_sets  = [dtrain, dval]
                valid_names = ["train", "val"]
                callbacks.append(
                    lgb.early_stopping(stopping_rounds=self._early_stopping_rounds, verbose=False)
                )

            scorers.append(
                lgb.train(
                    lgb_params,
                    dtrain,
                    num_boost_round=self._hyperparams["n_estimators"],
                    valid_sets=valid_sets,
                    valid_names=valid_names,
                    callbacks=callbacks,
                )
            )

        self._scorers       = scorers
        self._feature_cols  = list(feature_cols)
        self._product_names = list(product_names)
        self._training_rows = len(X_train)
        self._trained_at    = date.today().isoformat()
        self._val_metrics   = self._evaluate(X_val, Y_val) if len(X_val) else {}
        return dict(self._val_metrics)

    # ── Inference ─────────────────────────────────────────────────────────────

    def predict(self, vector: Sequence[float] | np.ndarray) -> np.ndarray:
        """Score every product for one normalized input vector.

        Returns:
            1-D float64 array of length ``output_width`` in catalog order.

        Raises:
            RuntimeError: If the model is not fitted.
            ValueError:   If ``vector`` is not ``input_width`` long.
        """
        if not self.is_fitted:
            raise RuntimeError("ProductScoringModel is not fitted.")
        X = np.asarray(vector, dtype=np.float64).reshape(1, -1)
        if X.shape[1] != self.input_width:
            raise ValueError(
                f"Input vector has {X.shape[1]} values; model expects {self.input_width}."
            )
        return self.predict_matrix(X)[0]

    def predict_matrix(self, X: np.ndarray) -> np.ndarray:
        """Score many rows at once: (n_rows, n_features) -> (n_rows, n_products)."""
        X = np.asarray(X, dtype=np.float64)
        columns = [np.asarray(s.predict(X), dtype=np.float64).reshape(-1) for s in self._scorers]
        return np.column_stack(columns) if columns else np.empty((len(X), 0))

    # ── Evaluation ────────────────────────────────────────────────────────────

    def _evaluate(self, X: np.ndarray, Y: np.ndarray) -> dict[str, float]:
        """Mean binary log-loss and label accuracy over all products."""
        probs = np.clip(self.predict_matrix(X), 1e-7, 1.0 - 1e-7)
        logloss  = float(-np.mean(Y * np.log(probs) + (1.0 - Y) * np.log(1.0 - probs)))
        accuracy = float(np.mean((probs >= 0.5) == (Y >= 0.5)))
        return {
            "logloss":  round(logloss, 6) if math.isfinite(logloss) else float("nan"),
            "accuracy": round(accuracy, 6),
            "n_val":    float(len(X)),
        }

    # ── Persistence ───────────────────────────────────────────────────────────

    def save(self, artifact_path: Path) -> None:
        """Serialize all scorers and metadata to a joblib pickle.

        Raises:
            RuntimeError: If the model has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Cannot save an unfitted ProductScoringModel.")

        import joblib

        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(
            {
                "scorers":        self._scorers,
                "feature_cols":   self._feature_cols,
                "product_names":  self._product_names,
                "hyperparams":    self._hyperparams,
                "val_metrics":    self._val_metrics,
                "training_rows":  self._training_rows,
                "model_version":  self.MODEL_VERSION,
                "trained_at":     self._trained_at,
            },
            artifact_path,
        )
        logger.info("Model artifact saved: %s", artifact_path)

    @classmethod
    def load(cls, artifact_path: Path) -> "ProductScoringModel":
        """Load a model written by ``save()``.

        Raises:
            FileNotFoundError: If ``artifact_path`` does not exist.
            ValueError:        If the pickle is not a scoring-model artifact.
        """
        import joblib

        if not artifact_path.exists():
            raise FileNotFoundError(f"Model artifact not found: {artifact_path}")

        state = joblib.load(artifact_path)
        if not isinstance(state, dict) or not state.get("scorers"):
            raise ValueError(f"Not a product scoring model artifact: {artifact_path}")

        inst = cls(**state.get("hyperparams", {}))
        inst._scorers       = list(state["scorers"])
        inst._feature_cols  = list(state.get("feature_cols", []))
        inst._product_names = list(state.get("product_names", []))
        inst._val_metrics   = state.get("val_metrics", {})
        inst._training_rows = state.get("training_rows", 0)
        inst._trained_at    = state.get("trained_at", "")
        logger.info(
            "Model artifact loaded: %s (%d products, %d features, trained=%s)",
            artifact_path, inst.output_width, inst.input_width, inst._trained_at,
        )
        return inst

    def write_metadata(self, meta_path: Path, dataset_version: str = "") -> None:
        """Write a JSON metadata sidecar alongside the model artifact."""
        meta = {
            "schema_version":     self.MODEL_VERSION,
            "model_type":         "lightgbm_multilabel",
            "trained_at":         self._trained_at,
            "dataset_version":    dataset_version,
            "feature_columns":    self._feature_cols,
            "product_names":      self._product_names,
            "constant_products":  [
                name for name, s in zip(self._product_names, self._scorers)
                if isinstance(s, ConstantScorer)
            ],
            "hyperparameters":    self._hyperparams,
            "validation_metrics": self._val_metrics,
            "training_rows":      self._training_rows,
        }
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        meta_path.write_text(json.dumps(meta, indent=2))
        logger.debug("Model metadata written: %s", meta_path)
