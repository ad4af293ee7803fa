"""
Offline training orchestrator.

train_scoring_model() turns the customer telemetry export and the product
catalog into the two serving artifacts:

  1. NormalizationParameters -- min/max of every continuous feature over ALL
     customers (train + validation, so serving never sees an out-of-range
     training customer).
  2. ProductScoringModel     -- one LightGBM classifier per catalog product,
     fitted against the rule-based labels in ``ml.labels``.

Design decisions
----------------
- Features go through the same ``extract()`` + ``normalize()`` path used at
  serving time; there is no training-only feature code to drift.
- Validation split: the trailing ``validation_fraction`` of customers in file
  order.  Records carry no timestamps, so there is nothing better to split on.
- The catalog order at training time becomes the model's output order; the
  product names are stored in the artifact for operators to inspect.
- Artifact naming: ``{artifact_dir}/{model_file, normalization_file, metadata_file}``
  as configured in ``[model]``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from broadband_recommender.config import ModelConfig, TrainingConfig
from broadband_recommender.errors import EmptyCatalogError
from broadband_recommender.features.extractor import extract
from broadband_recommender.features.normalizer import (
    NormalizationParameters,
    compute_normalization_params,
    normalize,
    save_normalization_params,
)
from broadband_recommender.features.schema import DEFAULT_SCHEMA, FeatureSchema
from broadband_recommender.ml.labels import build_label_vector, label_distribution
from broadband_recommender.ml.scoring_model import ProductScoringModel
from broadband_recommender.models.product import Product

logger = logging.getLogger(__name__)

MIN_TRAINING_CUSTOMERS = 10


@dataclass
class TrainingResult:
    """Everything produced by one training run.

    Attributes:
        model:              Fitted ProductScoringModel.
        params:             Normalization parameters used for every row.
        label_counts:       Positive labels per product name.
        n_train:            Rows used for fitting.
        n_val:              Rows held out for validation.
        val_metrics:        Validation metrics from ProductScoringModel.fit().
    """

    model:        ProductScoringModel
    params:       NormalizationParameters
    label_counts: dict[str, int]
    n_train:      int
    n_val:        int
    val_metrics:  dict[str, float] = field(default_factory=dict)


def train_scoring_model(
    raw_records: Sequence[Mapping[str, Any]],
    products: Sequence[Product],
    config: TrainingConfig | None = None,
    schema: FeatureSchema = DEFAULT_SCHEMA,
) -> TrainingResult:
    """Fit normalization parameters and a per-product scoring model.

    Args:
        raw_records: Raw telemetry rows (as loaded by ``load_customer_records``).
        products:    Catalog in load order.
        config:      Hyperparameters; defaults to ``TrainingConfig()``.
        schema:      Feature order for the model input.

    Returns:
        TrainingResult with the fitted model and parameters.

    Raises:
        EmptyCatalogError: If ``products`` is empty.
        ValueError:        If fewer than 10 customer records are supplied.
    """
    config = config or TrainingConfig()

    if not products:
        raise EmptyCatalogError("training")
    if len(raw_records) < MIN_TRAINING_CUSTOMERS:
        raise ValueError(
            f"Training needs >= {MIN_TRAINING_CUSTOMERS} customer records; got {len(raw_records)}."
        )

    logger.info("Extracting features for %d customers", len(raw_records))
    features = [extract(r) for r in raw_records]

    params = compute_normalization_params(features, schema)
    X = np.vstack([normalize(f, params, schema) for f in features])
    Y = np.array([build_label_vector(f, products) for f in features], dtype=np.float64)

    label_counts = label_distribution(Y.astype(int).tolist(), products)
    for name, count in label_counts.items():
        logger.info("  label %-40s %d", name, count)

    n_val   = int(math.floor(len(X) * config.validation_fraction))
    n_train = len(X) - n_val
    if n_train < MIN_TRAINING_CUSTOMERS:
        n_train, n_val = len(X), 0
        logger.warning(
            "Too few customers for a %.0f%% validation split; training on all %d rows.",
            config.validation_fraction * 100, len(X),
        )

    model = ProductScoringModel(
        num_leaves=config.num_leaves,
        learning_rate=config.learning_rate,
        n_estimators=config.n_estimators,
        min_child_samples=config.min_child_samples,
        feature_fraction=config.feature_fraction,
        bagging_fraction=config.bagging_fraction,
        bagging_freq=config.bagging_freq,
        early_stopping_rounds=config.early_stopping_rounds,
    )
    val_metrics = model.fit(
        X[:n_train], Y[:n_train],
        X[n_train:], Y[n_train:],
        feature_cols=schema.feature_names,
        product_names=[p.name for p in products],
    )

    logger.info(
        "Training complete: %d products, train=%d val=%d metrics=%s",
        len(products), n_train, n_val, val_metrics,
    )
    return TrainingResult(
        model=model,
        params=params,
        label_counts=label_counts,
        n_train=n_train,
        n_val=n_val,
        val_metrics=val_metrics,
    )


def write_artifacts(
    result: TrainingResult,
    model_config: ModelConfig,
    dataset_version: str = "",
) -> dict[str, Path]:
    """Persist the model, normalization parameters, and metadata sidecar.

    Returns:
        Dict with ``model``, ``normalization`` and ``metadata`` paths.
    """
    paths = {
        "model":         model_config.model_path,
        "normalization": model_config.normalization_path,
        "metadata":      model_config.metadata_path,
    }
    result.model.save(paths["model"])
    save_normalization_params(result.params, paths["normalization"])
    result.model.write_metadata(paths["metadata"], dataset_version=dataset_version)
    return paths
