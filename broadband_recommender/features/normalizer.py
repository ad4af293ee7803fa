"""
Min/max normalization of the continuous feature block.

The parameters are computed once by the trainer over the whole training
population and saved next to the model artifact.  Serving loads them once and
applies exactly the same arithmetic, so a customer identical to a training row
produces a bit-identical input vector.

Formula (continuous feature ``i``)::

    (value - min[i]) / max(max[i] - min[i], EPSILON)

``EPSILON`` only matters when a feature was constant across the training
population (``max == min``); the result is then ``(value - min) / 1e-8``,
which is 0.0 for any customer at the training value.  Results beyond the
float64 range are clamped to it (an overflowing span over an overflowing
offset gives 0.0), so the vector is always finite.

One-hot columns are appended after the continuous block unchanged.

Artifact format (JSON)::

    {"feature_names": [...], "input_min": [...], "input_max": [...]}
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable, Mapping
from pathlib import Path

import numpy as np
from pydantic import BaseModel, ConfigDict, model_validator

from broadband_recommender.features.schema import DEFAULT_SCHEMA, FeatureSchema
from broadband_recommender.models.customer import CanonicalCustomerFeatures

logger = logging.getLogger(__name__)

EPSILON = 1e-8
_FLOAT_MAX = np.finfo(np.float64).max


class NormalizationParameters(BaseModel):
    """Per-feature min/max for the continuous schema block.

    Attributes:
        feature_names: Continuous feature names, in schema order.
        input_min:     Training-population minimum per feature.
        input_max:     Training-population maximum per feature.
    """

    model_config = ConfigDict(frozen=True)

    feature_names: tuple[str, ...]
    input_min: tuple[float, ...]
    input_max: tuple[float, ...]

    @model_validator(mode="after")
    def validate_bounds(self) -> "NormalizationParameters":
        n = len(self.feature_names)
        if len(self.input_min) != n or len(self.input_max) != n:
            raise ValueError(
                f"input_min ({len(self.input_min)}) and input_max ({len(self.input_max)}) "
                f"must both have one entry per feature ({n})."
            )
        for name, lo, hi in zip(self.feature_names, self.input_min, self.input_max):
            if not (math.isfinite(lo) and math.isfinite(hi)):
                raise ValueError(f"min/max for '{name}' must be finite.")
            if hi < lo:
                raise ValueError(f"max ({hi}) < min ({lo}) for feature '{name}'.")
        return self

    @property
    def width(self) -> int:
        return len(self.feature_names)

    def denominators(self) -> np.ndarray:
        """Per-feature ``max(max - min, EPSILON)``."""
        with np.errstate(over="ignore"):
            span = np.asarray(self.input_max, dtype=np.float64) - np.asarray(self.input_min, dtype=np.float64)
        return np.maximum(span, EPSILON)


def normalize(
    features: CanonicalCustomerFeatures | Mapping[str, float],
    params: NormalizationParameters,
    schema: FeatureSchema = DEFAULT_SCHEMA,
) -> np.ndarray:
    """Build the model input vector for one customer.

    Args:
        features: Extractor output, or any name -> value mapping.
        params:   Training-time normalization parameters.
        schema:   Feature order; ``params`` must cover ``schema.continuous``.

    Returns:
        1-D float64 array of length ``schema.width``.

    Raises:
        SchemaMismatchError: If ``params`` were built for a different
            continuous block.
    """
    schema.validate_feature_names(params.feature_names, block="continuous", what="normalization parameters")

    values = features.feature_values(schema) if isinstance(features, CanonicalCustomerFeatures) else features
    continuous  = schema.vectorize(values, block="continuous")
    categorical = schema.vectorize(values, block="categorical")

    with np.errstate(over="ignore", invalid="ignore"):
        scaled = (continuous - np.asarray(params.input_min, dtype=np.float64)) / params.denominators()
    # Bounds or values near the float64 limits overflow; inf / inf comes back as 0.
    scaled = np.nan_to_num(scaled, nan=0.0, posinf=_FLOAT_MAX, neginf=-_FLOAT_MAX)
    return np.concatenate([scaled, categorical])


def compute_normalization_params(
    feature_rows: Iterable[CanonicalCustomerFeatures | Mapping[str, float]],
    schema: FeatureSchema = DEFAULT_SCHEMA,
) -> NormalizationParameters:
    """Column-wise min/max of the continuous block over a training population.

    Raises:
        ValueError: If ``feature_rows`` is empty.
    """
    matrix = []
    for row in feature_rows:
        values = row.feature_values(schema) if isinstance(row, CanonicalCustomerFeatures) else row
        matrix.append(schema.vectorize(values, block="continuous"))
    if not matrix:
        raise ValueError("Cannot compute normalization parameters from zero rows.")

    stacked = np.vstack(matrix)
    return NormalizationParameters(
        feature_names=schema.continuous,
        input_min=tuple(float(v) for v in stacked.min(axis=0)),
        input_max=tuple(float(v) for v in stacked.max(axis=0)),
    )


# ── Artifact I/O ───────────────────────────────────────────────────────────────

def save_normalization_params(params: NormalizationParameters, path: Path) -> None:
    """Write parameters as JSON (parent directories are created)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(params.model_dump(mode="json"), indent=2), encoding="utf-8")
    logger.info("Normalization parameters saved: %s", path)


def load_normalization_params(path: Path) -> NormalizationParameters:
    """Load parameters written by ``save_normalization_params()``.

    Raises:
        FileNotFoundError:        If ``path`` does not exist.
        json.JSONDecodeError:     If the file is not valid JSON.
        pydantic.ValidationError: If the bounds are inconsistent.
    """
    if not path.exists():
        raise FileNotFoundError(f"Normalization parameters not found: {path}")
    params = NormalizationParameters.model_validate(json.loads(path.read_text(encoding="utf-8")))
    logger.info("Normalization parameters loaded: %s (%d features)", path, params.width)
    return params
