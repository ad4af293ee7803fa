"""
Feature schema: the ordered input contract between the extractor, the
normalizer, and the scoring model.

Column order IS the contract.  Position ``i`` of the model input vector is
``FEATURE_NAMES[i]``: the continuous block first (min/max scaled), then the
one-hot categorical block (passed through unchanged).  Reordering, adding, or
removing a name here invalidates every trained artifact -- retrain after any
edit.

Both the trainer and the serving pipeline import ``DEFAULT_SCHEMA`` from this
module; artifacts record the names they were trained with so a mismatch is
caught when they are loaded instead of producing silently misaligned scores.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from broadband_recommender.errors import SchemaMismatchError

# ── Vocabularies ───────────────────────────────────────────────────────────────
# Closed vocabularies.  A value outside these sets encodes as all zeros; there
# is no "other" bucket.

COVERAGE_SIZES: tuple[str, ...] = ("Small", "Medium", "Large")

REGIONS: tuple[str, ...] = ("TX", "CA", "CT", "FL", "OH", "IN", "PA", "WV", "IL", "NV")

# ── Feature columns ────────────────────────────────────────────────────────────

CONTINUOUS_FEATURES: tuple[str, ...] = (
    # usage
    "total_devices",
    "avg_bandwidth_usage",
    "network_speed",
    # throughput (bits per second)
    "tx_avg_bps",
    "rx_p95_bps",
    "tx_p95_bps",
    "rx_max_bps",
    "tx_max_bps",
    # signal strength (dBm)
    "rssi_mean",
    "rssi_median",
    "rssi_max",
    "rssi_min",
)

CATEGORICAL_FEATURES: tuple[str, ...] = (
    *(f"coverage_size_{size}" for size in COVERAGE_SIZES),
    *(f"state_{region}" for region in REGIONS),
)


def coverage_column(size: str) -> str:
    """Return the one-hot column name for a coverage size label."""
    return f"coverage_size_{size}"


def region_column(region: str) -> str:
    """Return the one-hot column name for a region code."""
    return f"state_{region}"


@dataclass(frozen=True)
class FeatureSchema:
    """Ordered feature names shared by training and inference.

    Attributes:
        continuous:  Names scaled by the normalizer, in vector order.
        categorical: One-hot names appended after the continuous block.
    """

    continuous:  tuple[str, ...] = CONTINUOUS_FEATURES
    categorical: tuple[str, ...] = CATEGORICAL_FEATURES

    def __post_init__(self) -> None:
        names = self.continuous + self.categorical
        if len(set(names)) != len(names):
            raise SchemaMismatchError("Feature schema contains duplicate names.")

    @property
    def feature_names(self) -> tuple[str, ...]:
        """All names in model input order."""
        return self.continuous + self.categorical

    @property
    def width(self) -> int:
        """Model input width."""
        return len(self.continuous) + len(self.categorical)

    def vectorize(self, features: Mapping[str, float], block: str = "all") -> np.ndarray:
        """Pull schema columns out of ``features`` in order (missing -> 0.0).

        Args:
            features: Name -> numeric value mapping.
            block:    ``"continuous"``, ``"categorical"`` or ``"all"``.

        Returns:
            1-D float64 array.
        """
        if block == "continuous":
            names: Sequence[str] = self.continuous
        elif block == "categorical":
            names = self.categorical
        elif block == "all":
            names = self.feature_names
        else:
            raise ValueError(f"Unknown schema block '{block}'.")
        return np.array([float(features.get(n, 0.0) or 0.0) for n in names], dtype=np.float64)

    def validate_width(self, width: int, what: str = "model input") -> None:
        """Raise SchemaMismatchError unless ``width`` equals the schema width."""
        if width != self.width:
            raise SchemaMismatchError(
                f"{what} width is {width}; feature schema declares {self.width} "
                f"({len(self.continuous)} continuous + {len(self.categorical)} categorical)."
            )

    def validate_feature_names(
        self,
        names: Sequence[str],
        block: str = "all",
        what: str = "artifact",
    ) -> None:
        """Raise SchemaMismatchError unless ``names`` match the schema exactly (order included)."""
        expected = self.continuous if block == "continuous" else self.feature_names
        if tuple(names) == tuple(expected):
            return
        for i, (got, want) in enumerate(zip(names, expected)):
            if got != want:
                raise SchemaMismatchError(
                    f"{what} feature #{i} is '{got}'; schema expects '{want}'."
                )
        raise SchemaMismatchError(
            f"{what} lists {len(names)} feature(s); schema expects {len(expected)}."
        )


DEFAULT_SCHEMA = FeatureSchema()
