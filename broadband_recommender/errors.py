"""
Structural failures raised by the recommendation pipeline.

Field-level problems in customer telemetry never surface here -- the
extractor absorbs them.  These exceptions describe conditions under which
no recommendation can be produced at all, so callers must handle them
(HTTP 503 / CLI exit code 1) instead of showing an empty list.
"""

from __future__ import annotations


class RecommenderError(RuntimeError):
    """Base class for all pipeline failures."""


class ModelNotReadyError(RecommenderError):
    """Raised when the scoring model or normalization parameters cannot be loaded.

    Attributes:
        artifact_path: The artifact that failed to load.
    """

    def __init__(self, artifact_path: str, reason: str) -> None:
        self.artifact_path = artifact_path
        self.reason        = reason
        super().__init__(
            f"Recommendation model not ready: {artifact_path}: {reason}  "
            "Run 'broadband-recommender train' to build the artifacts."
        )


class EmptyCatalogError(RecommenderError):
    """Raised when the product catalog holds zero products."""

    def __init__(self, source: str = "") -> None:
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Product catalog is empty{where}; cannot score zero products.")


class SchemaMismatchError(RecommenderError):
    """Raised when the feature schema disagrees with a loaded artifact."""


class ScoreWidthMismatchError(RecommenderError, ValueError):
    """Raised when the number of model scores differs from the catalog size.

    Attributes:
        expected: Number of catalog products.
        actual:   Number of scores produced.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual   = actual
        super().__init__(
            f"Model produced {actual} score(s) for a catalog of {expected} product(s).  "
            "Retrain the model against the current catalog."
        )
