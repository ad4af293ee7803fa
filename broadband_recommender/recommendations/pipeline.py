"""
RecommendationPipeline — the single operation exposed to serving code.

Request flow
------------
    raw customer record
      -> extract()          CanonicalCustomerFeatures      (never fails)
      -> normalize()        model input vector             (schema order)
      -> model.predict()    one score per catalog product  (catalog order)
      -> rank_products()    best-first, dense 1-based ranks
      -> explain()          one justification per product
      -> list[RankedRecommendation]

Lifecycle
---------
Build ONE pipeline at process start (``from_artifacts()``) and hand it to
every request path.  The pipeline, its model, its normalization parameters,
and the catalog are never written after construction, so concurrent requests
share them without locking.  There are no retries and no internal timeouts:
a failure for one customer raises for that call only.

Failure modes
-------------
ModelNotReadyError       artifacts missing or unloadable (at construction).
SchemaMismatchError      artifacts built for a different feature schema.
EmptyCatalogError        asked to score an empty catalog.
ScoreWidthMismatchError  model output width != catalog size.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from broadband_recommender.errors import (
    EmptyCatalogError,
    ModelNotReadyError,
    ScoreWidthMismatchError,
)
from broadband_recommender.features.extractor import extract
from broadband_recommender.features.normalizer import (
    NormalizationParameters,
    load_normalization_params,
    normalize,
)
from broadband_recommender.features.schema import DEFAULT_SCHEMA, FeatureSchema
from broadband_recommender.ml.scoring_model import ProductScoringModel
from broadband_recommender.models.customer import CustomerTelemetry
from broadband_recommender.models.product import Product
from broadband_recommender.models.recommendation import RankedRecommendation
from broadband_recommender.recommendations.explainer import explain
from broadband_recommender.recommendations.ranker import rank_products

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecommendationPipeline:
    """Immutable extract -> normalize -> score -> rank -> explain service.

    Attributes:
        model:     Loaded scoring model (read-only).
        params:    Training-time normalization parameters.
        schema:    Feature order shared with the model.
        log_top_n: Number of top products logged per request at INFO.
    """

    model:     ProductScoringModel
    params:    NormalizationParameters
    schema:    FeatureSchema = DEFAULT_SCHEMA
    log_top_n: int = 3

    def __post_init__(self) -> None:
        self.schema.validate_feature_names(
            self.params.feature_names, block="continuous", what="normalization parameters"
        )
        self.schema.validate_width(self.model.input_width, what="scoring model input")
        self.schema.validate_feature_names(self.model.feature_cols, what="scoring model")

    @classmethod
    def from_artifacts(
        cls,
        model_path: Path,
        params_path: Path,
        schema: FeatureSchema = DEFAULT_SCHEMA,
        log_top_n: int = 3,
    ) -> "RecommendationPipeline":
        """Load both artifacts and build the pipeline.

        Raises:
            ModelNotReadyError:  If either artifact is missing or cannot be loaded.
            SchemaMismatchError: If the artifacts disagree with ``schema``.
        """
        try:
            params = load_normalization_params(params_path)
        except Exception as exc:
            raise ModelNotReadyError(str(params_path), str(exc)) from exc

        try:
            model = ProductScoringModel.load(model_path)
        except Exception as exc:
            raise ModelNotReadyError(str(model_path), str(exc)) from exc

        return cls(model=model, params=params, schema=schema, log_top_n=log_top_n)

    def check_catalog(self, products: Sequence[Product]) -> None:
        """Raise unless ``products`` can be scored by this model.

        Raises:
            EmptyCatalogError:       If ``products`` is empty.
            ScoreWidthMismatchError: If the model scores a different number of products.
        """
        if not products:
            raise EmptyCatalogError()
        if self.model.output_width != len(products):
            raise ScoreWidthMismatchError(expected=len(products), actual=self.model.output_width)
        trained = self.model.product_names
        if trained and trained != [p.name for p in products]:
            logger.warning(
                "Catalog product names differ from those the model was trained on; "
                "scores follow catalog position."
            )

    def score(self, raw: Mapping[str, Any] | CustomerTelemetry) -> np.ndarray:
        """Raw model scores for one customer, in the model's output order."""
        features = extract(raw)
        return self.model.predict(normalize(features, self.params, self.schema))

    def get_recommendations(
        self,
        raw: Mapping[str, Any] | CustomerTelemetry,
        products: Sequence[Product],
    ) -> list[RankedRecommendation]:
        """Rank and explain every catalog product for one customer.

        Args:
            raw:      Resolved customer record (lookup happens upstream).
            products: Catalog in the order the model was trained on.

        Returns:
            One RankedRecommendation per product, rank 1 first.
        """
        if not products:
            raise EmptyCatalogError()

        features = extract(raw)
        vector   = normalize(features, self.params, self.schema)
        scores   = self.model.predict(vector)
        if len(scores) != len(products):
            raise ScoreWidthMismatchError(expected=len(products), actual=len(scores))

        ranked = rank_products(products, scores)
        recommendations = [item.to_recommendation(explain(features, item)) for item in ranked]

        logger.debug("Input vector for %r: %s", features.customer_name, vector.tolist())
        logger.debug("Model scores: %s", [round(float(s), 6) for s in scores])
        logger.info(
            "Ranked %d product(s) for customer=%r; top: %s",
            len(recommendations),
            features.customer_name,
            ", ".join(
                f"{r.rank}:{r.product_name}({r.score:.4f})"
                for r in recommendations[: self.log_top_n]
            ),
        )
        return recommendations
