"""
HTTP serving surface.

Start-up (FastAPI lifespan)
---------------------------
1. Load the product catalog.           Failure is fatal: the app does not start.
2. Load the customer telemetry export. Failure is fatal.
3. Build the RecommendationPipeline.   Failure is recorded, not fatal: the
   app starts in a NOT READY state and /recommendations answers 503 until
   the artifacts are fixed and the process restarted.

Everything loaded here lives on ``app.state`` and is read-only afterwards.

Endpoints
---------
GET /health                               readiness + catalog size
GET /recommendations?customerName=<name>  ranked, explained product list

Both handlers are plain ``def`` functions, so FastAPI runs them in its worker
threadpool and a blocking model call never stalls the event loop.

Run::

    broadband-recommender serve
    # or
    uvicorn --factory broadband_recommender.api:app_factory --port 3000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request

from broadband_recommender import __version__
from broadband_recommender.config import AppConfig, load_config
from broadband_recommender.errors import RecommenderError
from broadband_recommender.ingestion.catalog_markdown import load_catalog
from broadband_recommender.ingestion.customer_csv import find_customer, load_customer_records
from broadband_recommender.recommendations.pipeline import RecommendationPipeline

logger = logging.getLogger(__name__)


def build_pipeline_or_none(config: AppConfig, products) -> tuple[Optional[RecommendationPipeline], str]:
    """Try to build the pipeline; return ``(None, reason)`` when it is not ready."""
    try:
        pipeline = RecommendationPipeline.from_artifacts(
            config.model.model_path,
            config.model.normalization_path,
            log_top_n=config.serving.log_top_n,
        )
        pipeline.check_catalog(products)
    except RecommenderError as exc:
        logger.error("Recommendation pipeline NOT READY: %s", exc)
        return None, str(exc)
    return pipeline, ""


def create_app(
    config: AppConfig | None = None,
    pipeline: RecommendationPipeline | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config:   Application config; ``load_config()`` when omitted.
        pipeline: Pre-built pipeline (tests, embedding); loaded from the
                  configured artifacts when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = config or load_config()

        logger.info("Loading product catalog: %s", cfg.data.catalog_path)
        products = load_catalog(Path(cfg.data.catalog_path))

        logger.info("Loading customer data: %s", cfg.data.customers_path)
        customers = load_customer_records(Path(cfg.data.customers_path))

        if pipeline is not None:
            pipeline.check_catalog(products)
            ready, reason = pipeline, ""
        else:
            ready, reason = build_pipeline_or_none(cfg, products)

        app.state.config           = cfg
        app.state.products         = products
        app.state.customers        = customers
        app.state.pipeline         = ready
        app.state.not_ready_reason = reason
        logger.info(
            "Server ready: %d product(s), %d customer(s), pipeline=%s",
            len(products), len(customers), "ready" if ready else "NOT READY",
        )
        yield

    app = FastAPI(title="Broadband Product Recommender", version=__version__, lifespan=lifespan)

    @app.get("/health")
    def health(request: Request) -> dict:
        state = request.app.state
        return {
            "status":   "ready" if state.pipeline is not None else "not_ready",
            "products": len(state.products),
            "detail":   state.not_ready_reason,
        }

    @app.get("/recommendations")
    def recommendations(
        request: Request,
        customer_name: Optional[str] = Query(None, alias="customerName"),
    ) -> list[dict]:
        logger.info("GET /recommendations customerName=%r", customer_name)
        if not customer_name or not customer_name.strip():
            raise HTTPException(status_code=400, detail="Customer name is required.")

        state = request.app.state
        if state.pipeline is None:
            raise HTTPException(
                status_code=503,
                detail=f"Recommendations are not available: {state.not_ready_reason}",
            )

        customer = find_customer(state.customers, customer_name)
        if customer is None:
            raise HTTPException(status_code=404, detail="Customer not found.")

        try:
            ranked = state.pipeline.get_recommendations(customer, state.products)
        except Exception as exc:
            logger.exception("Error getting recommendations for %r", customer_name)
            raise HTTPException(status_code=500, detail="Internal server error.") from exc

        return [r.to_api_dict() for r in ranked]

    return app


def app_factory() -> FastAPI:
    """Zero-argument factory for ``uvicorn --factory``."""
    from broadband_recommender.utils.logging import configure_logging

    config = load_config()
    configure_logging(config.logging)
    return create_app(config)
