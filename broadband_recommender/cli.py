"""
Broadband Product Recommender — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (train, recommend, serve, etc.).
  5. Report result to stdout.

Install and run::

    pip install -e .
    broadband-recommender --help
    broadband-recommender validate-config
    broadband-recommender list-products
    broadband-recommender list-customers
    broadband-recommender train
    broadband-recommender recommend --customer "John Doe" --top 5
    broadband-recommender serve --port 3000
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="broadband-recommender",
    help="Broadband add-on product recommender — training, scoring and HTTP serving.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from broadband_recommender.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from broadband_recommender.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_catalog_or_exit(catalog_path: Path):
    from broadband_recommender.errors import EmptyCatalogError
    from broadband_recommender.ingestion.catalog_markdown import load_catalog

    try:
        return load_catalog(catalog_path)
    except (FileNotFoundError, EmptyCatalogError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


def _load_customers_or_exit(customers_path: Path):
    from broadband_recommender.ingestion.customer_csv import load_customer_records

    try:
        return load_customer_records(customers_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Customers file:   {config.data.customers_path}")
    typer.echo(f"  Catalog file:     {config.data.catalog_path}")
    typer.echo(f"  Model artifact:   {config.model.model_path}")
    typer.echo(f"  Normalization:    {config.model.normalization_path}")
    typer.echo(f"  Serving address:  {config.serving.host}:{config.serving.port}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("list-products")
def list_products(
    catalog_file: Optional[str] = typer.Option(
        None,
        "--file",
        "-f",
        help="Path to the Markdown catalog. Defaults to config.data.catalog_path.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Parse the product catalog and print it in model output order."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(catalog_file) if catalog_file else Path(config.data.catalog_path)
    products = _load_catalog_or_exit(path)

    for index, product in enumerate(products):
        typer.echo(f"  {index:>2}  {product.name:<40}  ${product.price:>7.2f}")
        for phrase in product.features:
            typer.echo(f"        - {phrase}")
    typer.echo("")
    typer.echo(f"[OK] {len(products)} product(s) in {path}.")


@app.command("list-customers")
def list_customers(
    customers_file: Optional[str] = typer.Option(
        None,
        "--file",
        "-f",
        help="Path to the telemetry CSV. Defaults to config.data.customers_path.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Print the names of all customers in the telemetry export."""
    from broadband_recommender.ingestion.customer_csv import customer_names

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(customers_file) if customers_file else Path(config.data.customers_path)
    records = _load_customers_or_exit(path)
    names = customer_names(records)

    for name in names:
        typer.echo(f"  {name}")
    unnamed = len(records) - len(names)
    if unnamed:
        typer.echo(f"  ({unnamed} record(s) without a customer name)")
    typer.echo("")
    typer.echo(f"[OK] {len(records)} customer record(s) in {path}.")


@app.command("train")
def train(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    dataset_version: str = typer.Option(
        "",
        "--dataset-version",
        help="Free-text label stored in the model metadata sidecar.",
    ),
) -> None:
    """Fit normalization parameters and the per-product scoring model.

    \b
    Reads:   config.data.customers_path, config.data.catalog_path
    Writes:  config.model.{model_path, normalization_path, metadata_path}
    """
    from broadband_recommender.errors import EmptyCatalogError
    from broadband_recommender.ml.trainer import train_scoring_model, write_artifacts

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    products = _load_catalog_or_exit(Path(config.data.catalog_path))
    records  = _load_customers_or_exit(Path(config.data.customers_path))

    typer.echo(f"Training on {len(records)} customer(s) x {len(products)} product(s) ...")
    try:
        result = train_scoring_model(records, products, config.training)
    except (ValueError, EmptyCatalogError) as exc:
        typer.echo(f"[ERROR] Training failed: {exc}", err=True)
        raise typer.Exit(code=1)

    paths = write_artifacts(result, config.model, dataset_version=dataset_version)

    typer.echo(f"  Train rows:       {result.n_train}")
    typer.echo(f"  Validation rows:  {result.n_val}")
    if result.val_metrics:
        typer.echo(
            f"  Validation:       logloss={result.val_metrics['logloss']:.4f} "
            f"accuracy={result.val_metrics['accuracy']:.4f}"
        )
    typer.echo("  Positive labels:")
    for name, count in result.label_counts.items():
        typer.echo(f"    {name:<40} {count}")
    for kind, path in paths.items():
        typer.echo(f"  {kind + ':':<18}{path}")
    typer.echo("")
    typer.echo("[OK] Training complete.")


@app.command("recommend")
def recommend(
    customer: str = typer.Option(
        ...,
        "--customer",
        "-c",
        help="Customer name (case-insensitive).",
    ),
    top_n: Optional[int] = typer.Option(
        None,
        "--top",
        help="Show only the top N products. Shows all if omitted.",
    ),
    output_dir: Optional[str] = typer.Option(
        None,
        "--output-dir",
        help="Also write a JSON report here (e.g. data/outputs/recommendations).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Rank and explain every catalog product for one customer."""
    from broadband_recommender.errors import RecommenderError
    from broadband_recommender.ingestion.customer_csv import find_customer
    from broadband_recommender.recommendations.pipeline import RecommendationPipeline
    from broadband_recommender.recommendations.reporter import (
        format_recommendation_table,
        write_recommendation_json,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if top_n is not None and top_n < 1:
        typer.echo("[ERROR] --top must be >= 1.", err=True)
        raise typer.Exit(code=1)

    products = _load_catalog_or_exit(Path(config.data.catalog_path))
    records  = _load_customers_or_exit(Path(config.data.customers_path))

    record = find_customer(records, customer)
    if record is None:
        typer.echo(f"[ERROR] Customer not found: {customer!r}", err=True)
        raise typer.Exit(code=1)

    try:
        pipeline = RecommendationPipeline.from_artifacts(
            config.model.model_path,
            config.model.normalization_path,
            log_top_n=config.serving.log_top_n,
        )
        recs = pipeline.get_recommendations(record, products)
    except RecommenderError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        typer.echo("  Run 'broadband-recommender train' first.", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Recommendations for {customer}:")
    typer.echo("")
    typer.echo(format_recommendation_table(recs, top_n=top_n))

    if output_dir:
        path = write_recommendation_json(recs, Path(output_dir), customer)
        typer.echo("")
        typer.echo(f"  Report written: {path}")

    typer.echo("")
    typer.echo(f"[OK] {len(recs)} product(s) ranked.")


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(
        None,
        "--host",
        help="Bind address. Defaults to config.serving.host.",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        help="Listen port. Defaults to config.serving.port.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Start the HTTP recommendation service.

    The catalog and customer data must load or the server will not start.
    Missing model artifacts only put the service into a NOT READY state
    (GET /health reports why; GET /recommendations answers 503).
    """
    import uvicorn

    from broadband_recommender.api import create_app

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    bind_host = host or config.serving.host
    bind_port = port or config.serving.port
    typer.echo(f"Serving recommendations on http://{bind_host}:{bind_port}")

    uvicorn.run(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_config=None,
    )


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
