"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``BROADBAND_RECOMMENDER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The CLI, the HTTP app, and the trainer all receive an ``AppConfig`` instance —
never raw dicts or individual env var lookups scattered through the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DataConfig(BaseModel):
    """Input data locations."""

    model_config = ConfigDict(frozen=True)

    customers_path: str = "data/current_customers.csv"
    catalog_path: str = "data/product_catalog.md"
    output_dir: str = "data/outputs/recommendations"


class ModelConfig(BaseModel):
    """Scoring model artifact locations."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    artifact_dir: str = "models/product_scorer"
    model_file: str = "scoring_model.pkl"
    normalization_file: str = "normalization.json"
    metadata_file: str = "scoring_model.json"

    @property
    def model_path(self) -> Path:
        return Path(self.artifact_dir) / self.model_file

    @property
    def normalization_path(self) -> Path:
        return Path(self.artifact_dir) / self.normalization_file

    @property
    def metadata_path(self) -> Path:
        return Path(self.artifact_dir) / self.metadata_file


class TrainingConfig(BaseModel):
    """Offline trainer hyperparameters.

    Defaults mirror ``ProductScoringModel.__init__``; the validation split is
    the trailing fraction of customers in file order.
    """

    model_config = ConfigDict(frozen=True)

    validation_fraction: float = 0.2
    num_leaves: int = 15
    learning_rate: float = 0.05
    n_estimators: int = 150
    min_child_samples: int = 5
    feature_fraction: float = 0.9
    bagging_fraction: float = 0.8
    bagging_freq: int = 5
    early_stopping_rounds: int = 20

    @field_validator("validation_fraction")
    @classmethod
    def validate_fraction(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError(f"validation_fraction must be in [0.0, 1.0), got {v}.")
        return v


class ServingConfig(BaseModel):
    """HTTP server and request-logging settings."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 3000
    log_top_n: int = 3

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"port must be in 1..65535, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth."""

    model_config = ConfigDict(frozen=True)

    data: DataConfig = DataConfig()
    model: ModelConfig = ModelConfig()
    training: TrainingConfig = TrainingConfig()
    serving: ServingConfig = ServingConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``; when that default is
            absent, built-in defaults are used.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    raw: dict[str, Any] = {}
    if config_path is None:
        default_path = root / "config" / "default.toml"
        if default_path.exists():
            raw = _read_toml(default_path)
            config_path = default_path
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        raw = _read_toml(config_path)

    # Also merge local.toml if present (gitignored local overrides)
    if config_path is not None:
        local_config_path = config_path.parent / "local.toml"
        if local_config_path.exists():
            raw = _deep_merge(raw, _read_toml(local_config_path))

    # 3. Apply BROADBAND_RECOMMENDER_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _read_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply BROADBAND_RECOMMENDER_* env vars to the raw config dict.

    Supported overrides:
      BROADBAND_RECOMMENDER_MODEL_DIR       → raw["model"]["artifact_dir"]
      BROADBAND_RECOMMENDER_CATALOG_PATH    → raw["data"]["catalog_path"]
      BROADBAND_RECOMMENDER_CUSTOMERS_PATH  → raw["data"]["customers_path"]
      BROADBAND_RECOMMENDER_LOG_LEVEL       → raw["logging"]["level"]
      BROADBAND_RECOMMENDER_DEBUG           → raw["debug"]
    """
    if model_dir := os.environ.get("BROADBAND_RECOMMENDER_MODEL_DIR"):
        raw.setdefault("model", {})["artifact_dir"] = model_dir

    if catalog_path := os.environ.get("BROADBAND_RECOMMENDER_CATALOG_PATH"):
        raw.setdefault("data", {})["catalog_path"] = catalog_path

    if customers_path := os.environ.get("BROADBAND_RECOMMENDER_CUSTOMERS_PATH"):
        raw.setdefault("data", {})["customers_path"] = customers_path

    if log_level := os.environ.get("BROADBAND_RECOMMENDER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("BROADBAND_RECOMMENDER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        data=DataConfig(**raw.get("data", {})),
        model=ModelConfig(**raw.get("model", {})),
        training=TrainingConfig(**raw.get("training", {})),
        serving=ServingConfig(**raw.get("serving", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
