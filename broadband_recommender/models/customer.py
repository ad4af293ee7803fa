"""
Customer telemetry models.

``CustomerTelemetry`` is the typed view of one row from the gateway telemetry
export.  Every field is optional text: the export is not guaranteed clean, so
parsing into numbers is the extractor's job, never the model's.  Build it with
``CustomerTelemetry.from_raw()``, which accepts any string-keyed mapping and
cannot fail.

``CanonicalCustomerFeatures`` is the extractor's output: every schema feature
as a finite float plus the display and label fields the explanation templates
and the trainer's label rules read.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from broadband_recommender.features.schema import (
    CATEGORICAL_FEATURES,
    CONTINUOUS_FEATURES,
    FeatureSchema,
)

# Alternate spellings seen in telemetry exports, first non-empty wins.
_NAME_KEYS: tuple[str, ...] = ("CustomerName", "customerName", "customer_name")
_RX_AVG_KEYS: tuple[str, ...] = ("rx_avg_bps", "rxAvgBps")


def _as_text(value: Any) -> Optional[str]:
    """Coerce a raw cell to text; ``None`` and blank strings become ``None``."""
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else None


def _first_text(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        text = _as_text(raw.get(key))
        if text is not None:
            return text
    return None


class CustomerTelemetry(BaseModel):
    """One raw customer record with every field optional.

    Attributes:
        customer_name:       Display name (``CustomerName`` in the export).
        wireless_clients_count: Wi-Fi client count.
        wired_clients_count: Ethernet client count.
        extenders:           Number of mesh extenders installed.
        rx_avg_bps:          Average receive rate; also the bandwidth-usage measure.
        network_speed:       Plan speed with unit suffix, e.g. ``"500.0M"``, ``"1.0G"``.
        wifi_security:       Add-on flag (``"true"``/``"1"`` = subscribed).
        wifi_security_plus:  Add-on flag.
        total_shield:        Add-on flag.
        state:               Two-letter region code.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    customer_name: Optional[str] = None
    wireless_clients_count: Optional[str] = None
    wired_clients_count: Optional[str] = None
    extenders: Optional[str] = None
    rx_avg_bps: Optional[str] = None
    network_speed: Optional[str] = None
    wifi_security: Optional[str] = None
    wifi_security_plus: Optional[str] = None
    total_shield: Optional[str] = None
    state: Optional[str] = None
    tx_avg_bps: Optional[str] = None
    rx_p95_bps: Optional[str] = None
    tx_p95_bps: Optional[str] = None
    rx_max_bps: Optional[str] = None
    tx_max_bps: Optional[str] = None
    rssi_mean: Optional[str] = None
    rssi_median: Optional[str] = None
    rssi_max: Optional[str] = None
    rssi_min: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | "CustomerTelemetry") -> "CustomerTelemetry":
        """Build a record from any string-keyed mapping.  Never raises.

        Unknown keys are ignored; values of any type are stringified.
        """
        if isinstance(raw, CustomerTelemetry):
            return raw
        if not isinstance(raw, Mapping):
            return cls()

        values: dict[str, Optional[str]] = {}
        for name in cls.model_fields:
            if name in ("customer_name", "rx_avg_bps"):
                continue
            values[name] = _as_text(raw.get(name))
        values["customer_name"] = _first_text(raw, _NAME_KEYS)
        values["rx_avg_bps"]    = _first_text(raw, _RX_AVG_KEYS)
        return cls(**values)


class CanonicalCustomerFeatures(BaseModel):
    """Extracted, model-ready customer features.

    Every schema feature is present and finite; 0.0 stands in for anything
    missing or unparseable in the source record.

    Attributes:
        customer_name:  Display-only name ("" when the export had none).
        coverage_size:  Derived label: ``"Small"``, ``"Medium"`` or ``"Large"``.
        extenders:      Parsed extender count (drives coverage_size).
        rx_avg_bps:     Average receive rate in bits per second.
        wifi_security / wifi_security_plus / total_shield: 0/1 add-on flags.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str = ""
    coverage_size: str = "Medium"
    extenders: int = 0
    rx_avg_bps: float = 0.0
    wifi_security: int = 0
    wifi_security_plus: int = 0
    total_shield: int = 0

    # continuous schema block
    total_devices: float = 0.0
    avg_bandwidth_usage: float = 0.0
    network_speed: float = 0.0
    tx_avg_bps: float = 0.0
    rx_p95_bps: float = 0.0
    tx_p95_bps: float = 0.0
    rx_max_bps: float = 0.0
    tx_max_bps: float = 0.0
    rssi_mean: float = 0.0
    rssi_median: float = 0.0
    rssi_max: float = 0.0
    rssi_min: float = 0.0

    # categorical schema block
    coverage_size_Small: int = 0
    coverage_size_Medium: int = 0
    coverage_size_Large: int = 0
    state_TX: int = 0
    state_CA: int = 0
    state_CT: int = 0
    state_FL: int = 0
    state_OH: int = 0
    state_IN: int = 0
    state_PA: int = 0
    state_WV: int = 0
    state_IL: int = 0
    state_NV: int = 0

    @field_validator(*CONTINUOUS_FEATURES, "rx_avg_bps")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"feature values must be finite, got {v}.")
        return v

    @field_validator(*CATEGORICAL_FEATURES, "wifi_security", "wifi_security_plus", "total_shield")
    @classmethod
    def validate_flag(cls, v: int) -> int:
        if v not in (0, 1):
            raise ValueError(f"flag values must be 0 or 1, got {v}.")
        return v

    def feature_values(self, schema: FeatureSchema | None = None) -> dict[str, float]:
        """Return ``{feature_name: value}`` for every schema feature, in schema order."""
        names = (schema or FeatureSchema()).feature_names
        return {name: float(getattr(self, name, 0.0)) for name in names}
