"""
Customer feature extraction: raw telemetry record -> CanonicalCustomerFeatures.

``extract()`` never raises.  Telemetry exports are messy (blank cells, units
glued onto numbers, ``"N/A"``), and one bad field must not cost the customer
their recommendations, so every parse degrades to 0 / False.

Parsing rules
-------------
integers      Leading integer prefix: ``"12"`` -> 12, ``"12 devices"`` -> 12,
              ``"3.7"`` -> 3, ``"abc"`` -> 0.  Values past 10**12 -> 0.
floats        Leading decimal prefix: ``"500.0M"`` -> 500.0, ``"-71.5"`` ->
              -71.5, ``"1e6"`` -> 1000000.0.  Non-finite results -> 0.0.
network_speed First ``<number><letters>`` match; unit ``G`` (any case) is
              multiplied by 1000 to give Mbps, any other unit passes through.
              A bare number, a number with more than nine integer digits, or no
              match at all, yields 0.
booleans      ``"true"`` / ``"1"`` (case-insensitive) -> 1, everything else -> 0.

Coverage size (derived, never read from the record)
---------------------------------------------------
    Large   extenders >= 2  OR  total_devices > 15
    Small   extenders == 0  AND total_devices <= 5
    Medium  otherwise

Signal-strength and throughput telemetry is copied verbatim -- no smoothing
or outlier clipping -- so serving sees exactly what training saw.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from typing import Any, Optional

from broadband_recommender.features.schema import (
    COVERAGE_SIZES,
    REGIONS,
    coverage_column,
    region_column,
)
from broadband_recommender.models.customer import CanonicalCustomerFeatures, CustomerTelemetry

logger = logging.getLogger(__name__)

_INT_PREFIX   = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_SPEED        = re.compile(r"(?<![\d.])(\d{1,9}(?:\.\d*)?|\.\d+)\s*([A-Za-z]+)")

_TRUTHY: frozenset[str] = frozenset({"true", "1"})

# Counts beyond this are garbage, not telemetry.
_INT_LIMIT = 10**12
_INT_MAX_DIGITS = len(str(_INT_LIMIT))

# Telemetry fields copied straight through as floats.
_PASSTHROUGH_FLOATS: tuple[str, ...] = (
    "tx_avg_bps",
    "rx_p95_bps",
    "tx_p95_bps",
    "rx_max_bps",
    "tx_max_bps",
    "rssi_mean",
    "rssi_median",
    "rssi_max",
    "rssi_min",
)


# ── Field parsers ──────────────────────────────────────────────────────────────

def parse_int(value: Optional[str]) -> int:
    """Parse a leading integer; 0 on anything unparseable."""
    if value is None:
        return 0
    match = _INT_PREFIX.match(value)
    if not match:
        return 0
    digits = match.group(1).lstrip("+-").lstrip("0")
    if len(digits) > _INT_MAX_DIGITS:
        return 0
    result = int(match.group(1))
    return result if abs(result) <= _INT_LIMIT else 0


def parse_float(value: Optional[str]) -> float:
    """Parse a leading decimal number; 0.0 on anything unparseable or non-finite."""
    if value is None:
        return 0.0
    match = _FLOAT_PREFIX.match(value)
    if not match:
        return 0.0
    result = float(match.group(1))
    return result if math.isfinite(result) else 0.0


def parse_network_speed(value: Optional[str]) -> float:
    """Convert a plan speed string such as ``"500.0M"`` or ``"1.0G"`` to Mbps."""
    if not value:
        return 0.0
    match = _SPEED.search(value)
    if not match:
        return 0.0
    speed = float(match.group(1))
    if match.group(2).upper() == "G":
        speed *= 1000.0
    return speed if math.isfinite(speed) else 0.0


def parse_flag(value: Optional[str]) -> int:
    """Return 1 for ``"true"`` / ``"1"`` (any case), else 0."""
    if value is None:
        return 0
    return 1 if value.strip().lower() in _TRUTHY else 0


def derive_coverage_size(extenders: int, total_devices: int) -> str:
    """Infer the home coverage size label from extender and device counts."""
    if extenders >= 2 or total_devices > 15:
        return "Large"
    if extenders == 0 and total_devices <= 5:
        return "Small"
    return "Medium"


def encode_region(state: Optional[str]) -> dict[str, int]:
    """One-hot encode a region code against the closed ``REGIONS`` vocabulary.

    Unsupported or missing regions encode as all zeros.
    """
    code = state.strip().upper() if state else ""
    return {region_column(r): int(code == r) for r in REGIONS}


def encode_coverage_size(size: str) -> dict[str, int]:
    """One-hot encode a coverage size label (case-insensitive)."""
    label = size.lower()
    return {coverage_column(s): int(label == s.lower()) for s in COVERAGE_SIZES}


# ── Extraction ─────────────────────────────────────────────────────────────────

def extract(raw: Mapping[str, Any] | CustomerTelemetry) -> CanonicalCustomerFeatures:
    """Map one raw customer record to canonical, model-ready features.

    Args:
        raw: A telemetry row (any string-keyed mapping) or a CustomerTelemetry.

    Returns:
        CanonicalCustomerFeatures with every schema feature populated.
    """
    record = CustomerTelemetry.from_raw(raw)

    total_devices = parse_int(record.wireless_clients_count) + parse_int(record.wired_clients_count)
    extenders     = parse_int(record.extenders)
    rx_avg_bps    = parse_float(record.rx_avg_bps)
    coverage_size = derive_coverage_size(extenders, total_devices)

    values: dict[str, Any] = {
        "customer_name":       record.customer_name or "",
        "coverage_size":       coverage_size,
        "extenders":           extenders,
        "rx_avg_bps":          rx_avg_bps,
        "wifi_security":       parse_flag(record.wifi_security),
        "wifi_security_plus":  parse_flag(record.wifi_security_plus),
        "total_shield":        parse_flag(record.total_shield),
        "total_devices":       float(total_devices),
        "avg_bandwidth_usage": rx_avg_bps,
        "network_speed":       parse_network_speed(record.network_speed),
    }
    for name in _PASSTHROUGH_FLOATS:
        values[name] = parse_float(getattr(record, name))
    values.update(encode_coverage_size(coverage_size))
    values.update(encode_region(record.state))

    features = CanonicalCustomerFeatures(**values)
    logger.debug(
        "Extracted features for customer=%r: devices=%d speed=%.1f coverage=%s",
        features.customer_name, total_devices, features.network_speed, coverage_size,
    )
    return features
