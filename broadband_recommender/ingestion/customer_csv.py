"""
Customer telemetry CSV loader.

Format — comma delimited with a header row.  Columns are whatever the gateway
export provides; the extractor reads the ones it knows (see
``models.customer.CustomerTelemetry``) and ignores the rest.  Cells are kept
as raw strings: no parsing happens here, so one malformed cell can never
reject a whole file.

Customer lookup is by display name, case-insensitive, across the
``CustomerName`` / ``customerName`` / ``customer_name`` spellings.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Optional

from broadband_recommender.models.customer import CustomerTelemetry

logger = logging.getLogger(__name__)


def load_customer_records(path: Path) -> list[dict[str, str]]:
    """Read every row of a telemetry CSV as a ``{column: cell}`` dict.

    Args:
        path: Path to the CSV file.

    Returns:
        Rows in file order.  Header names are stripped of surrounding
        whitespace (and a UTF-8 BOM, if present).

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"Customer data not found: {path}")

    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        records = [
            {(k or "").strip(): (v if v is not None else "") for k, v in row.items()}
            for row in reader
        ]

    logger.info("Loaded %d customer record(s) from %s", len(records), path)
    return records


def customer_name_of(record: Mapping[str, Any]) -> str:
    """Return the resolved display name of a raw record ("" when absent)."""
    return CustomerTelemetry.from_raw(record).customer_name or ""


def find_customer(
    records: Sequence[Mapping[str, Any]],
    name: str,
) -> Optional[Mapping[str, Any]]:
    """Return the first record whose name matches ``name`` case-insensitively.

    Returns:
        The raw record, or ``None`` when no customer matches (or ``name`` is blank).
    """
    wanted = name.strip().lower()
    if not wanted:
        return None
    for record in records:
        if customer_name_of(record).strip().lower() == wanted:
            return record
    return None


def customer_names(records: Sequence[Mapping[str, Any]]) -> list[str]:
    """Display names of all records that have one, in file order."""
    return [n for n in (customer_name_of(r) for r in records) if n]
