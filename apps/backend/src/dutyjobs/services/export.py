"""Rendering of product exports."""

from __future__ import annotations

import csv
import io
import json
from enum import Enum
from typing import Any

from dutyjobs.errors import ExecutorError

EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("ID", "id"),
    ("Title", "title"),
    ("ASIN", "asin"),
    ("Price (USD)", "price_usd"),
    ("FBA Fee (USD)", "fba_fee_estimate_usd"),
    ("HS6 Code", "hs6"),
    ("HS8 Code", "hs8"),
    ("Classification Confidence", "confidence_score"),
]

PREVIEW_LENGTH = 1000


class ExportFormat(str, Enum):
    """Supported export formats."""

    CSV = "csv"
    JSON = "json"


def render_export(products: list[dict[str, Any]], export_format: str) -> str:
    """Render products in the requested format.

    Raises:
        ExecutorError: If the format is not supported.
    """
    try:
        fmt = ExportFormat(export_format)
    except ValueError as e:
        raise ExecutorError(f"Unsupported export format: {export_format}") from e

    if fmt is ExportFormat.JSON:
        return json.dumps(products, indent=2, default=str)
    return render_csv(products)


def render_csv(products: list[dict[str, Any]]) -> str:
    if not products:
        return "No data to export"

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    for product in products:
        writer.writerow([_cell(product.get(key)) for _, key in EXPORT_COLUMNS])
    return buffer.getvalue().rstrip("\n")


def _cell(value: Any) -> str:
    return "" if value is None else str(value)
