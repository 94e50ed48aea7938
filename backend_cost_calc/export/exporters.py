"""
Estimate exporters.

Serialises a saved estimate to CSV or JSON with one stable column per
provider, independent of which providers a category models.
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from backend_cost_calc.core.usage import Category, Provider
from backend_cost_calc.storage.models import Estimate
from backend_cost_calc.utils.logging import get_logger

logger = get_logger(__name__)

PROVIDER_COLUMNS = list(Provider)
EXPORT_FORMATS = ("csv", "json")


def default_export_filename(estimate: Estimate, fmt: str) -> str:
    return f"estimate-{estimate.id or 'unknown'}.{fmt}"


def estimate_to_rows(estimate: Estimate) -> List[List[str]]:
    """Tabulate an estimate as header, one row per category, and a total row.

    Providers not modelled for a category are written as 0.00.
    """
    header = ["Service"] + [provider.value for provider in PROVIDER_COLUMNS]
    rows = [header]
    for category in Category:
        breakdown = estimate.costs[category]
        rows.append(
            [category.value]
            + [f"{breakdown.get(provider):.2f}" for provider in PROVIDER_COLUMNS]
        )
    rows.append(["Total", f"{estimate.total_cost:.2f}"] + [""] * (len(PROVIDER_COLUMNS) - 1))
    return rows


def estimate_to_dict(estimate: Estimate) -> Dict[str, Any]:
    return {
        "id": estimate.id,
        "user_id": estimate.user_id,
        "name": estimate.name,
        "created_at": estimate.created_at.isoformat(),
        "total_cost": estimate.total_cost,
        "services": estimate.services(),
    }


def export_csv(estimate: Estimate, output_path: str) -> Path:
    """Export an estimate to a CSV file.

    Args:
        estimate: Estimate to export
        output_path: Output file path

    Returns:
        Path to generated file
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerows(estimate_to_rows(estimate))

    logger.info("estimate_exported", estimate_id=estimate.id, format="csv", path=str(output_file))
    return output_file


def export_json(estimate: Estimate, output_path: str) -> Path:
    """Export an estimate to a JSON file."""
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(estimate_to_dict(estimate), indent=2)
    output_file.write_text(payload, encoding="utf-8")

    logger.info("estimate_exported", estimate_id=estimate.id, format="json", path=str(output_file))
    return output_file


def export_estimate(estimate: Estimate, fmt: str, output_path: Optional[str] = None) -> Path:
    """Export in the named format, defaulting the file name from the estimate id.

    Raises:
        ValueError: If the format is not supported
    """
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}; expected one of: {list(EXPORT_FORMATS)}")
    path = output_path or default_export_filename(estimate, fmt)
    if fmt == "csv":
        return export_csv(estimate, path)
    return export_json(estimate, path)
