"""CSV generation for employee exports."""

import csv
import io
from datetime import date, datetime
from typing import Any, Dict, List, Sequence


def format_cell(value: Any) -> str:
    """Render one value as CSV cell text; None becomes an empty cell."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def generate_csv_content(
    data: List[Dict[str, Any]],
    fields: Sequence[str],
    include_headers: bool = True,
    delimiter: str = ",",
) -> bytes:
    """
    Generate CSV content from a list of dictionaries.

    Args:
        data: Row dictionaries keyed by column name
        fields: Column names to include (in order)
        include_headers: Whether to include a header row
        delimiter: CSV delimiter character

    Returns:
        CSV content as UTF-8 bytes
    """
    output = io.StringIO()
    writer = csv.DictWriter(
        output,
        fieldnames=list(fields),
        delimiter=delimiter,
        extrasaction="ignore",
    )

    if include_headers:
        writer.writeheader()

    for row in data:
        writer.writerow({name: format_cell(row.get(name)) for name in fields})

    return output.getvalue().encode("utf-8")
