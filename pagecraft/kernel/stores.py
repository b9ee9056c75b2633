"""
Pagecraft Kernel: Store Tables

Target-store data arrives as CSV from the import collaborator. This module
turns CSV text into a `storeCsv` content fragment, derives the project-level
`stores` projection from that fragment, and normalizes the target-stores
display config kept in section data.

The first five CSV columns are always read as store id, store name, postal
code, address and prefecture, in that order.
"""

from __future__ import annotations

import csv
from typing import Any

from pagecraft.kernel.types import (
    CANONICAL_STORE_KEYS,
    DEFAULT_TARGET_STORES_CONFIG,
    PREFECTURE_FILTER_KEY,
    now_iso,
)

_OPTIONAL_COLUMN_STRINGS: tuple[str, ...] = (
    "label",
    "falseLabel",
    "badgeColor",
    "badgeTextColor",
    "falseBadgeColor",
    "falseBadgeTextColor",
    "filterLabel",
)


def parse_csv(text: str) -> tuple[list[str], list[list[str]]]:
    """
    Split CSV text into (headers, rows).
    A leading BOM is stripped, blank lines are skipped and every cell is trimmed.
    """
    text = text.removeprefix("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.strip() for line in text.split("\n")]
    reader = csv.reader(line for line in lines if line)
    records = [[cell.strip() for cell in record] for record in reader]
    if not records:
        return [], []
    return records[0], records[1:]


def build_store_csv(headers: list[str], rows: list[list[str]]) -> dict[str, Any]:
    """
    `storeCsv` fragment for section content. Rows become header-keyed dicts;
    duplicate stats are keyed on the first (store id) column.
    """
    records = [
        {header: row[i] if i < len(row) else "" for i, header in enumerate(headers)}
        for row in rows
    ]
    seen: set[str] = set()
    duplicates: list[str] = []
    if headers:
        for record in records:
            store_id = record[headers[0]]
            if not store_id:
                continue
            if store_id in seen and store_id not in duplicates:
                duplicates.append(store_id)
            seen.add(store_id)
    return {
        "headers": list(headers),
        "rows": records,
        "importedAt": now_iso(),
        "stats": {
            "totalRows": len(records),
            "duplicateCount": len(duplicates),
            "duplicateIds": duplicates,
        },
    }


def build_stores_from_store_csv(store_csv: Any) -> dict[str, Any] | None:
    """
    Project-level `stores` projection of a `storeCsv` fragment,
    or None when there are fewer than five columns.
    """
    if not isinstance(store_csv, dict) or not isinstance(store_csv.get("headers"), list):
        return None
    headers = [str(header) for header in store_csv["headers"]]
    if len(headers) < len(CANONICAL_STORE_KEYS):
        return None
    rows = [
        {str(key): "" if value is None else str(value) for key, value in row.items()}
        if isinstance(row, dict) else {}
        for row in store_csv.get("rows") or []
    ]
    return {
        "columns": headers,
        "extraColumns": headers[len(CANONICAL_STORE_KEYS):],
        "rows": rows,
        "canonical": dict(zip(CANONICAL_STORE_KEYS, headers)),
    }


def _normalize_column(value: dict[str, Any]) -> dict[str, Any]:
    selected = value.get("selectedValues")
    column: dict[str, Any] = {
        "showAsLabel": bool(value.get("showAsLabel")),
        "enableFilter": bool(value.get("enableFilter")),
        "selectedValues": [v for v in selected if v is not None and v != ""]
        if isinstance(selected, list) else [],
        "valueDisplay": "raw" if value.get("valueDisplay") == "raw" else "label",
    }
    for key in _OPTIONAL_COLUMN_STRINGS:
        if isinstance(value.get(key), str):
            column[key] = value[key]
    return column


def _keys(value: Any) -> list[str]:
    return [key for key in value if isinstance(key, str) and key] if isinstance(value, list) else []


def normalize_target_stores_config(config: Any) -> dict[str, Any]:
    """
    Canonical target-stores display config. The prefecture column is always
    the first filter key.
    """
    raw = config if isinstance(config, dict) else {}
    label_keys = _keys(raw.get("labelKeys"))
    filter_keys = _keys(raw.get("filterKeys"))
    page_size = raw.get("pageSize")
    if isinstance(page_size, bool) or not isinstance(page_size, int | float) or page_size <= 0:
        page_size = DEFAULT_TARGET_STORES_CONFIG["pageSize"]

    columns = raw.get("columnConfig")
    column_config = {
        str(key): _normalize_column(value)
        for key, value in (columns.items() if isinstance(columns, dict) else ())
        if isinstance(value, dict)
    }
    return {
        "labelKeys": label_keys,
        "filterKeys": list(dict.fromkeys([PREFECTURE_FILTER_KEY, *filter_keys])),
        "pageSize": page_size,
        "columnConfig": column_config,
    }
