#!/usr/bin/env python3
"""Tabular data acquisition for resource previews.

Sources are tried in a fixed order and the first one yielding records wins:
the DataStore query endpoint, then the raw file parsed as JSON, then as CSV.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .client import PortalAPIClient
from .utils.exceptions import (
    UnsupportedFormatError,
    UpstreamApiError,
    UpstreamHttpError,
)
from .utils.logger import get_logger
from .utils.tables import (
    SOURCE_CSV,
    SOURCE_DATASTORE,
    SOURCE_JSON,
    TableSource,
    clamp_rows,
    parse_csv,
    parse_json_records,
)

logger = get_logger("preview")


@dataclass
class LoadedTable:
    fields: List[str]
    records: List[Dict[str, Any]]
    source: TableSource
    resource: Optional[Dict[str, Any]] = field(default=None)


def _datastore_fields(result: Dict[str, Any], records: List[Dict[str, Any]]) -> List[str]:
    fields = [
        f.get("id")
        for f in result.get("fields") or []
        if isinstance(f, dict) and f.get("id") and f.get("id") != "_id"
    ]
    if fields:
        return fields
    return [key for key in (records[0] if records else {}) if key != "_id"]


def _is_json(fmt: str, content_type: str, url: str) -> bool:
    return fmt == "JSON" or "json" in content_type or url.lower().endswith(".json")


def _is_csv(fmt: str, content_type: str, url: str) -> bool:
    return fmt == "CSV" or "csv" in content_type or url.lower().endswith(".csv")


async def _load_from_datastore(
    client: PortalAPIClient, resource_id: str, limit: int
) -> Optional[LoadedTable]:
    try:
        result = await client.request(
            "GET", "datastore_search", {"resource_id": resource_id, "limit": limit}
        )
    except (UpstreamApiError, UpstreamHttpError) as e:
        logger.info(
            f"DataStore unavailable for resource {resource_id}, falling back to file",
            extra={"resource_id": resource_id, "reason": e.message},
        )
        return None

    records = result.get("records") if isinstance(result, dict) else None
    if not records:
        return None

    records = [r for r in records if isinstance(r, dict)][:limit]
    return LoadedTable(
        fields=_datastore_fields(result, records),
        records=records,
        source=TableSource(kind=SOURCE_DATASTORE, total_count=result.get("total")),
    )


async def load_table(client: PortalAPIClient, resource_id: str, limit: Any) -> LoadedTable:
    """Load at most ``clamp_rows(limit)`` records for a resource.

    Args:
        client: Portal API client
        resource_id: Resource to preview
        limit: Requested row count, clipped to 1..max_preview_rows (at most 100)

    Returns:
        The loaded table together with the resource metadata when it was
        resolved for the file fallback

    Raises:
        UnsupportedFormatError: If the raw file is neither JSON nor CSV
        UpstreamHttpError, UpstreamApiError: If the resource cannot be resolved
            or downloaded
    """
    limit = clamp_rows(limit, client.settings.max_preview_rows)

    table = await _load_from_datastore(client, resource_id, limit)
    if table is not None:
        return table

    resource = await client.request("GET", "resource_show", {"id": resource_id})
    if not isinstance(resource, dict):
        resource = {}
    url = resource.get("url") or ""
    fmt = str(resource.get("format") or "").strip().upper()

    if not url:
        raise UnsupportedFormatError(
            f"Resource {resource_id} has no download URL to preview", fmt or None
        )

    raw = await client.fetch_resource(url)

    if _is_json(fmt, raw.content_type, url):
        try:
            fields, records = parse_json_records(raw.text, limit)
        except ValueError:
            raise UnsupportedFormatError(
                f"Resource {resource_id} is not valid JSON", fmt or "JSON"
            )
        kind = SOURCE_JSON
    elif _is_csv(fmt, raw.content_type, url):
        fields, records = parse_csv(raw.text, limit)
        kind = SOURCE_CSV
    else:
        raise UnsupportedFormatError(
            f"Unsupported format for preview: {fmt or raw.content_type or 'unknown'}. "
            "Only CSV and JSON resources can be previewed.",
            fmt or None,
        )

    return LoadedTable(
        fields=fields,
        records=records[:limit],
        source=TableSource(kind=kind, origin_url=url),
        resource=resource,
    )
