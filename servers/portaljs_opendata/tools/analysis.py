#!/usr/bin/env python3
"""Dataset statistics, related-dataset discovery and dataset comparison."""

import asyncio
from typing import Any, Dict, List, Optional

from ..client import PortalAPIClient
from ..models import Dataset
from ..normalizers import normalize_dataset, normalize_search_results
from ..session import SessionContext
from ..utils.exceptions import PortalMCPError, ValidationError
from ..utils.formatters import format_size
from ..utils.logger import get_logger
from ..utils.validators import (
    CompareDatasetsRequest,
    DatasetStatsRequest,
    RelatedDatasetsRequest,
)
from .base import ToolSpec, portal_url

logger = get_logger("tools.analysis")


def _formats(dataset: Dataset) -> List[str]:
    formats: List[str] = []
    for resource in dataset.resources:
        fmt = (resource.format or "").strip().upper()
        if fmt and fmt not in formats:
            formats.append(fmt)
    return formats


def _total_size(dataset: Dataset) -> int:
    return sum(resource.size or 0 for resource in dataset.resources)


async def get_dataset_stats(
    client: PortalAPIClient, args: DatasetStatsRequest, session: SessionContext
):
    raw = await client.request("GET", "package_show", {"id": args.id})
    dataset = normalize_dataset(raw, portal_url(client))
    total_bytes = _total_size(dataset)

    return {
        "id": dataset.id,
        "name": dataset.name,
        "title": dataset.title,
        "organization": dataset.organization.name if dataset.organization else None,
        "resource_count": len(dataset.resources),
        "formats": _formats(dataset),
        "total_size": format_size(total_bytes),
        "total_size_bytes": total_bytes,
        "datastore_resources": sum(1 for r in dataset.resources if r.datastore_active),
        "tag_count": len(dataset.tags),
        "group_count": len(dataset.groups),
        "created": dataset.created,
        "modified": dataset.modified,
    }


def _tags_query(tags: List[str]) -> str:
    quoted = " OR ".join('"{}"'.format(tag.replace('"', '\\"')) for tag in tags)
    return f"tags:({quoted})"


async def get_related_datasets(
    client: PortalAPIClient, args: RelatedDatasetsRequest, session: SessionContext
):
    """Datasets sharing the source's organization and/or tags.

    Candidates are de-duplicated by id in first-seen order, with the
    organization path searched before the tag path.
    """
    base_url = portal_url(client)
    raw = await client.request("GET", "package_show", {"id": args.id})
    source = normalize_dataset(raw, base_url)
    max_results = client.settings.max_related_results
    rows = max_results + 1

    candidates: List[Dict[str, Any]] = []
    if args.relation_type in ("organization", "both") and source.organization:
        if source.organization.id:
            result = await client.request(
                "GET",
                "package_search",
                {"fq": f"owner_org:{source.organization.id}", "rows": rows},
            )
            candidates.extend(
                normalize_search_results("dataset", result.get("results", []), base_url)
            )

    if args.relation_type in ("tags", "both") and source.tags:
        result = await client.request(
            "GET", "package_search", {"fq": _tags_query(source.tags), "rows": rows}
        )
        candidates.extend(
            normalize_search_results("dataset", result.get("results", []), base_url)
        )

    seen = {source.id}
    related = []
    for candidate in candidates:
        if candidate["id"] in seen:
            continue
        seen.add(candidate["id"])
        related.append(candidate)
        if len(related) >= max_results:
            break

    return {
        "dataset": {"id": source.id, "name": source.name, "title": source.title},
        "relation_type": args.relation_type,
        "count": len(related),
        "related": related,
    }


async def _resolve_dataset(
    client: PortalAPIClient, dataset_id: str, base_url: str
) -> Optional[Dataset]:
    try:
        raw = await client.request("GET", "package_show", {"id": dataset_id})
        return normalize_dataset(raw, base_url)
    except PortalMCPError as e:
        logger.info(
            f"Dataset {dataset_id} could not be resolved for comparison",
            extra={"dataset_id": dataset_id, "error_code": e.error_code},
        )
        return None


def _comparison_entry(dataset: Dataset) -> Dict[str, Any]:
    return {
        "id": dataset.id,
        "name": dataset.name,
        "title": dataset.title,
        "organization": dataset.organization.name if dataset.organization else None,
        "tags": dataset.tags,
        "formats": _formats(dataset),
        "resource_count": len(dataset.resources),
        "total_size": format_size(_total_size(dataset)),
        "license": dataset.license,
        "created": dataset.created,
        "modified": dataset.modified,
    }


def _common(values: List[List[str]]) -> List[str]:
    if not values:
        return []
    rest = [set(v) for v in values[1:]]
    return [v for v in dict.fromkeys(values[0]) if all(v in other for other in rest)]


async def compare_datasets(
    client: PortalAPIClient, args: CompareDatasetsRequest, session: SessionContext
):
    """Fetch up to five datasets concurrently and summarize what they share."""
    if len(args.dataset_ids) > client.settings.max_compare_datasets:
        raise ValidationError(
            f"At most {client.settings.max_compare_datasets} datasets can be compared",
            field="dataset_ids",
        )

    base_url = portal_url(client)
    resolved = await asyncio.gather(
        *(_resolve_dataset(client, dataset_id, base_url) for dataset_id in args.dataset_ids)
    )

    comparison = []
    found: List[Dataset] = []
    for dataset_id, dataset in zip(args.dataset_ids, resolved):
        if dataset is None:
            comparison.append({"id": dataset_id, "error": "Not found"})
        else:
            comparison.append(_comparison_entry(dataset))
            found.append(dataset)

    organizations = list(
        dict.fromkeys(d.organization.name for d in found if d.organization and d.organization.name)
    )

    return {
        "datasets": comparison,
        "summary": {
            "requested": len(args.dataset_ids),
            "resolved": len(found),
            "common_tags": _common([d.tags for d in found]),
            "common_formats": _common([_formats(d) for d in found]),
            "organizations": organizations,
        },
    }


TOOLS = [
    ToolSpec(
        name="get_dataset_stats",
        description=(
            "Summarize a dataset: resource count, formats, total size, "
            "DataStore-enabled resources, tags, groups and dates."
        ),
        request_model=DatasetStatsRequest,
        handler=get_dataset_stats,
    ),
    ToolSpec(
        name="get_related_datasets",
        description=(
            "Find datasets related to a dataset through its organization, "
            "its tags, or both. Returns at most 10 datasets."
        ),
        request_model=RelatedDatasetsRequest,
        handler=get_related_datasets,
    ),
    ToolSpec(
        name="compare_datasets",
        description=(
            "Compare 1 to 5 datasets side by side. Datasets that cannot be "
            "resolved are reported as 'Not found' without failing the comparison."
        ),
        request_model=CompareDatasetsRequest,
        handler=compare_datasets,
    ),
]
