#!/usr/bin/env python3
"""Cross-category search over datasets, organizations, groups and resources."""

from typing import Any, Dict, List

from ..client import PortalAPIClient
from ..normalizers import normalize_search_results
from ..session import SessionContext
from ..utils.logger import get_logger
from ..utils.validators import SearchRequest
from .base import ToolSpec, portal_url

logger = get_logger("tools.search")

# Categories covered by type="all", in result order
ALL_CATEGORIES = ("datasets", "organizations")


def split_limit(limit: int, parts: int) -> List[int]:
    """Split ``limit`` across ``parts`` categories so the shares sum to ``limit``.

    Every category after the first gets ``floor(limit / parts)`` and the
    first takes the remainder, which for two parts is ``ceil(limit / 2)``.
    """
    if parts <= 0:
        return []
    limit = max(int(limit), 0)
    share = limit // parts
    return [limit - share * (parts - 1)] + [share] * (parts - 1)


async def _search_datasets(client: PortalAPIClient, query: str, limit: int) -> List[Dict[str, Any]]:
    result = await client.request("GET", "package_search", {"q": query, "rows": limit})
    items = result.get("results", []) if isinstance(result, dict) else []
    return normalize_search_results("dataset", items, portal_url(client))


async def _search_organizations(
    client: PortalAPIClient, query: str, limit: int
) -> List[Dict[str, Any]]:
    result = await client.request(
        "GET", "organization_list", {"q": query, "limit": limit, "all_fields": True}
    )
    return normalize_search_results("organization", result, portal_url(client))


async def _search_groups(client: PortalAPIClient, query: str, limit: int) -> List[Dict[str, Any]]:
    result = await client.request(
        "GET", "group_list", {"q": query, "limit": limit, "all_fields": True}
    )
    return normalize_search_results("group", result, portal_url(client))


async def _search_resources(
    client: PortalAPIClient, query: str, limit: int
) -> List[Dict[str, Any]]:
    result = await client.request(
        "GET", "resource_search", {"query": f"name:{query}", "limit": limit}
    )
    items = result.get("results", []) if isinstance(result, dict) else []
    return normalize_search_results("resource", items, portal_url(client))


SEARCHERS = {
    "datasets": _search_datasets,
    "organizations": _search_organizations,
    "groups": _search_groups,
    "resources": _search_resources,
}


async def search(client: PortalAPIClient, args: SearchRequest, session: SessionContext):
    """Search one category, or datasets then organizations for ``all``."""
    categories = ALL_CATEGORIES if args.type == "all" else (args.type,)
    limits = split_limit(args.limit, len(categories))

    results: List[Dict[str, Any]] = []
    counts: Dict[str, int] = {}
    for category, limit in zip(categories, limits):
        if limit <= 0:
            counts[category] = 0
            continue
        rows = (await SEARCHERS[category](client, args.query, limit))[:limit]
        counts[category] = len(rows)
        results.extend(rows)

    logger.debug(
        f"Search for '{args.query}' returned {len(results)} rows",
        extra={"type": args.type, "limits": dict(zip(categories, limits))},
    )

    return {
        "query": args.query,
        "type": args.type,
        "count": len(results),
        "counts": counts,
        "results": results,
    }


TOOLS = [
    ToolSpec(
        name="search",
        description=(
            "Search the portal for datasets, organizations, groups or resources. "
            "With type 'all' the limit is split between datasets and organizations. "
            "Returns compact rows with IDs and portal URLs."
        ),
        request_model=SearchRequest,
        handler=search,
    ),
]
