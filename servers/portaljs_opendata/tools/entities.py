#!/usr/bin/env python3
"""Entity lookup tools."""

from ..client import PortalAPIClient
from ..normalizers import normalize, normalize_organization, normalize_search_results
from ..session import SessionContext
from ..utils.exceptions import NotFoundError
from ..utils.validators import FetchRequest, OrganizationDetailsRequest
from .base import ToolSpec, portal_url

FETCH_ACTIONS = {
    "dataset": "package_show",
    "organization": "organization_show",
    "group": "group_show",
    "resource": "resource_show",
}


async def fetch(client: PortalAPIClient, args: FetchRequest, session: SessionContext):
    raw = await client.request("GET", FETCH_ACTIONS[args.type], {"id": args.id})
    try:
        entity = normalize(args.type, raw, portal_url(client))
    except NotFoundError:
        raise NotFoundError(
            f"{args.type.capitalize()} not found: {args.id}",
            entity_type=args.type,
            entity_id=args.id,
        )
    return {"type": args.type, **entity.to_dict()}


async def get_organization_details(
    client: PortalAPIClient, args: OrganizationDetailsRequest, session: SessionContext
):
    """Organization record with its datasets and members."""
    raw = await client.request(
        "GET",
        "organization_show",
        {"id": args.id, "include_datasets": True, "include_users": True},
    )
    try:
        organization = normalize_organization(raw, portal_url(client))
    except NotFoundError:
        raise NotFoundError(
            f"Organization not found: {args.id}", entity_type="organization", entity_id=args.id
        )

    datasets = normalize_search_results("dataset", raw.get("packages"), portal_url(client))
    return {
        "organization": organization.to_dict(),
        "datasets": datasets,
        "dataset_count": len(datasets),
        "member_count": len(organization.users),
    }


TOOLS = [
    ToolSpec(
        name="fetch",
        description=(
            "Fetch one dataset, organization, group or resource by ID or name. "
            "Returns the full normalized record."
        ),
        request_model=FetchRequest,
        handler=fetch,
    ),
    ToolSpec(
        name="get_organization_details",
        description=(
            "Get an organization with its datasets and members. "
            "Use the organization ID or name from search results."
        ),
        request_model=OrganizationDetailsRequest,
        handler=get_organization_details,
    ),
]
