#!/usr/bin/env python3
"""Session credential and authenticated write tools.

Every tool here except ``set_api_key`` is gated on a session credential.
Writes are POSTs and never touch the cache.
"""

from typing import Any, Dict

from ..client import PortalAPIClient
from ..normalizers import (
    normalize_dataset,
    normalize_organization,
    normalize_resource,
    normalize_search_results,
)
from ..session import SessionContext
from ..utils.exceptions import ValidationError
from ..utils.logger import get_logger
from ..utils.validators import (
    AddUserToOrganizationRequest,
    CreateDatasetRequest,
    CreateOrganizationRequest,
    CreateResourceRequest,
    ListMyOrganizationsRequest,
    RemoveUserFromOrganizationRequest,
    SetApiKeyRequest,
    UpdateDatasetRequest,
    UpdateOrganizationRequest,
    payload_from,
)
from .base import ToolSpec, portal_url

logger = get_logger("tools.write")


def _dataset_payload(args) -> Dict[str, Any]:
    payload = payload_from(args)
    if "tags" in payload:
        payload["tags"] = [{"name": tag} for tag in payload["tags"]]
    return payload


async def set_api_key(client: PortalAPIClient, args: SetApiKeyRequest, session: SessionContext):
    credential = session.set_credential(args.api_key, args.api_url)
    logger.info(
        "Session credential set",
        extra={"api_url": credential.api_url or client.base_url},
    )
    return {
        "authenticated": True,
        "api_url": portal_url(client, credential),
        "message": "API key set for this session. Write tools are now available.",
    }


async def list_my_organizations(
    client: PortalAPIClient, args: ListMyOrganizationsRequest, session: SessionContext
):
    credential = session.require_credential("list_my_organizations")
    result = await client.request(
        "GET",
        "organization_list_for_user",
        {"permission": args.permission},
        cacheable=False,
        credential=credential,
    )
    organizations = normalize_search_results(
        "organization", result, portal_url(client, credential)
    )
    return {
        "permission": args.permission,
        "count": len(organizations),
        "organizations": organizations,
    }


async def create_dataset(
    client: PortalAPIClient, args: CreateDatasetRequest, session: SessionContext
):
    credential = session.require_credential("create_dataset")
    result = await client.request(
        "POST", "package_create", _dataset_payload(args), credential=credential
    )
    dataset = normalize_dataset(result, portal_url(client, credential), strict=False)
    return {"action": "created", "dataset": dataset.to_dict()}


async def update_dataset(
    client: PortalAPIClient, args: UpdateDatasetRequest, session: SessionContext
):
    """Patch only the fields the caller supplied."""
    credential = session.require_credential("update_dataset")
    payload = _dataset_payload(args)
    if set(payload) == {"id"}:
        raise ValidationError("No fields to update were provided", field="id", value=args.id)

    result = await client.request("POST", "package_patch", payload, credential=credential)
    dataset = normalize_dataset(result, portal_url(client, credential), strict=False)
    return {
        "action": "updated",
        "updated_fields": sorted(k for k in payload if k != "id"),
        "dataset": dataset.to_dict(),
    }


async def create_resource(
    client: PortalAPIClient, args: CreateResourceRequest, session: SessionContext
):
    credential = session.require_credential("create_resource")
    result = await client.request(
        "POST", "resource_create", payload_from(args), credential=credential
    )
    resource = normalize_resource(result, portal_url(client, credential), strict=False)
    return {"action": "created", "resource": resource.to_dict()}


async def create_organization(
    client: PortalAPIClient, args: CreateOrganizationRequest, session: SessionContext
):
    credential = session.require_credential("create_organization")
    result = await client.request(
        "POST", "organization_create", payload_from(args), credential=credential
    )
    organization = normalize_organization(result, portal_url(client, credential), strict=False)
    return {"action": "created", "organization": organization.to_dict()}


async def update_organization(
    client: PortalAPIClient, args: UpdateOrganizationRequest, session: SessionContext
):
    credential = session.require_credential("update_organization")
    payload = payload_from(args)
    if set(payload) == {"id"}:
        raise ValidationError("No fields to update were provided", field="id", value=args.id)

    result = await client.request(
        "POST", "organization_patch", payload, credential=credential
    )
    organization = normalize_organization(result, portal_url(client, credential), strict=False)
    return {
        "action": "updated",
        "updated_fields": sorted(k for k in payload if k != "id"),
        "organization": organization.to_dict(),
    }


async def add_user_to_organization(
    client: PortalAPIClient, args: AddUserToOrganizationRequest, session: SessionContext
):
    credential = session.require_credential("add_user_to_organization")
    await client.request(
        "POST",
        "organization_member_create",
        {"id": args.id, "username": args.username, "role": args.role},
        credential=credential,
    )
    return {
        "action": "member_added",
        "organization": args.id,
        "username": args.username,
        "role": args.role,
    }


async def remove_user_from_organization(
    client: PortalAPIClient, args: RemoveUserFromOrganizationRequest, session: SessionContext
):
    credential = session.require_credential("remove_user_from_organization")
    await client.request(
        "POST",
        "organization_member_delete",
        {"id": args.id, "username": args.username},
        credential=credential,
    )
    return {
        "action": "member_removed",
        "organization": args.id,
        "username": args.username,
    }


TOOLS = [
    ToolSpec(
        name="set_api_key",
        description=(
            "Set your PortalJS API key (and optionally the portal URL) for this "
            "session. Required before any create, update or membership tool."
        ),
        request_model=SetApiKeyRequest,
        handler=set_api_key,
    ),
    ToolSpec(
        name="list_my_organizations",
        description="List organizations where the authenticated user holds a permission.",
        request_model=ListMyOrganizationsRequest,
        handler=list_my_organizations,
        requires_auth=True,
    ),
    ToolSpec(
        name="create_dataset",
        description=(
            "Create a dataset. Requires set_api_key. Most portals require "
            "owner_org; use list_my_organizations to find one."
        ),
        request_model=CreateDatasetRequest,
        handler=create_dataset,
        requires_auth=True,
        is_write=True,
    ),
    ToolSpec(
        name="update_dataset",
        description="Update a dataset. Only the supplied fields change. Requires set_api_key.",
        request_model=UpdateDatasetRequest,
        handler=update_dataset,
        requires_auth=True,
        is_write=True,
    ),
    ToolSpec(
        name="create_resource",
        description="Add a resource (file link) to a dataset. Requires set_api_key.",
        request_model=CreateResourceRequest,
        handler=create_resource,
        requires_auth=True,
        is_write=True,
    ),
    ToolSpec(
        name="create_organization",
        description="Create an organization. Requires set_api_key.",
        request_model=CreateOrganizationRequest,
        handler=create_organization,
        requires_auth=True,
        is_write=True,
    ),
    ToolSpec(
        name="update_organization",
        description="Update an organization. Only the supplied fields change. Requires set_api_key.",
        request_model=UpdateOrganizationRequest,
        handler=update_organization,
        requires_auth=True,
        is_write=True,
    ),
    ToolSpec(
        name="add_user_to_organization",
        description="Add a user to an organization as member, editor or admin. Requires set_api_key.",
        request_model=AddUserToOrganizationRequest,
        handler=add_user_to_organization,
        requires_auth=True,
        is_write=True,
    ),
    ToolSpec(
        name="remove_user_from_organization",
        description="Remove a user from an organization. Requires set_api_key.",
        request_model=RemoveUserFromOrganizationRequest,
        handler=remove_user_from_organization,
        requires_auth=True,
        is_write=True,
    ),
]
