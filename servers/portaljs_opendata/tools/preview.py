#!/usr/bin/env python3
"""Resource preview tools backed by the tabular acquisition chain."""

from ..client import PortalAPIClient
from ..normalizers import normalize_resource
from ..preview import load_table
from ..session import SessionContext
from ..utils.tables import NO_DATA_MESSAGE, render_table
from ..utils.validators import PreviewDataTableRequest, PreviewResourceRequest
from .base import ToolSpec, portal_url


async def preview_resource(
    client: PortalAPIClient, args: PreviewResourceRequest, session: SessionContext
):
    table = await load_table(client, args.resource_id, args.limit)

    if table.resource and table.resource.get("id"):
        resource = normalize_resource(table.resource, portal_url(client), strict=False).to_dict()
    else:
        resource = {"id": args.resource_id}

    data = {
        "resource": resource,
        "source": table.source.kind,
        "download_url": table.source.origin_url,
        "total_records": table.source.total_count,
        "fields": table.fields,
        "records": table.records,
        "row_count": len(table.records),
    }
    if not table.records:
        data["message"] = NO_DATA_MESSAGE
    return data


async def preview_data_table(
    client: PortalAPIClient, args: PreviewDataTableRequest, session: SessionContext
) -> str:
    table = await load_table(client, args.resource_id, args.limit)
    return render_table(table.fields, table.records, table.source)


TOOLS = [
    ToolSpec(
        name="preview_resource",
        description=(
            "Preview the first rows of a resource as JSON (default 5, max 100). "
            "Uses the DataStore when available, otherwise the CSV or JSON file."
        ),
        request_model=PreviewResourceRequest,
        handler=preview_resource,
    ),
    ToolSpec(
        name="preview_data_table",
        description=(
            "Render the first rows of a resource as a Markdown table "
            "(default 10, max 100). Works with DataStore, CSV and JSON resources."
        ),
        request_model=PreviewDataTableRequest,
        handler=preview_data_table,
    ),
]
