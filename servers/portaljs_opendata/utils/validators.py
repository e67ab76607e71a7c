#!/usr/bin/env python3
"""Input validation models for the PortalJS OpenData MCP tools."""

import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# CKAN names: lowercase alphanumerics, dashes and underscores
NAME_PATTERN = re.compile(r"^[a-z0-9_-]{2,100}$")


def _strip_identifier(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Identifier must not be empty")
    return v


def _check_http_url(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return v


def _check_name(v: str) -> str:
    v = v.strip()
    if not NAME_PATTERN.match(v):
        raise ValueError(
            "Name must be 2-100 characters of lowercase letters, digits, '-' or '_'"
        )
    return v


class ToolRequest(BaseModel):
    """Base model for tool arguments. Unknown arguments are ignored."""

    model_config = ConfigDict(extra="ignore")


class IdRequest(ToolRequest):
    id: str = Field(..., min_length=1, max_length=200, description="Entity ID or name")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        return _strip_identifier(v)


# ============================================================================
# Read tools
# ============================================================================


class SearchRequest(ToolRequest):
    """Validation model for the search tool."""

    query: str = Field(..., min_length=1, max_length=500, description="Search keywords")
    type: Literal["datasets", "organizations", "groups", "resources", "all"] = Field(
        default="all", description="Entity category to search"
    )
    limit: int = Field(
        default=10, ge=0, description="Maximum number of results (total)"
    )

    @field_validator("query")
    @classmethod
    def validate_query(cls, v):
        # Remove excessive whitespace
        v = " ".join(v.split())
        if not v:
            raise ValueError("Query must not be blank")
        return v


class FetchRequest(IdRequest):
    """Validation model for the fetch tool."""

    type: Literal["dataset", "organization", "group", "resource"] = Field(
        default="dataset", description="Entity type to fetch"
    )


class DatasetStatsRequest(IdRequest):
    pass


class PreviewResourceRequest(ToolRequest):
    """Validation model for preview_resource. Limits above 100 are clipped."""

    resource_id: str = Field(..., min_length=1, max_length=200, description="Resource ID")
    limit: int = Field(default=5, ge=1, description="Rows to preview (max 100)")

    @field_validator("resource_id")
    @classmethod
    def validate_resource_id(cls, v):
        return _strip_identifier(v)


class PreviewDataTableRequest(PreviewResourceRequest):
    limit: int = Field(default=10, ge=1, description="Rows to render (max 100)")


class RelatedDatasetsRequest(IdRequest):
    relation_type: Literal["organization", "tags", "both"] = Field(
        default="both", description="How candidates are gathered"
    )


class CompareDatasetsRequest(ToolRequest):
    dataset_ids: List[str] = Field(
        ..., min_length=1, max_length=5, description="Dataset IDs or names (1-5)"
    )

    @field_validator("dataset_ids")
    @classmethod
    def validate_dataset_ids(cls, v):
        return [_strip_identifier(item) for item in v]


class OrganizationDetailsRequest(IdRequest):
    pass


# ============================================================================
# Session and write tools
# ============================================================================


class SetApiKeyRequest(ToolRequest):
    api_key: str = Field(..., min_length=1, description="PortalJS API key")
    api_url: Optional[str] = Field(
        default=None, description="Portal URL overriding the configured one"
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("API key must not be blank")
        return v

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v):
        return _check_http_url(v)


class ListMyOrganizationsRequest(ToolRequest):
    permission: Literal["manage_group", "create_dataset", "read"] = Field(
        default="manage_group", description="Permission the user must hold"
    )


class CreateDatasetRequest(ToolRequest):
    name: str = Field(..., description="URL name of the dataset")
    title: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, description="Description (Markdown)")
    owner_org: Optional[str] = Field(default=None, description="Owning organization ID or name")
    tags: Optional[List[str]] = Field(default=None, description="Tag names")
    license_id: Optional[str] = None
    private: Optional[bool] = None
    url: Optional[str] = Field(default=None, description="Source URL")
    version: Optional[str] = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_name(v)


class UpdateDatasetRequest(IdRequest):
    title: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None
    owner_org: Optional[str] = None
    tags: Optional[List[str]] = None
    license_id: Optional[str] = None
    private: Optional[bool] = None
    url: Optional[str] = None
    version: Optional[str] = Field(default=None, max_length=100)


class CreateResourceRequest(ToolRequest):
    package_id: str = Field(..., min_length=1, description="Dataset ID or name")
    url: str = Field(..., description="Resource download URL")
    name: Optional[str] = None
    format: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None

    @field_validator("package_id")
    @classmethod
    def validate_package_id(cls, v):
        return _strip_identifier(v)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return _check_http_url(v)


class CreateOrganizationRequest(ToolRequest):
    name: str = Field(..., description="URL name of the organization")
    title: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_name(v)


class UpdateOrganizationRequest(IdRequest):
    title: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = None
    image_url: Optional[str] = None


class AddUserToOrganizationRequest(IdRequest):
    username: str = Field(..., min_length=1, description="User name or ID")
    role: Literal["member", "editor", "admin"] = Field(default="member")


class RemoveUserFromOrganizationRequest(IdRequest):
    username: str = Field(..., min_length=1, description="User name or ID")


def payload_from(request: BaseModel, exclude: tuple = ()) -> dict:
    """Only the fields the caller actually supplied, minus ``exclude``."""
    return {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if key not in exclude and value is not None
    }
