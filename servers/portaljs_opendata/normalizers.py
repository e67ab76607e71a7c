#!/usr/bin/env python3
"""Decoders from raw portal JSON into normalized entity records.

Every optional attribute is always present on the output, defaulted to
``None``, ``[]``, ``0`` or ``False`` when the upstream payload omits it.
Entity tools decode strictly: a payload without ``id`` raises
``NotFoundError`` and one without ``name`` raises ``MalformedEntityError``.
Search-result rows decode leniently: a missing ``name`` is kept as ``None``
and the derived ``url`` is then ``None`` too, while rows without ``id`` are
dropped.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import Dataset, EntityRef, Group, Organization, Resource
from .utils.exceptions import MalformedEntityError, NotFoundError, ValidationError
from .utils.logger import get_logger

logger = get_logger("normalizers")

ENTITY_TYPES = ("dataset", "organization", "group", "resource")

# URL path segment used for portal pages of each entity type
ENTITY_URL_SEGMENTS = {
    "dataset": "dataset",
    "organization": "organization",
    "group": "group",
}


def _require_identity(entity_type: str, raw: Any, strict: bool) -> None:
    if not isinstance(raw, dict) or not raw.get("id"):
        raise NotFoundError(f"{entity_type.capitalize()} not found", entity_type=entity_type)
    if strict and not raw.get("name"):
        raise MalformedEntityError(
            f"{entity_type.capitalize()} '{raw['id']}' is malformed: missing name",
            entity_type=entity_type,
            entity_id=raw["id"],
        )


def entity_url(base_url: str, entity_type: str, name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    return f"{base_url.rstrip('/')}/{ENTITY_URL_SEGMENTS[entity_type]}/{name}"


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return default


def _tag_names(tags: Any) -> List[str]:
    names = []
    for tag in _as_list(tags):
        if isinstance(tag, dict):
            name = tag.get("display_name") or tag.get("name")
        else:
            name = tag
        if name:
            names.append(str(name))
    return names


def _entity_ref(raw: Any) -> Optional[EntityRef]:
    if not isinstance(raw, dict):
        return None
    return EntityRef(id=raw.get("id"), name=raw.get("name"), title=raw.get("title"))


def normalize_resource(raw: Any, base_url: str = "", strict: bool = True) -> Resource:
    _require_identity("resource", raw, strict)
    return Resource(
        id=raw["id"],
        name=raw.get("name"),
        description=raw.get("description") or None,
        format=raw.get("format") or None,
        url=raw.get("url") or None,
        size=_as_int(raw.get("size")),
        mimetype=raw.get("mimetype") or None,
        created=raw.get("created"),
        last_modified=raw.get("last_modified") or raw.get("metadata_modified"),
        package_id=raw.get("package_id"),
        datastore_active=bool(raw.get("datastore_active", False)),
    )


def normalize_dataset(raw: Any, base_url: str, strict: bool = True) -> Dataset:
    _require_identity("dataset", raw, strict)
    resources = []
    for item in _as_list(raw.get("resources")):
        if isinstance(item, dict) and item.get("id"):
            resources.append(normalize_resource(item, base_url, strict=False))

    groups = [ref for ref in (_entity_ref(g) for g in _as_list(raw.get("groups"))) if ref]

    return Dataset(
        id=raw["id"],
        name=raw.get("name"),
        title=raw.get("title") or None,
        description=raw.get("notes") or None,
        url=entity_url(base_url, "dataset", raw.get("name")),
        organization=_entity_ref(raw.get("organization")),
        tags=_tag_names(raw.get("tags")),
        resources=resources,
        groups=groups,
        created=raw.get("metadata_created"),
        modified=raw.get("metadata_modified"),
        license=raw.get("license_title") or raw.get("license_id") or None,
        maintainer=raw.get("maintainer") or None,
        author=raw.get("author") or None,
        state=raw.get("state"),
        private=bool(raw.get("private", False)),
        num_resources=_as_int(raw.get("num_resources"), len(resources)),
    )


def normalize_organization(raw: Any, base_url: str, strict: bool = True) -> Organization:
    _require_identity("organization", raw, strict)
    users = [
        {
            "id": user.get("id"),
            "name": user.get("name"),
            "capacity": user.get("capacity"),
        }
        for user in _as_list(raw.get("users"))
        if isinstance(user, dict)
    ]
    return Organization(
        id=raw["id"],
        name=raw.get("name"),
        title=raw.get("title") or raw.get("display_name") or None,
        description=raw.get("description") or None,
        url=entity_url(base_url, "organization", raw.get("name")),
        image_url=raw.get("image_display_url") or raw.get("image_url") or None,
        created=raw.get("created"),
        package_count=_as_int(raw.get("package_count"), 0),
        state=raw.get("state"),
        users=users,
    )


def normalize_group(raw: Any, base_url: str, strict: bool = True) -> Group:
    _require_identity("group", raw, strict)
    return Group(
        id=raw["id"],
        name=raw.get("name"),
        title=raw.get("title") or raw.get("display_name") or None,
        description=raw.get("description") or None,
        url=entity_url(base_url, "group", raw.get("name")),
        image_url=raw.get("image_display_url") or raw.get("image_url") or None,
        created=raw.get("created"),
        package_count=_as_int(raw.get("package_count"), 0),
        state=raw.get("state"),
    )


NORMALIZERS: Dict[str, Callable[..., Any]] = {
    "dataset": normalize_dataset,
    "organization": normalize_organization,
    "group": normalize_group,
    "resource": normalize_resource,
}


def normalize(entity_type: str, raw: Any, base_url: str, strict: bool = True):
    """Decode ``raw`` as ``entity_type`` (dataset, organization, group, resource)."""
    try:
        decoder = NORMALIZERS[entity_type]
    except KeyError:
        raise ValidationError(f"Unknown entity type: {entity_type}", field="type", value=entity_type)
    return decoder(raw, base_url, strict=strict)


def normalize_search_results(
    entity_type: str, items: Iterable[Any], base_url: str
) -> List[Dict[str, Any]]:
    """Decode a page of search rows into compact dictionaries."""
    rows = []
    for item in items or []:
        if not isinstance(item, dict) or not item.get("id"):
            logger.debug(
                "Skipping search row without id",
                extra={"entity_type": entity_type},
            )
            continue
        entity = normalize(entity_type, item, base_url, strict=False)
        rows.append(_search_row(entity_type, entity))
    return rows


def _search_row(entity_type: str, entity) -> Dict[str, Any]:
    if entity_type == "dataset":
        return {
            "type": "dataset",
            "id": entity.id,
            "name": entity.name,
            "title": entity.title,
            "description": entity.description,
            "url": entity.url,
            "organization": entity.organization.name if entity.organization else None,
            "tags": entity.tags,
            "created": entity.created,
            "modified": entity.modified,
        }
    if entity_type == "resource":
        return {
            "type": "resource",
            "id": entity.id,
            "name": entity.name,
            "description": entity.description,
            "format": entity.format,
            "url": entity.url,
            "package_id": entity.package_id,
        }
    return {
        "type": entity_type,
        "id": entity.id,
        "name": entity.name,
        "title": entity.title,
        "description": entity.description,
        "url": entity.url,
        "package_count": entity.package_count,
        "created": entity.created,
    }
