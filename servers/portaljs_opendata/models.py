#!/usr/bin/env python3
"""Normalized portal entities returned by the tools."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class EntityRef:
    """Short reference to an organization or group embedded in a dataset."""

    id: Optional[str]
    name: Optional[str]
    title: Optional[str] = None


@dataclass
class Resource:
    id: str
    name: Optional[str]
    description: Optional[str] = None
    format: Optional[str] = None
    url: Optional[str] = None
    size: Optional[int] = None
    mimetype: Optional[str] = None
    created: Optional[str] = None
    last_modified: Optional[str] = None
    package_id: Optional[str] = None
    datastore_active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Dataset:
    id: str
    name: Optional[str]
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    organization: Optional[EntityRef] = None
    tags: List[str] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    groups: List[EntityRef] = field(default_factory=list)
    created: Optional[str] = None
    modified: Optional[str] = None
    license: Optional[str] = None
    maintainer: Optional[str] = None
    author: Optional[str] = None
    state: Optional[str] = None
    private: bool = False
    num_resources: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Organization:
    id: str
    name: Optional[str]
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    created: Optional[str] = None
    package_count: int = 0
    state: Optional[str] = None
    users: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Group:
    id: str
    name: Optional[str]
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    created: Optional[str] = None
    package_count: int = 0
    state: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
