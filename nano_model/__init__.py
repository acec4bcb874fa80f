"""nano_model - entity metadata and result-set hydration."""

from __future__ import annotations

from nano_model.core.enums import ColumnType, Loading, RelationType
from nano_model.core.exceptions import (
    EntityInstantiationError,
    InconsistentMetadataError,
    InvalidEntityError,
    InvalidValueError,
    MalformedRowError,
    MappingError,
    MetadataError,
    NanoModelError,
    NotDefinedPropertyError,
)
from nano_model.core.options import MapperOptions
from nano_model.core.rows import cursor_rows
from nano_model.entity import Entity, EntityCollection
from nano_model.mapping.mapper import EntityMapper
from nano_model.mapping.plan import LoadPlan, build_load_plan, column_alias
from nano_model.metadata.collector import MetadataCollector
from nano_model.metadata.entity import EntityMetadata
from nano_model.metadata.relation import Relation

__all__ = [
    # Entities
    "Entity",
    "EntityCollection",
    # Metadata
    "EntityMetadata",
    "MetadataCollector",
    "Relation",
    # Mapping
    "EntityMapper",
    "LoadPlan",
    "build_load_plan",
    "column_alias",
    "MapperOptions",
    # Rows
    "cursor_rows",
    # Enums
    "ColumnType",
    "Loading",
    "RelationType",
    # Exceptions
    "NanoModelError",
    "MetadataError",
    "InvalidEntityError",
    "NotDefinedPropertyError",
    "InvalidValueError",
    "MappingError",
    "MalformedRowError",
    "InconsistentMetadataError",
    "EntityInstantiationError",
]
