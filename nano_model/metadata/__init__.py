"""Entity metadata - columns, relations and instantiation of entity types."""

from __future__ import annotations

from nano_model.metadata.collector import MetadataCollector
from nano_model.metadata.entity import EntityMetadata
from nano_model.metadata.parser import RelationsParser
from nano_model.metadata.relation import Relation

__all__ = [
    "EntityMetadata",
    "MetadataCollector",
    "Relation",
    "RelationsParser",
]
