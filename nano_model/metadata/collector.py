"""Per-class metadata cache.

Entity metadata is parsed once per class and shared afterwards. The metadata
is registered before its relations are parsed, so entities referencing each
other (a OneToMany and its reverse OneToOne) resolve without recursion.
"""

from __future__ import annotations

from typing import ClassVar

from nano_model.metadata.entity import EntityMetadata


class MetadataCollector:
    """Collects EntityMetadata to avoid parsing the same entity twice."""

    _entities: ClassVar[dict[type, EntityMetadata]] = {}

    def __init__(self) -> None:
        raise TypeError("MetadataCollector is not instantiable")

    @classmethod
    def get(cls, entity_class: type) -> EntityMetadata:
        """Return the metadata of an Entity subclass, parsing it on first use.

        Raises:
            InvalidEntityError: For an invalid entity definition.
        """
        metadata = cls._entities.get(entity_class)
        if metadata is None:
            metadata = EntityMetadata.from_entity_class(entity_class)
            cls._entities[entity_class] = metadata
            try:
                metadata.parse_relations()
            except Exception:
                del cls._entities[entity_class]
                raise
        return metadata

    @classmethod
    def has(cls, entity_class: type) -> bool:
        return entity_class in cls._entities

    @classmethod
    def clear(cls) -> None:
        """Forget every collected metadata."""
        cls._entities.clear()
