"""Relation descriptor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from nano_model.core.enums import Loading, RelationType

if TYPE_CHECKING:
    from nano_model.metadata.entity import EntityMetadata


@dataclass(frozen=True)
class Relation:
    """A relation between the owning entity and a binding entity.

    ``entity`` is either an entity class, resolved through the
    MetadataCollector on first use, or an EntityMetadata instance. The
    binding metadata is referenced, not owned: several relations may share it.
    """

    name: str
    entity: Any
    type: RelationType = RelationType.ONE_TO_ONE
    loading: Loading = Loading.EAGER
    foreign_key: str = ""
    binding_key: str = "id"
    junction_table: str = ""

    def __post_init__(self) -> None:
        if not self.foreign_key:
            object.__setattr__(self, "foreign_key", self.name)

    def is_one_to_one(self) -> bool:
        return self.type is RelationType.ONE_TO_ONE

    def is_one_to_many(self) -> bool:
        return self.type is RelationType.ONE_TO_MANY

    def is_many_to_many(self) -> bool:
        return self.type is RelationType.MANY_TO_MANY

    def is_eager(self) -> bool:
        return self.loading is Loading.EAGER

    def is_lazy(self) -> bool:
        return self.loading is Loading.LAZY

    @property
    def binding_entity(self) -> EntityMetadata:
        """Metadata of the binding entity."""
        from nano_model.metadata.collector import MetadataCollector
        from nano_model.metadata.entity import EntityMetadata

        if isinstance(self.entity, EntityMetadata):
            return self.entity
        return MetadataCollector.get(self.entity)

    def reverse_relation(self, owner_class: type) -> Relation | None:
        """Return the OneToOne relation pointing back at ``owner_class``.

        Only OneToMany relations have a reverse side; None is returned when
        it is not declared.
        """
        if not self.is_one_to_many():
            return None
        for relation in self.binding_entity.relations:
            if (
                relation.is_one_to_one()
                and relation.binding_entity.target_class is owner_class
                and relation.binding_key == self.foreign_key
                and relation.foreign_key == self.binding_key
            ):
                return relation
        return None
