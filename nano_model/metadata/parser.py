"""Relation declaration parser.

Entity subclasses declare their relations as a list of mappings::

    __relations__ = [
        {"name": "author", "entity": Author, "foreign_key": "author_id"},
        {"name": "tags", "entity": Tag, "type": "ManyToMany",
         "loading": "eager", "junction_table": "post_tags",
         "foreign_key": "post_id", "binding_key": "tag_id"},
    ]

Keys:
    name: property name associated with the relation (required).
    entity: binding Entity subclass, or its name (required).
    type: "OneToOne" (default), "OneToMany" or "ManyToMany".
    loading: "eager" or "lazy". Defaults to eager for OneToOne, lazy otherwise.
    foreign_key: foreign key column name. Defaults to the relation name.
    binding_key: referenced column name. Defaults to "id".
    junction_table: junction table, required for ManyToMany.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from nano_model.core.enums import Loading, RelationType
from nano_model.core.exceptions import InvalidEntityError
from nano_model.metadata.relation import Relation


class RelationsParser:
    """Validates and converts the relation declarations of an entity class."""

    def __init__(self, entity_class: type) -> None:
        self._entity_class = entity_class
        self._relations = getattr(entity_class, "__relations__", [])

        if not isinstance(self._relations, (list, tuple)):
            raise InvalidEntityError.for_non_list_relations(self._relations, self._class_name)

    @property
    def _class_name(self) -> str:
        return self._entity_class.__name__

    def parse(self) -> list[Relation]:
        """Parse every declaration into a Relation.

        Raises:
            InvalidEntityError: For an invalid relation definition.
        """
        result: list[Relation] = []

        for position, declaration in enumerate(self._relations):
            if (
                not isinstance(declaration, Mapping)
                or "name" not in declaration
                or "entity" not in declaration
            ):
                raise InvalidEntityError.for_invalid_relation_definition(
                    str(position), self._class_name
                )
            name = str(declaration["name"])

            relation_type = self._relation_type(name, declaration.get("type"))
            loading = self._loading(name, relation_type, declaration.get("loading"))
            entity_class = self._entity_class_of(declaration["entity"])

            junction_table = ""
            if relation_type is RelationType.MANY_TO_MANY:
                if not declaration.get("junction_table"):
                    raise InvalidEntityError.for_missing_junction_table(name, self._class_name)
                junction_table = str(declaration["junction_table"])

            result.append(
                Relation(
                    name=name,
                    entity=entity_class,
                    type=relation_type,
                    loading=loading,
                    foreign_key=str(declaration.get("foreign_key") or name),
                    binding_key=str(declaration.get("binding_key") or "id"),
                    junction_table=junction_table,
                )
            )

        return result

    def _relation_type(self, name: str, value: Any) -> RelationType:
        if value is None:
            return RelationType.ONE_TO_ONE
        try:
            return RelationType(value)
        except ValueError:
            raise InvalidEntityError.for_invalid_relation_type(name, self._class_name) from None

    def _loading(self, name: str, relation_type: RelationType, value: Any) -> Loading:
        if value is None:
            return Loading.EAGER if relation_type is RelationType.ONE_TO_ONE else Loading.LAZY
        try:
            return Loading(value)
        except ValueError:
            raise InvalidEntityError.for_invalid_loading_type(name, self._class_name) from None

    def _entity_class_of(self, entity: Any) -> type:
        from nano_model.entity import Entity, resolve_entity_class

        if isinstance(entity, str):
            resolved = resolve_entity_class(entity)
            if resolved is None:
                raise InvalidEntityError.for_non_existing_class(entity)
            entity = resolved
        if not isinstance(entity, type) or not issubclass(entity, Entity):
            raise InvalidEntityError.for_non_entity_class(entity)
        return entity

    def check_reverse_relation(self, relation: Relation) -> None:
        """Check the double-sided definition of a OneToMany relation.

        Raises:
            InvalidEntityError: If the binding entity lacks the reverse OneToOne.
        """
        if relation.reverse_relation(self._entity_class) is None:
            raise InvalidEntityError.for_missing_double_sided_relation(
                relation.name, self._class_name
            )
