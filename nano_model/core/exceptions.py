"""nano_model exception hierarchy.

Every error raised by the package derives from NanoModelError. Errors from
third-party code (factories, pydantic validation) are wrapped, never exposed
raw.
"""

from __future__ import annotations

from typing import Any


class NanoModelError(Exception):
    """Base exception for all nano_model errors."""


# --- Metadata ---


class MetadataError(NanoModelError):
    """Base for entity definition errors."""


class InvalidEntityError(MetadataError):
    """Raised for an invalid entity definition."""

    @classmethod
    def for_non_existing_class(cls, entity_class: str) -> InvalidEntityError:
        return cls(f'Entity class "{entity_class}" does not exist')

    @classmethod
    def for_ambiguous_class(cls, entity_class: str) -> InvalidEntityError:
        return cls(
            f'Entity class name "{entity_class}" is declared more than once, '
            "use its dotted path"
        )

    @classmethod
    def for_non_entity_class(cls, entity_class: Any) -> InvalidEntityError:
        return cls(f'Entity class "{entity_class!r}" must extend "Entity"')

    @classmethod
    def for_non_mapping_columns(cls, columns: Any, entity_class: str) -> InvalidEntityError:
        return cls(
            f'Column definition list must be a mapping, "{type(columns).__name__}" '
            f'given in "{entity_class}" entity'
        )

    @classmethod
    def for_invalid_column_type(
        cls, column_type: Any, column: str, entity_class: str
    ) -> InvalidEntityError:
        return cls(f'Invalid type "{column_type}" for column "{column}" in "{entity_class}" entity')

    @classmethod
    def for_non_list_relations(cls, relations: Any, entity_class: str) -> InvalidEntityError:
        return cls(
            f'Relation definition list must be a list, "{type(relations).__name__}" '
            f'given in "{entity_class}" entity'
        )

    @classmethod
    def for_invalid_relation_definition(
        cls, relation: str, entity_class: str
    ) -> InvalidEntityError:
        return cls(f'Invalid definition for "{relation}" relation defined in "{entity_class}" entity')

    @classmethod
    def for_duplicate_relation(cls, relation: str, entity_class: str) -> InvalidEntityError:
        return cls(f'Relation "{relation}" is defined twice in "{entity_class}" entity')

    @classmethod
    def for_invalid_relation_type(cls, relation: str, entity_class: str) -> InvalidEntityError:
        return cls(
            f'Invalid relation type for "{relation}" relation defined in "{entity_class}" entity'
        )

    @classmethod
    def for_invalid_loading_type(cls, relation: str, entity_class: str) -> InvalidEntityError:
        return cls(
            f'Invalid relation loading type for "{relation}" relation defined '
            f'in "{entity_class}" entity'
        )

    @classmethod
    def for_missing_junction_table(cls, relation: str, entity_class: str) -> InvalidEntityError:
        return cls(
            f'Missing junction table for ManyToMany relation "{relation}" in "{entity_class}" entity'
        )

    @classmethod
    def for_missing_double_sided_relation(
        cls, relation: str, entity_class: str
    ) -> InvalidEntityError:
        return cls(
            f'Missing double sided definition for OneToMany relation "{relation}" '
            f'in "{entity_class}" entity'
        )

    @classmethod
    def for_infinite_loop(cls, entity_class: str) -> InvalidEntityError:
        return cls(
            f'Infinite loop caused by relations definition detected in entity "{entity_class}"'
        )


class NotDefinedPropertyError(MetadataError, AttributeError):
    """Raised when a property is not declared on an entity."""

    def __init__(self, entity_class: str, name: str) -> None:
        super().__init__(f'The property "{name}" is not defined in entity "{entity_class}"')
        self.entity_class = entity_class
        self.name = name


# --- Values ---


class InvalidValueError(NanoModelError):
    """Raised when a value cannot be assigned to an entity property."""


# --- Mapping ---


class MappingError(NanoModelError):
    """Base for hydration errors."""


class MalformedRowError(MappingError):
    """Raised when a row lacks an expected ``{column}_{iteration}`` key."""

    def __init__(self, column: str, iteration: int, row_index: int) -> None:
        self.column = column
        self.iteration = iteration
        self.row_index = row_index
        super().__init__(
            f"Row {row_index} is missing column '{column}_{iteration}' "
            f"(column '{column}' of iteration {iteration})"
        )


class InconsistentMetadataError(MappingError):
    """Raised when the relation list does not match the eager traversal order."""


class EntityInstantiationError(MappingError):
    """Raised when an entity factory rejects a hydrated data map."""

    def __init__(self, target_class: str, detail: str) -> None:
        self.target_class = target_class
        super().__init__(f"Cannot instantiate {target_class}: {detail}")
