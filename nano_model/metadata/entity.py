"""Entity metadata.

EntityMetadata describes one entity type: its table, primary key, typed data
columns and relations, and knows how to build an instance from a data map.
It is immutable once its relations are set and is shared read-only by every
mapping operation.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, ValidationError

from nano_model.core.enums import ColumnType
from nano_model.core.exceptions import (
    EntityInstantiationError,
    InvalidEntityError,
    InvalidValueError,
    NotDefinedPropertyError,
)
from nano_model.metadata.relation import Relation

logger = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"

COLUMN_UPDATED = "updated"
COLUMN_CREATED = "created"
COLUMN_DELETED = "deleted"


def _is_entity_class(cls: type) -> bool:
    from nano_model.entity import Entity

    return isinstance(cls, type) and issubclass(cls, Entity)


def _is_pydantic_model(cls: type) -> bool:
    return isinstance(cls, type) and issubclass(cls, BaseModel)


def _column_type(value: Any, column: str, entity_class: str) -> ColumnType:
    if isinstance(value, ColumnType):
        return value
    try:
        return ColumnType(value)
    except ValueError:
        raise InvalidEntityError.for_invalid_column_type(value, column, entity_class) from None


def _is_foreign_key(value: Any) -> bool:
    """Any scalar can be a lazy OneToOne key; containers, models and flags cannot."""
    if isinstance(value, (str, bytes)):
        return True
    if isinstance(value, (bool, Iterable, BaseModel)) or dataclasses.is_dataclass(value):
        return False
    return not _is_entity_class(type(value))


def _field_names(cls: type) -> list[str]:
    """Extract field names from a dataclass or Pydantic model."""
    if _is_pydantic_model(cls):
        return list(cls.model_fields.keys())
    if dataclasses.is_dataclass(cls):
        return [f.name for f in dataclasses.fields(cls)]
    return []


class EntityMetadata:
    """Definition of an entity type.

    Args:
        target_class: Class instantiated by new_instance. An Entity subclass,
            a Pydantic model, a dataclass or any class accepting the data
            columns and relation names as keyword arguments.
        table: Table the entity is stored in.
        primary_key: Primary key column name. Only one is supported.
        columns: Data columns, either a mapping of column name to ColumnType
            or an iterable of names (typed as strings). The primary key is
            always included.
        relations: Relation descriptors in declaration order.
        timestamps: Add the ``updated`` and ``created`` datetime columns.
        soft_deletion: Add the ``deleted`` datetime column.
        read_only: Reject property writes on instances.
    """

    def __init__(
        self,
        target_class: type,
        *,
        table: str = "",
        primary_key: str = "id",
        columns: Mapping[str, Any] | Iterable[str] | None = None,
        relations: Iterable[Relation] = (),
        timestamps: bool = False,
        soft_deletion: bool = False,
        read_only: bool = False,
    ) -> None:
        self._target_class = target_class
        self._table = table
        self._primary_key = primary_key
        self._timestamps = timestamps
        self._soft_deletion = soft_deletion
        self._read_only = read_only
        self._relations: dict[str, Relation] = {}
        self.set_relations(relations)
        self._columns = self._build_columns(columns)

    @classmethod
    def from_entity_class(cls, entity_class: type) -> EntityMetadata:
        """Build metadata from the declarations of an Entity subclass.

        Relations are not parsed here: call parse_relations() once the
        metadata is reachable from the MetadataCollector.
        """
        if not _is_entity_class(entity_class):
            raise InvalidEntityError.for_non_entity_class(entity_class)

        columns = getattr(entity_class, "__columns__", {})
        if not isinstance(columns, Mapping):
            raise InvalidEntityError.for_non_mapping_columns(columns, entity_class.__name__)

        return cls(
            entity_class,
            table=str(getattr(entity_class, "__table__", "")),
            primary_key=str(getattr(entity_class, "__primary_key__", "id")),
            columns=columns,
            timestamps=bool(getattr(entity_class, "__timestamps__", False)),
            soft_deletion=bool(getattr(entity_class, "__soft_deletion__", False)),
            read_only=bool(getattr(entity_class, "__read_only__", False)),
        )

    def _build_columns(
        self, columns: Mapping[str, Any] | Iterable[str] | None
    ) -> dict[str, ColumnType]:
        name = self.class_name
        result: dict[str, ColumnType] = {}
        if columns is None:
            columns = [
                c
                for c in _field_names(self._target_class)
                if c != self._primary_key and c not in self._relations
            ]
        if isinstance(columns, Mapping):
            for column, column_type in columns.items():
                result[str(column)] = _column_type(column_type, str(column), name)
        else:
            for column in columns:
                result[str(column)] = ColumnType.STRING

        result.setdefault(self._primary_key, ColumnType.STRING)
        if self._timestamps:
            result[COLUMN_UPDATED] = ColumnType.DATETIME
            result[COLUMN_CREATED] = ColumnType.DATETIME
        if self._soft_deletion:
            result[COLUMN_DELETED] = ColumnType.DATETIME
        return result

    def set_relations(self, relations: Iterable[Relation]) -> None:
        """Replace the relation list, keeping declaration order."""
        result: dict[str, Relation] = {}
        for relation in relations:
            if relation.name in result:
                raise InvalidEntityError.for_duplicate_relation(relation.name, self.class_name)
            result[relation.name] = relation
        self._relations = result

    def parse_relations(self) -> None:
        """Parse the relation declarations of the target Entity subclass."""
        from nano_model.metadata.parser import RelationsParser

        parser = RelationsParser(self._target_class)
        self.set_relations(parser.parse())
        for relation in self._relations.values():
            if relation.is_one_to_many():
                parser.check_reverse_relation(relation)
        logger.debug(
            "Parsed metadata for %s: %d columns, %d relations",
            self.class_name,
            len(self._columns),
            len(self._relations),
        )

    # --- Accessors ---

    @property
    def target_class(self) -> type:
        return self._target_class

    @property
    def class_name(self) -> str:
        return getattr(self._target_class, "__name__", repr(self._target_class))

    @property
    def table(self) -> str:
        return self._table

    @property
    def primary_key(self) -> str:
        return self._primary_key

    @property
    def columns(self) -> list[str]:
        """Data column names, primary key included."""
        return list(self._columns)

    @property
    def column_types(self) -> dict[str, ColumnType]:
        return dict(self._columns)

    @property
    def relations(self) -> list[Relation]:
        return list(self._relations.values())

    def relation(self, name: str) -> Relation:
        try:
            return self._relations[name]
        except KeyError:
            raise NotDefinedPropertyError(self.class_name, name) from None

    def eager_relations(self) -> list[Relation]:
        """Eager relations in declaration order."""
        return [r for r in self._relations.values() if r.is_eager()]

    def has_property(self, name: str) -> bool:
        return name in self._columns or name in self._relations

    def property_type(self, name: str) -> ColumnType | Relation:
        """Return the column type or the relation behind a property.

        Raises:
            NotDefinedPropertyError: If the property is not declared.
        """
        if name in self._relations:
            return self._relations[name]
        if name in self._columns:
            return self._columns[name]
        raise NotDefinedPropertyError(self.class_name, name)

    def has_relations_for_query_building(self) -> bool:
        """Whether a query for this entity needs more than its own columns.

        True when at least one relation is eager, or is a lazy OneToOne whose
        foreign key has to be selected.
        """
        return any(r.is_eager() or (r.is_one_to_one() and r.is_lazy()) for r in self.relations)

    def has_timestamps(self) -> bool:
        return self._timestamps

    def has_soft_deletion(self) -> bool:
        return self._soft_deletion

    def is_read_only(self) -> bool:
        return self._read_only

    # --- Instantiation ---

    def new_instance(self, data: Mapping[str, Any] | None = None) -> Any:
        """Create an instance of the target class from a data map.

        Detection order:
        1. Entity subclass -> target_class(data)
        2. Pydantic BaseModel -> model_validate(data)
        3. dataclass or plain class -> target_class(**data)

        Raises:
            EntityInstantiationError: If the target class rejects the data.
        """
        data = dict(data or {})
        cls = self._target_class

        if _is_entity_class(cls):
            return cls(data)

        if _is_pydantic_model(cls):
            try:
                return cls.model_validate(data)
            except ValidationError as e:
                raise EntityInstantiationError(self.class_name, str(e)) from e

        try:
            return cls(**data)
        except TypeError as e:
            raise EntityInstantiationError(self.class_name, str(e)) from e

    # --- Value parsing ---

    def parse_value(self, entity: Any, name: str, value: Any) -> Any:
        """Cast a raw value for an entity property.

        Raises:
            NotDefinedPropertyError: If the property is not declared.
            InvalidValueError: For a value that cannot be cast.
        """
        if value is None:
            return None

        property_type = self.property_type(name)
        if isinstance(property_type, Relation):
            return self._parse_relation_value(entity, property_type, value)

        try:
            return _cast(property_type, value)
        except (TypeError, ValueError) as e:
            raise InvalidValueError(
                f'Invalid {property_type.value} value for property "{name}" '
                f'of entity "{self.class_name}": {e}'
            ) from e

    def _parse_relation_value(self, entity: Any, relation: Relation, value: Any) -> Any:
        from nano_model.entity import EntityCollection

        binding_class = relation.binding_entity.target_class

        if relation.is_one_to_one():
            if isinstance(value, binding_class):
                return value
            if relation.is_lazy() and _is_foreign_key(value):
                if isinstance(value, str) and value.isdigit():
                    return int(value)
                return value
            raise InvalidValueError(
                f'Invalid value for a OneToOne relation: "{binding_class.__name__}" '
                f'object expected, "{type(value).__name__}" given'
            )

        if isinstance(value, EntityCollection):
            value = value.to_list()
        if not isinstance(value, (list, tuple)):
            raise InvalidValueError(
                f'Invalid value for a *ToMany relation: list expected, "{type(value).__name__}" given'
            )
        return EntityCollection(entity, relation, value)

    def __repr__(self) -> str:
        return f"EntityMetadata({self.class_name}, table={self._table!r})"


def _cast(column_type: ColumnType, value: Any) -> Any:
    if column_type is ColumnType.BOOL:
        if isinstance(value, str):
            return value.strip().lower() not in ("", "0", "false")
        return bool(value)

    if column_type is ColumnType.INT:
        return int(value)

    if column_type is ColumnType.FLOAT:
        return float(value)

    if column_type is ColumnType.DATETIME:
        if isinstance(value, datetime):
            return value
        return _parse_temporal(datetime, str(value), DATETIME_FORMAT)

    if column_type is ColumnType.DATE:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return _parse_temporal(date, str(value), DATE_FORMAT)

    if column_type is ColumnType.TIME:
        if isinstance(value, time):
            return value
        return _parse_temporal(time, str(value), TIME_FORMAT)

    if column_type is ColumnType.JSON:
        if isinstance(value, (str, bytes)):
            return json.loads(value)
        json.dumps(value)
        return value

    return str(value)


def _parse_temporal(kind: type, value: str, fmt: str) -> Any:
    # Storage format first, then ISO 8601 (``T`` separator, fractional seconds)
    try:
        parsed = datetime.strptime(value, fmt)
    except ValueError:
        return kind.fromisoformat(value)
    if kind is date:
        return parsed.date()
    if kind is time:
        return parsed.time()
    return parsed
