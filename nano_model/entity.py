"""Entity base class and related-entity collections."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, ClassVar, overload

from nano_model.core.enums import ColumnType
from nano_model.core.exceptions import (
    InvalidEntityError,
    InvalidValueError,
    NotDefinedPropertyError,
)
from nano_model.metadata.collector import MetadataCollector
from nano_model.metadata.entity import COLUMN_DELETED, EntityMetadata
from nano_model.metadata.relation import Relation


_entity_classes: dict[str, type[Entity]] = {}
# bare class names declared at more than one dotted path
_ambiguous_names: set[str] = set()


def resolve_entity_class(name: str) -> type[Entity] | None:
    """Look up a declared Entity subclass by bare name or dotted path.

    Raises:
        InvalidEntityError: If a bare name is shared by entities declared
            at different paths; the dotted path is required then.
    """
    if name in _ambiguous_names:
        raise InvalidEntityError.for_ambiguous_class(name)
    return _entity_classes.get(name)


def _register(cls: type[Entity]) -> None:
    path = f"{cls.__module__}.{cls.__qualname__}"
    known = _entity_classes.get(cls.__name__)
    if known is not None and f"{known.__module__}.{known.__qualname__}" != path:
        _ambiguous_names.add(cls.__name__)
    _entity_classes[cls.__name__] = cls
    _entity_classes[path] = cls


class Entity:
    """Base class for declared entities.

    Subclasses describe their storage with class attributes::

        class User(Entity):
            __table__ = "users"
            __columns__ = {"username": ColumnType.STRING, "age": ColumnType.INT}
            __relations__ = [{"name": "profile", "entity": Profile}]

    Relation targets are classes or class names; names resolve when the
    metadata is first collected, so entities may reference each other.

    Declared properties (columns and relations) are read and written as
    attributes. Values are cast to their declared type on the way in; writes
    are staged until the entity is reloaded, so ``is_modified()`` reports them.
    """

    __table__: ClassVar[str] = ""
    __primary_key__: ClassVar[str] = "id"
    __columns__: ClassVar[Mapping[str, ColumnType | str]] = {}
    __relations__: ClassVar[list[Mapping[str, Any]]] = []
    __timestamps__: ClassVar[bool] = False
    __soft_deletion__: ClassVar[bool] = False
    __read_only__: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        _register(cls)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        metadata = self.get_metadata()
        data = data or {}

        self._id: str | None = None
        self._data: dict[str, Any] = {}
        self._updated_data: dict[str, Any] = {}

        if data.get(metadata.primary_key) is not None:
            self._id = str(data[metadata.primary_key])
        for name, value in data.items():
            self._data[name] = metadata.parse_value(self, name, value)

        # *ToMany relations are never None
        for relation in metadata.relations:
            if not relation.is_one_to_one() and self._data.get(relation.name) is None:
                self._data[relation.name] = EntityCollection(self, relation)

    @classmethod
    def metadata(cls) -> EntityMetadata:
        return MetadataCollector.get(cls)

    def get_metadata(self) -> EntityMetadata:
        return type(self).metadata()

    def get_id(self) -> str | None:
        """The primary key as a string, None for a new entity."""
        return self._id

    def is_new(self) -> bool:
        return self._id is None

    def is_modified(self) -> bool:
        return bool(self._updated_data)

    def is_deleted(self) -> bool:
        return self._data.get(COLUMN_DELETED) is not None

    def to_dict(self) -> dict[str, Any]:
        """Loaded values overlaid with pending writes."""
        return {**self._data, **self._updated_data}

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if not self.get_metadata().has_property(name):
            raise NotDefinedPropertyError(type(self).__name__, name)
        if name in self._updated_data:
            return self._updated_data[name]
        return self._data.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return

        metadata = self.get_metadata()
        if metadata.is_read_only():
            raise InvalidValueError(f'Properties of "{type(self).__name__}" entity are read-only')
        self._updated_data[name] = metadata.parse_value(self, name, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_dict()!r})"


class EntityCollection(Sequence[Any]):
    """Read-only list of entities bound to a *ToMany relation of an owner."""

    def __init__(self, owner: Any, relation: Relation, entities: Iterable[Any] = ()) -> None:
        self._owner = owner
        self._relation = relation
        self._entities = list(entities)
        self._check_entities(self._entities)

    def _check_entities(self, entities: list[Any]) -> None:
        binding_class = self._relation.binding_entity.target_class
        for entity in entities:
            if not isinstance(entity, binding_class):
                raise InvalidValueError(
                    f'Invalid value in an EntityCollection: "{binding_class.__name__}" '
                    f'expected, "{type(entity).__name__}" given'
                )

    @property
    def owner(self) -> Any:
        return self._owner

    @property
    def relation(self) -> Relation:
        return self._relation

    @overload
    def __getitem__(self, index: int) -> Any: ...

    @overload
    def __getitem__(self, index: slice) -> list[Any]: ...

    def __getitem__(self, index: int | slice) -> Any:
        return self._entities[index]

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._entities)

    def to_list(self) -> list[Any]:
        return list(self._entities)

    def __repr__(self) -> str:
        return f"EntityCollection({self._relation.name!r}, {self._entities!r})"
