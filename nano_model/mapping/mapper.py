"""Entity mapper.

Reconstructs entity graphs from a flattened join result set. Every row
carries the columns of the root entity and of each eagerly joined entity,
aliased as ``{column}_{iteration}`` following the LoadPlan order.

Two passes over a per-call working context:

1. collect: for each row and iteration, store the data of every entity not
   seen yet (keyed by primary key) and record parent -> child key edges;
2. hydrate: depth-first from the root, attach the children recorded for each
   entity and instantiate it through its metadata.

Cost is linear in rows times plan size.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from nano_model.core.exceptions import InconsistentMetadataError, MalformedRowError
from nano_model.core.options import MapperOptions
from nano_model.core.rows import DEFAULT_BATCH_SIZE, cursor_rows
from nano_model.mapping.plan import LoadPlan, build_load_plan, column_alias
from nano_model.metadata.entity import EntityMetadata
from nano_model.metadata.relation import Relation

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _MappingContext:
    """Working state of one mapping call."""

    # iteration -> primary key -> column map, in first-seen order
    temporary_data: list[dict[Any, dict[str, Any]]] = field(default_factory=list)
    # iteration -> primary key -> position in temporary_data
    positions: list[dict[Any, int]] = field(default_factory=list)
    # child iteration -> parent primary key -> child primary keys
    associations: list[dict[Any, list[Any]]] = field(default_factory=list)

    @classmethod
    def for_plan(cls, plan: LoadPlan) -> _MappingContext:
        size = len(plan)
        return cls(
            temporary_data=[{} for _ in range(size)],
            positions=[{} for _ in range(size)],
            associations=[{} for _ in range(size)],
        )


class EntityMapper(Generic[T]):
    """Hydrates root entities, with their eager relations, from joined rows.

    The mapper holds no per-call state and can be reused and shared.

    Args:
        metadata: Metadata of the root entity.
        relations: Eager relations already flattened in traversal order.
            Computed from ``metadata`` when omitted.
        options: Row reading options.

    Raises:
        InconsistentMetadataError: If ``relations`` does not follow the
            depth-first eager traversal of ``metadata``.
    """

    def __init__(
        self,
        metadata: EntityMetadata,
        relations: Iterable[Relation] | None = None,
        options: MapperOptions | None = None,
    ) -> None:
        if relations is None:
            self._plan = build_load_plan(metadata)
        else:
            self._plan = LoadPlan.from_relations(metadata, relations)
        self._options = options or MapperOptions()

    @property
    def plan(self) -> LoadPlan:
        return self._plan

    @property
    def options(self) -> MapperOptions:
        return self._options

    def map_to_entities(self, rows: Iterable[Mapping[str, Any]]) -> list[T]:
        """Map a result set to root entities.

        Rows are consumed once, in order, so a generator or a streaming
        cursor reader works as well as a list. Roots are returned in the
        order their primary key first appears.

        Raises:
            MalformedRowError: In strict mode, if a row lacks an expected column.
            InconsistentMetadataError: With ``check_iterations``, if the first
                row does not match the load plan.
            EntityInstantiationError: If an entity factory rejects its data.
        """
        rows = iter(rows)
        first = next(rows, None)
        if first is None:
            return []

        if self._options.check_iterations:
            self._check_iterations(first)

        context = _MappingContext.for_plan(self._plan)
        row_count = self._create_temporary_data(context, itertools.chain((first,), rows))
        entities = self._hydrate_entities(context, 0)

        logger.debug(
            "Mapped %d rows to %d %s entities",
            row_count,
            len(entities),
            self._plan.root.class_name,
        )
        return entities

    def map_cursor(self, cursor: Any, batch_size: int = DEFAULT_BATCH_SIZE) -> list[T]:
        """Map the remaining rows of a DB-API cursor, fetched in batches.

        The cursor must select the aliases of the load plan
        (see LoadPlan.aliases).
        """
        return self.map_to_entities(cursor_rows(cursor, batch_size))

    def map_many(self, rows: list[dict[str, Any]]) -> list[T]:
        """Alias of map_to_entities."""
        return self.map_to_entities(rows)

    def map_one(self, row: dict[str, Any]) -> T | None:
        """Map a single row. Returns None when its root key is NULL."""
        entities = self.map_to_entities([row])
        return entities[0] if entities else None

    def _value(self, row: Mapping[str, Any], column: str, iteration: int, row_index: int) -> Any:
        try:
            return row[column_alias(column, iteration)]
        except KeyError:
            if self._options.strict:
                raise MalformedRowError(column, iteration, row_index) from None
            return None

    def _create_temporary_data(
        self, context: _MappingContext, rows: Iterable[Mapping[str, Any]]
    ) -> int:
        nodes = self._plan.nodes
        row_count = 0

        for row_index, row in enumerate(rows):
            row_count += 1
            for node in nodes:
                iteration = node.iteration
                metadata = node.metadata

                primary_key = self._value(row, metadata.primary_key, iteration, row_index)
                if primary_key is None:
                    continue

                # Associations between this entity and its eager children.
                for _relation, child in node.children:
                    child_key = self._value(
                        row, nodes[child].metadata.primary_key, child, row_index
                    )
                    if child_key is not None:
                        context.associations[child].setdefault(primary_key, []).append(child_key)

                # Entity data, first occurrence only.
                entities = context.temporary_data[iteration]
                if primary_key not in entities:
                    data = {
                        column: self._value(row, column, iteration, row_index)
                        for column in metadata.columns
                    }
                    for relation in metadata.relations:
                        if relation.is_one_to_one() and relation.is_lazy():
                            data[relation.name] = self._value(
                                row, relation.foreign_key, iteration, row_index
                            )
                    context.positions[iteration][primary_key] = len(entities)
                    entities[primary_key] = data
        return row_count

    def _hydrate_entities(
        self,
        context: _MappingContext,
        iteration: int,
        primary_keys: list[Any] | None = None,
    ) -> list[Any]:
        node = self._plan.nodes[iteration]
        entities = context.temporary_data[iteration]

        if primary_keys is None:
            selected = list(entities)
        else:
            positions = context.positions[iteration]
            selected = sorted(dict.fromkeys(primary_keys), key=positions.__getitem__)

        result = []
        for primary_key in selected:
            data = dict(entities[primary_key])
            for relation, child in node.children:
                associated = context.associations[child].get(primary_key, [])
                children = self._hydrate_entities(context, child, associated)
                if relation.is_one_to_one():
                    data[relation.name] = children[0] if children else None
                else:
                    data[relation.name] = children
            result.append(node.metadata.new_instance(data))
        return result

    def _check_iterations(self, row: Mapping[str, Any]) -> None:
        highest = -1
        for column in row:
            _, separator, suffix = str(column).rpartition("_")
            if separator and suffix.isdigit():
                highest = max(highest, int(suffix))

        expected = len(self._plan) - 1
        if highest != expected:
            raise InconsistentMetadataError(
                f"Rows reference iterations up to {highest} but the load plan of "
                f"{self._plan.root.class_name} has iterations up to {expected}"
            )
