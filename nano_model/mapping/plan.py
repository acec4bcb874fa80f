"""Eager-load plan.

A query for an entity joins every eagerly loaded related entity and selects
each column as ``{column}_{iteration}``, where the iteration is the position
of the entity in a depth-first walk of the eager relations (root first, then
each relation in declaration order, its own eager relations before its
siblings). The plan computes that order once so query construction and
hydration cannot disagree about it.

Example: Post -> [author (Author -> [profile]), comments]

    0 Post, 1 Author, 2 Profile, 3 Comment
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from nano_model.core.exceptions import InconsistentMetadataError, InvalidEntityError
from nano_model.metadata.entity import EntityMetadata
from nano_model.metadata.relation import Relation

logger = logging.getLogger(__name__)


def column_alias(column: str, iteration: int) -> str:
    """Alias of a column of the entity at the given iteration."""
    return f"{column}_{iteration}"


@dataclass(frozen=True)
class PlanNode:
    """One entity position in the eager-load traversal."""

    iteration: int
    metadata: EntityMetadata
    relation: Relation | None  # None for the root
    parent: int | None
    children: tuple[tuple[Relation, int], ...] = ()


@dataclass(frozen=True)
class LoadPlan:
    """Flattened eager-load traversal of a root entity."""

    nodes: tuple[PlanNode, ...]

    @classmethod
    def from_relations(cls, metadata: EntityMetadata, relations: Iterable[Relation]) -> LoadPlan:
        """Rebuild the plan from an already flattened relation list.

        Raises:
            InconsistentMetadataError: If the list does not follow the
                depth-first eager traversal of ``metadata``.
        """
        remaining = iter(relations)
        position = 0

        def take(expected: Relation) -> Relation:
            nonlocal position
            position += 1
            try:
                relation = next(remaining)
            except StopIteration:
                raise InconsistentMetadataError(
                    f"Relation list ends before eager relation '{expected.name}' "
                    f"expected at iteration {position}"
                ) from None
            if relation is not expected and relation != expected:
                raise InconsistentMetadataError(
                    f"Relation '{relation.name}' found at iteration {position}, "
                    f"expected '{expected.name}'"
                )
            return relation

        plan = _flatten(metadata, take)
        extra = [r.name for r in remaining]
        if extra:
            raise InconsistentMetadataError(
                f"Relations {extra} are not reachable through eager relations "
                f"of {metadata.class_name}"
            )
        return plan

    @property
    def root(self) -> EntityMetadata:
        return self.nodes[0].metadata

    @property
    def relations(self) -> list[Relation]:
        """Flattened relation list, one per iteration from 1."""
        return [node.relation for node in self.nodes[1:] if node.relation is not None]

    @property
    def metadata_list(self) -> list[EntityMetadata]:
        return [node.metadata for node in self.nodes]

    def aliases(self) -> list[str]:
        """Every column alias a conforming query has to select.

        Data columns of each position plus the foreign key of each lazy
        OneToOne relation.
        """
        result: dict[str, None] = {}
        for node in self.nodes:
            for column in node.metadata.columns:
                result[column_alias(column, node.iteration)] = None
            for relation in node.metadata.relations:
                if relation.is_one_to_one() and relation.is_lazy():
                    result[column_alias(relation.foreign_key, node.iteration)] = None
        return list(result)

    def __len__(self) -> int:
        return len(self.nodes)


def build_load_plan(metadata: EntityMetadata) -> LoadPlan:
    """Compute the eager-load plan of a root entity.

    Raises:
        InvalidEntityError: If an entity can reach itself through eager
            relations.
    """
    return _flatten(metadata, lambda relation: relation)


def _flatten(root: EntityMetadata, take: Callable[[Relation], Relation]) -> LoadPlan:
    metadata_list: list[EntityMetadata] = [root]
    relations: list[Relation | None] = [None]
    parents: list[int | None] = [None]
    children: list[list[tuple[Relation, int]]] = [[]]

    def visit(iteration: int, metadata: EntityMetadata, path: tuple[EntityMetadata, ...]) -> None:
        for expected in metadata.eager_relations():
            relation = take(expected)
            binding = relation.binding_entity
            if any(binding is seen for seen in path):
                raise InvalidEntityError.for_infinite_loop(metadata.class_name)

            child = len(metadata_list)
            metadata_list.append(binding)
            relations.append(relation)
            parents.append(iteration)
            children.append([])
            children[iteration].append((relation, child))
            visit(child, binding, (*path, binding))

    visit(0, root, (root,))

    nodes = tuple(
        PlanNode(
            iteration=i,
            metadata=metadata_list[i],
            relation=relations[i],
            parent=parents[i],
            children=tuple(children[i]),
        )
        for i in range(len(metadata_list))
    )
    logger.debug("Built load plan for %s: %d iterations", root.class_name, len(nodes))
    return LoadPlan(nodes)
