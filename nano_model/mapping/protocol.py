"""Mapper protocol.

Every mapper turns row dicts into objects through map_one and map_many.
Repositories and query helpers accept any object satisfying it.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T", covariant=True)


@runtime_checkable
class Mapper(Protocol[T]):
    """Base mapper protocol."""

    def map_one(self, row: dict[str, Any]) -> T | None:
        """Map a single row dict to a target object, None for an empty row."""
        ...

    def map_many(self, rows: list[dict[str, Any]]) -> list[T]:
        """Map multiple row dicts to a list of target objects."""
        ...
