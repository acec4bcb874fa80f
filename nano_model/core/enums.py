"""Relation, loading and column type enumerations."""

from __future__ import annotations

from enum import Enum


class RelationType(Enum):
    """Cardinality of a relation between two entities."""

    ONE_TO_ONE = "OneToOne"
    ONE_TO_MANY = "OneToMany"
    MANY_TO_MANY = "ManyToMany"


class Loading(Enum):
    """How a related entity is loaded."""

    EAGER = "eager"
    LAZY = "lazy"


class ColumnType(Enum):
    """Declared column value types."""

    BOOL = "bool"
    DATE = "date"
    DATETIME = "datetime"
    FLOAT = "float"
    JSON = "json"
    INT = "int"
    STRING = "string"
    TIME = "time"
