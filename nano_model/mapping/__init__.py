"""Mapping layer - hydrate entity graphs from joined rows."""

from __future__ import annotations

from nano_model.mapping.mapper import EntityMapper
from nano_model.mapping.plan import LoadPlan, PlanNode, build_load_plan, column_alias
from nano_model.mapping.protocol import Mapper

__all__ = [
    "EntityMapper",
    "LoadPlan",
    "Mapper",
    "PlanNode",
    "build_load_plan",
    "column_alias",
]
