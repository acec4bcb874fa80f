"""Mapper options.

MapperOptions is a Pydantic model so option sets can be loaded from plain
dicts (settings files, environment) and validated in one place.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class MapperOptions(BaseModel):
    """Options controlling how an EntityMapper reads rows.

    Attributes:
        strict: Raise MalformedRowError when a row lacks an expected
            ``{column}_{iteration}`` key. When disabled, missing keys read
            as None.
        check_iterations: Compare the highest iteration suffix of the first
            row with the load plan before mapping.
    """

    model_config = ConfigDict(frozen=True)

    strict: bool = True
    check_iterations: bool = False
