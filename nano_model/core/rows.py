"""Streaming row reader for DB-API cursors.

The mapper reads aliased ``{column}_{iteration}`` keys from mappings. A
joined result set can be large, so cursors are read in batches through
``fetchmany`` and each row is handed over as soon as it is keyed, without
materializing the result set.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

DEFAULT_BATCH_SIZE = 500


def cursor_rows(
    cursor: Any, batch_size: int = DEFAULT_BATCH_SIZE
) -> Iterator[Mapping[str, Any]]:
    """Yield the remaining rows of a cursor keyed by their column alias.

    Rows already returned as mappings (dict-row cursor factories) are
    yielded as they are. A cursor without a result set yields nothing.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if cursor.description is None:
        return

    aliases: tuple[str, ...] | None = None
    while batch := cursor.fetchmany(batch_size):
        for row in batch:
            if isinstance(row, Mapping):
                yield row
                continue
            if aliases is None:
                aliases = tuple(desc[0] for desc in cursor.description)
            yield dict(zip(aliases, row, strict=True))
