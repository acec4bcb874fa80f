"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from nano_model.metadata.collector import MetadataCollector


@pytest.fixture(autouse=True)
def clear_metadata() -> Iterator[None]:
    """Isolate the per-class metadata cache between tests."""
    MetadataCollector.clear()
    yield
    MetadataCollector.clear()
