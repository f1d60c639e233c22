"""Pytest configuration for the graphinsight test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from graphinsight.core.types import GraphSnapshot
from graphinsight.graphs.adjacency import AdjacencyIndex
from graphinsight.storage.gateway import StorageGateway, open_memory_gateway
from tests._helpers.builders import triangle_with_pendant


@pytest.fixture
def memory_gateway() -> Iterator[StorageGateway]:
    """Provide an in-memory gateway with all tables applied.

    Yields
    ------
    StorageGateway
        Gateway closed after the test.
    """
    gateway = open_memory_gateway()
    try:
        yield gateway
    finally:
        gateway.close()


@pytest.fixture
def triangle() -> GraphSnapshot:
    """Triangle a-b-c with pendant d hanging off c.

    Returns
    -------
    GraphSnapshot
        Four-node snapshot.
    """
    return triangle_with_pendant()


@pytest.fixture
def triangle_index(triangle: GraphSnapshot) -> AdjacencyIndex:
    """Adjacency index for the triangle fixture.

    Returns
    -------
    AdjacencyIndex
        Index built from the snapshot.
    """
    return AdjacencyIndex.from_snapshot(triangle)
