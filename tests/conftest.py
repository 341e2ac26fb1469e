"""
Pytest configuration and shared fixtures for the knowledge graph engine tests.

This module provides:
- Project root on sys.path so `src.*` imports resolve without installation
- A node factory for building GraphNode records directly
- Sample document records and a small hand-built graph
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.graph.clustering import GraphClusterer  # noqa: E402
from src.graph.graph_store import GraphStore  # noqa: E402
from src.graph.types import GraphEdge, GraphNode, NodeMetadata  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_node(
    node_id,
    title=None,
    tags=(),
    framework=None,
    layer=None,
    created=BASE_TIME,
    importance=1.0,
    node_type="content",
):
    return GraphNode(
        id=node_id,
        type=node_type,
        title=title if title is not None else node_id,
        path=f"{node_id}.md",
        metadata=NodeMetadata(
            created=created,
            modified=created,
            tags=list(tags),
            framework=framework,
            layer=layer,
            importance=importance,
        ),
    )


def make_edge(source, target, weight=0.5, edge_type="semantic"):
    return GraphEdge(
        id=GraphEdge.make_id(source, target),
        source=source,
        target=target,
        weight=weight,
        type=edge_type,
    )


@pytest.fixture
def node_factory():
    """Factory building GraphNode records with sensible defaults."""
    return make_node


@pytest.fixture
def edge_factory():
    """Factory building GraphEdge records keyed by their endpoints."""
    return make_edge


@pytest.fixture
def sample_documents():
    """
    Three document records.

    The first two share a tag and related frameworks and were created six
    hours apart; the third is unrelated and a year older.
    """
    return [
        {
            "path": "notes/socratic-method.md",
            "content": "# Socratic Method\nAsking questions to learn.",
            "created": "2024-01-01T00:00:00+00:00",
            "modified": "2024-01-02T00:00:00+00:00",
            "metadata": {"tags": ["ai", "learning"], "framework": "socratic", "layer": "mentor"},
        },
        {
            "path": "notes/inquiry-learning.md",
            "content": "# Inquiry Learning\nStudents explore open questions.",
            "created": "2024-01-01T06:00:00+00:00",
            "modified": "2024-01-01T06:00:00+00:00",
            "metadata": {"tags": ["ai"], "framework": "inquiry", "layer": "mentor"},
        },
        {
            "path": "notes/tomato-gardening.md",
            "content": "# Tomato Gardening\nSoil and water daily.",
            "created": "2023-01-01T00:00:00+00:00",
            "modified": "2023-01-01T00:00:00+00:00",
            "metadata": {"tags": ["garden"]},
        },
    ]


@pytest.fixture
def sample_store():
    """
    Hand-built clustered graph.

    A - B (0.8), B - C (0.3); D is isolated. Clusters: {A, B, C} and {D}.
    """
    store = GraphStore()
    store.add_node(
        make_node(
            "A",
            title="Socratic Method",
            tags=["ai"],
            framework="socratic",
            node_type="framework",
            created=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )
    store.add_node(
        make_node(
            "B",
            title="Machine Learning",
            tags=["ai", "ml"],
            created=datetime(2024, 1, 2, tzinfo=timezone.utc),
        )
    )
    store.add_node(
        make_node(
            "C",
            title="Tomato Garden",
            tags=["garden"],
            created=datetime(2024, 1, 3, tzinfo=timezone.utc),
        )
    )
    store.add_node(
        make_node(
            "D",
            title="Weekly Journal",
            created=datetime(2024, 1, 3, 12, tzinfo=timezone.utc),
        )
    )
    store.add_edge(make_edge("A", "B", 0.8))
    store.add_edge(make_edge("B", "C", 0.3))
    store.set_clusters(GraphClusterer(min_edge_weight=0.1).detect_communities(store))
    return store
