"""
Record types shared by the graph store, analyzer, clusterer and service.

Every record converts to and from the plain dict structure produced by
``GraphStore.export_data()`` so the graph can be handed to any persistence or
visualization layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

NODE_TYPES = ("content", "insight", "concept", "framework")
EDGE_TYPES = ("explicit", "semantic", "temporal", "framework")


def to_datetime(value: Any) -> datetime:
    """
    Coerce a timestamp into a timezone-aware ``datetime``.

    Accepts ``datetime`` objects (naive values are treated as UTC), ISO-8601
    strings and epoch milliseconds. ``None`` maps to the current time.
    """
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Unsupported timestamp value: {value!r}")


@dataclass
class NodeMetadata:
    """Document-derived attributes of a node."""

    created: datetime
    modified: datetime
    tags: List[str] = field(default_factory=list)
    word_count: int = 0
    importance: float = 1.0
    framework: Optional[str] = None
    layer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created.isoformat(),
            "modified": self.modified.isoformat(),
            "framework": self.framework,
            "layer": self.layer,
            "tags": list(self.tags),
            "word_count": self.word_count,
            "importance": self.importance,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "NodeMetadata":
        return cls(
            created=to_datetime(d.get("created")),
            modified=to_datetime(d.get("modified")),
            tags=list(d.get("tags") or []),
            word_count=int(d.get("word_count", 0)),
            importance=float(d.get("importance", 1.0)),
            framework=d.get("framework"),
            layer=d.get("layer"),
        )


@dataclass
class GraphNode:
    """A document-derived vertex."""

    id: str
    type: str
    title: str
    path: str
    metadata: NodeMetadata
    cluster: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "path": self.path,
            "metadata": self.metadata.to_dict(),
            "cluster": self.cluster,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GraphNode":
        return cls(
            id=str(d["id"]),
            type=d.get("type", "content"),
            title=d.get("title", ""),
            path=d.get("path", ""),
            metadata=NodeMetadata.from_dict(d.get("metadata") or {}),
            cluster=d.get("cluster"),
        )


@dataclass
class GraphEdge:
    """A weighted, undirected relationship between two nodes."""

    id: str
    source: str
    target: str
    weight: float
    type: str = "semantic"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def make_id(source: str, target: str) -> str:
        return f"{source}-{target}"

    def other(self, node_id: str) -> str:
        """The endpoint opposite ``node_id``."""
        return self.target if node_id == self.source else self.source

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "weight": self.weight,
            "type": self.type,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GraphEdge":
        source = str(d["source"])
        target = str(d["target"])
        return cls(
            id=str(d.get("id") or cls.make_id(source, target)),
            source=source,
            target=target,
            weight=float(d.get("weight", 0.0)),
            type=d.get("type", "semantic"),
            metadata=dict(d.get("metadata") or {}),
        )


@dataclass
class ClusterInfo:
    """A community of nodes produced by the clusterer."""

    id: str
    nodes: Set[str] = field(default_factory=set)
    label: str = ""
    density: float = 0.0
    keywords: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.nodes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "nodes": sorted(self.nodes),
            "size": self.size,
            "density": self.density,
            "keywords": list(self.keywords),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ClusterInfo":
        return cls(
            id=str(d["id"]),
            nodes=set(d.get("nodes") or []),
            label=d.get("label", ""),
            density=float(d.get("density", 0.0)),
            keywords=list(d.get("keywords") or []),
        )


@dataclass
class GraphMetrics:
    """Structural metrics, always recomputed from the current graph."""

    node_count: int
    edge_count: int
    density: float
    average_degree: float
    cluster_count: int
    diameter: Optional[int] = None
    average_path_length: Optional[float] = None


@dataclass
class FilterCriteria:
    """
    A single filter applied by ``GraphService.apply_filters``.

    ``type`` is one of ``date``, ``framework``, ``topic``,
    ``connection_strength`` or ``node_type``; ``value`` depends on it:

    - date: ``{"start": datetime, "end": datetime}`` (either bound optional)
    - framework: list of framework names
    - topic: ``{"tags": [...], "keywords": [...]}``
    - connection_strength: ``{"min": float, "max": float}``
    - node_type: list of node types
    """

    type: str
    value: Any
    enabled: bool = True


@dataclass
class FilteredGraph:
    nodes: Set[str] = field(default_factory=set)
    edges: Set[str] = field(default_factory=set)


@dataclass
class SearchResult:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    clusters: List[ClusterInfo] = field(default_factory=list)


@dataclass
class GraphAnalytics:
    """Centrality, structural and temporal summaries of a graph."""

    centrality_measures: Dict[str, Dict[str, float]]
    structural_metrics: GraphMetrics
    creation_trends: Dict[str, int] = field(default_factory=dict)
    connection_evolution: List[Dict[str, Any]] = field(default_factory=list)
