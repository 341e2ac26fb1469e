"""
Knowledge graph construction from document records.

Builds a weighted, undirected graph in three passes:
- Nodes: one per document, with inferred type, title and importance
- Edges: pairwise connection analysis, keeping pairs above a weight threshold
- Clusters: community detection, written back onto each node
"""

import logging
import math
import os
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from tqdm import tqdm

from .clustering import GraphClusterer
from .connection_analyzer import ConnectionAnalyzer
from .graph_store import GraphStore
from .types import GraphEdge, GraphNode, NodeMetadata, to_datetime

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^#+\s*(.+)$")
_CONCEPT_RE = re.compile(r"definition|concept|principle", re.IGNORECASE)


def determine_node_type(document: Mapping[str, Any]) -> str:
    """Infer a node type from content and metadata, first match wins."""
    content = document.get("content") or ""
    metadata = document.get("metadata") or {}
    tags = metadata.get("tags") or []

    if metadata.get("framework") or "framework" in content:
        return "framework"

    if "insight" in content or "reflection" in content or "#insight" in tags:
        return "insight"

    if any(str(tag).startswith("#concept") for tag in tags) or _CONCEPT_RE.search(content):
        return "concept"

    return "content"


def extract_title(document: Mapping[str, Any]) -> str:
    """Title from explicit fields, a first-line heading, the filename or the first line."""
    if document.get("title"):
        return str(document["title"])
    if document.get("name"):
        return str(document["name"])

    lines = (document.get("content") or "").split("\n")
    heading = _HEADING_RE.match(lines[0].strip())
    if heading:
        return heading.group(1).strip()

    path = document.get("path") or ""
    filename = os.path.splitext(os.path.basename(path))[0]
    if filename:
        return filename

    for line in lines:
        if line.strip():
            return line.strip()

    return "Untitled"


def count_words(content: Optional[str]) -> int:
    if not content:
        return 0
    return len(content.split())


def calculate_importance(word_count: int, tag_count: int, has_framework: bool) -> float:
    """Importance score in [1, 5] from length, tagging and framework."""
    importance = 1.0
    importance += math.log(word_count + 1) * 0.1
    importance += tag_count * 0.2
    if has_framework:
        importance += 0.5
    return min(importance, 5.0)


def create_node_from_document(document: Mapping[str, Any]) -> GraphNode:
    """
    Build a graph node from a document record.

    Raises:
        ValueError: if the record has neither a ``path`` nor an ``id``
    """
    node_id = document.get("path") or document.get("id")
    if not node_id:
        raise ValueError("Document record has neither 'path' nor 'id'")

    metadata = document.get("metadata") or {}
    tags = [str(tag) for tag in (metadata.get("tags") or [])]
    framework = metadata.get("framework") or None
    word_count = count_words(document.get("content"))

    return GraphNode(
        id=str(node_id),
        type=determine_node_type(document),
        title=extract_title(document),
        path=document.get("path") or "",
        metadata=NodeMetadata(
            created=to_datetime(document.get("created")),
            modified=to_datetime(document.get("modified")),
            framework=framework,
            layer=metadata.get("layer"),
            tags=tags,
            word_count=word_count,
            importance=calculate_importance(word_count, len(tags), bool(framework)),
        ),
    )


def _unique_edge_id(edge_id: str, taken: Set[str]) -> str:
    """
    Suffix ``edge_id`` until it is unused.

    ``source-target`` ids are ambiguous when node ids contain hyphens
    (``x-y`` + ``z`` and ``x`` + ``y-z`` both give ``x-y-z``).
    """
    if edge_id not in taken:
        return edge_id
    suffix = 1
    while f"{edge_id}#{suffix}" in taken:
        suffix += 1
    logger.warning("Edge id %s already used; storing as %s#%d", edge_id, edge_id, suffix)
    return f"{edge_id}#{suffix}"


class KnowledgeGraphBuilder:
    """Builds a clustered knowledge graph from document records."""

    def __init__(
        self,
        store: Optional[GraphStore] = None,
        analyzer: Optional[ConnectionAnalyzer] = None,
        clusterer: Optional[GraphClusterer] = None,
        *,
        edge_threshold: float = 0.1,
        min_cluster_edge_weight: float = 0.1,
        max_nodes: Optional[int] = None,
        max_workers: int = 1,
        show_progress: bool = False,
        cluster_keywords: int = 5,
    ):
        """
        Initialize graph builder.

        Args:
            store: Graph store to build into (a fresh one by default)
            analyzer: Pairwise connection analyzer
            clusterer: Community detector run after edges are in place
            edge_threshold: Pairs must score strictly above this to get an edge
            min_cluster_edge_weight: Threshold passed to the default clusterer
            max_nodes: Refuse builds with more documents than this (None = unbounded)
            max_workers: Threads used to score pairs; insertion stays single-threaded
            show_progress: Show a tqdm progress bar during pairwise analysis
            cluster_keywords: Keywords kept per cluster by the default clusterer
        """
        self.store = store if store is not None else GraphStore()
        self.analyzer = analyzer if analyzer is not None else ConnectionAnalyzer()
        self.clusterer = (
            clusterer
            if clusterer is not None
            else GraphClusterer(min_edge_weight=min_cluster_edge_weight, top_k_keywords=cluster_keywords)
        )
        self.edge_threshold = edge_threshold
        self.max_nodes = max_nodes
        self.max_workers = max(1, int(max_workers))
        self.show_progress = show_progress

    def build_from_documents(self, documents: Iterable[Mapping[str, Any]]) -> GraphStore:
        """
        Rebuild the store from documents: clear, nodes, edges, clusters.

        The build is not transactional. If a record is invalid the store keeps
        whatever was inserted before it.
        """
        documents = list(documents)
        if self.max_nodes is not None and len(documents) > self.max_nodes:
            raise ValueError(
                f"Refusing to build graph from {len(documents)} documents "
                f"(max_nodes={self.max_nodes})"
            )

        logger.info("Building graph from %d documents", len(documents))
        self.store.clear()

        for document in documents:
            self.store.add_node(create_node_from_document(document))

        edge_count = self._analyze_connections()
        logger.info("Analyzed connections: %d edges created", edge_count)

        clusters = self.clusterer.detect_communities(self.store)
        self.store.set_clusters(clusters)

        metrics = self.store.calculate_metrics()
        logger.info(
            "Graph built: %d nodes, %d edges, %d clusters",
            metrics.node_count,
            metrics.edge_count,
            metrics.cluster_count,
        )
        return self.store

    def _analyze_connections(self) -> int:
        """Score every unordered node pair and insert qualifying edges."""
        nodes = self.store.get_all_nodes()
        n = len(nodes)

        def score_row(i: int) -> List[Tuple[int, float]]:
            return [
                (j, self.analyzer.calculate_connection_weight(nodes[i], nodes[j]))
                for j in range(i + 1, n)
            ]

        rows = range(n)
        if self.max_workers > 1 and n > 1:
            executor = ThreadPoolExecutor(max_workers=self.max_workers)
            scored = executor.map(score_row, rows)
        else:
            executor = None
            scored = map(score_row, rows)

        edges: List[GraphEdge] = []
        edge_ids: Set[str] = set()
        try:
            for i, row in tqdm(
                zip(rows, scored),
                total=n,
                desc="Analyzing connections",
                disable=not self.show_progress,
            ):
                for j, weight in row:
                    if weight > self.edge_threshold:
                        edge = self._make_edge(nodes[i], nodes[j], weight)
                        edge.id = _unique_edge_id(edge.id, edge_ids)
                        edge_ids.add(edge.id)
                        edges.append(edge)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        # Single writer: edges are inserted on this thread in pair order.
        return sum(1 for edge in edges if self.store.add_edge(edge))

    def _make_edge(self, node1: GraphNode, node2: GraphNode, weight: float) -> GraphEdge:
        return GraphEdge(
            id=GraphEdge.make_id(node1.id, node2.id),
            source=node1.id,
            target=node2.id,
            weight=weight,
            type="semantic",
            metadata={
                "similarity": weight,
                "connection_types": self.analyzer.analyze_connection_types(node1, node2),
            },
        )

    def get_store(self) -> GraphStore:
        """Get the graph store being built into."""
        return self.store


def build_knowledge_graph(documents: Iterable[Mapping[str, Any]], **builder_kwargs: Any) -> GraphStore:
    """Convenience wrapper: build into a fresh store and return it."""
    return KnowledgeGraphBuilder(**builder_kwargs).build_from_documents(documents)


def builder_from_config(settings: Dict[str, Any]) -> KnowledgeGraphBuilder:
    """Create a builder from ``src.common.config.get_builder_settings`` output."""
    return KnowledgeGraphBuilder(**settings)
