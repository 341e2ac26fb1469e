"""
Graph service for querying the knowledge graph.

Provides methods to query the graph for neighbors, paths, filtered views,
search results and analytics, and to convert to frontend-friendly formats.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx
import pandas as pd

from src.preprocessing.keywords import tokenize_keywords

from .graph_store import GraphStore
from .types import (
    FilterCriteria,
    FilteredGraph,
    GraphAnalytics,
    GraphEdge,
    GraphMetrics,
    GraphNode,
    SearchResult,
    to_datetime,
)

logger = logging.getLogger(__name__)

NODE_FILTERS = ("date", "framework", "topic", "node_type")
EDGE_FILTERS = ("connection_strength",)


def _label(title: str) -> str:
    return title[:50] + "..." if len(title) > 50 else title


class GraphService:
    """Read-side queries over a ``GraphStore``."""

    def __init__(self, store: GraphStore):
        self.store = store

    def get_neighbors(
        self,
        node_id: str,
        max_neighbors: int = 20,
        edge_types: Optional[List[str]] = None,
    ) -> List[Dict]:
        """
        Get graph neighbors of a node.

        Args:
            node_id: Node id
            max_neighbors: Maximum number of neighbors to return
            edge_types: Optional list of edge types to include

        Returns:
            List of neighbor dictionaries with id, title and edge metadata,
            strongest connection first
        """
        if not self.store.has_node(node_id):
            logger.warning("Node '%s' not found in graph", node_id)
            return []

        best: Dict[str, Dict] = {}
        for edge in self.store.get_connected_edges(node_id):
            if edge_types is not None and edge.type not in edge_types:
                continue
            other_id = edge.other(node_id)
            if other_id in best and best[other_id]["weight"] >= edge.weight:
                continue
            other = self.store.get_node(other_id)
            best[other_id] = {
                "id": other_id,
                "title": other.title if other is not None else other_id,
                "type": edge.type,
                "weight": edge.weight,
            }

        neighbors = sorted(best.values(), key=lambda x: (-x["weight"], x["id"]))
        return neighbors[:max_neighbors]

    def find_path(
        self,
        from_id: str,
        to_id: str,
        max_path_length: Optional[int] = None,
    ) -> Optional[List[str]]:
        """
        Fewest-hop path between two nodes.

        Returns None if there is no path or it has more than
        ``max_path_length`` nodes.
        """
        path = self.store.find_shortest_path(from_id, to_id)
        if path is None:
            return None
        if max_path_length is not None and len(path) > max_path_length:
            return None
        return path

    # ------------------------------------------------------------------
    # Filters & search
    # ------------------------------------------------------------------

    def apply_filters(self, criteria: List[FilterCriteria]) -> FilteredGraph:
        """
        Nodes passing every enabled node filter, and edges passing every
        enabled edge filter whose endpoints are both kept.
        """
        active = [c for c in criteria if c.enabled]
        unknown = [c.type for c in active if c.type not in NODE_FILTERS + EDGE_FILTERS]
        if unknown:
            raise ValueError(f"Unknown filter type(s): {', '.join(unknown)}")

        node_filters = [c for c in active if c.type in NODE_FILTERS]
        edge_filters = [c for c in active if c.type in EDGE_FILTERS]

        nodes = {
            node.id
            for node in self.store.get_all_nodes()
            if all(self._node_matches(node, c) for c in node_filters)
        }
        edges = {
            edge.id
            for edge in self.store.get_all_edges()
            if edge.source in nodes
            and edge.target in nodes
            and all(self._edge_matches(edge, c) for c in edge_filters)
        }
        return FilteredGraph(nodes=nodes, edges=edges)

    @staticmethod
    def _node_matches(node: GraphNode, criterion: FilterCriteria) -> bool:
        value = criterion.value
        if criterion.type == "date":
            created = node.metadata.created
            start = value.get("start")
            end = value.get("end")
            if start is not None and created < to_datetime(start):
                return False
            if end is not None and created > to_datetime(end):
                return False
            return True
        if criterion.type == "framework":
            wanted = {str(f).lower() for f in value}
            return bool(node.metadata.framework) and node.metadata.framework.lower() in wanted
        if criterion.type == "topic":
            tags = set(value.get("tags") or [])
            keywords = {k.lower() for k in value.get("keywords") or []}
            if tags and not tags & set(node.metadata.tags):
                return False
            if keywords and not keywords & set(tokenize_keywords(node.title)):
                return False
            return True
        if criterion.type == "node_type":
            return node.type in value
        return True

    @staticmethod
    def _edge_matches(edge: GraphEdge, criterion: FilterCriteria) -> bool:
        if criterion.type == "connection_strength":
            low = criterion.value.get("min", 0.0)
            high = criterion.value.get("max", 1.0)
            return low <= edge.weight <= high
        return True

    def search(self, query: str, limit: int = 20) -> SearchResult:
        """
        Case-insensitive search over titles, tags and framework names.

        Returns the matching nodes (most important first), the edges among
        them and the clusters that contain them.
        """
        needle = (query or "").strip().lower()
        if not needle:
            return SearchResult()

        matches = []
        for node in self.store.get_all_nodes():
            haystack = [node.title.lower(), *(t.lower() for t in node.metadata.tags)]
            if node.metadata.framework:
                haystack.append(node.metadata.framework.lower())
            if any(needle in text for text in haystack):
                matches.append(node)

        matches.sort(key=lambda n: (-n.metadata.importance, n.id))
        matches = matches[:limit]
        ids = {node.id for node in matches}

        edges = [
            edge
            for edge in self.store.get_all_edges()
            if edge.source in ids and edge.target in ids
        ]
        clusters = [
            info
            for _, info in sorted(self.store.get_clusters().items())
            if info.nodes & ids
        ]
        return SearchResult(nodes=matches, edges=edges, clusters=clusters)

    # ------------------------------------------------------------------
    # Frontend views
    # ------------------------------------------------------------------

    def get_cluster_subgraph(self, cluster_id: str, max_nodes: int = 100) -> Tuple[List[Dict], List[Dict]]:
        """
        Get subgraph for a specific cluster.

        Returns:
            Tuple of (nodes, edges) in frontend-friendly format
        """
        info = self.store.get_clusters().get(cluster_id)
        if info is None:
            return [], []
        members = sorted(info.nodes)[:max_nodes]
        return self.to_visualization_format(members, max_nodes=max_nodes)

    def get_node_graph(self, node_id: str, max_neighbors: int = 20) -> Tuple[List[Dict], List[Dict]]:
        """
        Get graph centered on a specific node.

        The center node comes first in the node list.
        """
        if not self.store.has_node(node_id):
            return [], []
        neighbors = self.get_neighbors(node_id, max_neighbors=max_neighbors)
        return self.to_visualization_format([node_id] + [n["id"] for n in neighbors])

    def to_visualization_format(
        self,
        node_ids: List[str],
        max_nodes: int = 100,
    ) -> Tuple[List[Dict], List[Dict]]:
        """
        Convert graph nodes to frontend visualization format.

        Args:
            node_ids: Node ids to include
            max_nodes: Maximum number of nodes

        Returns:
            Tuple of (nodes, edges) in frontend format; edges only between selected nodes
        """
        if len(node_ids) > max_nodes:
            node_ids = node_ids[:max_nodes]

        viz_nodes = []
        for node_id in node_ids:
            node = self.store.get_node(node_id)
            if node is None:
                continue
            viz_nodes.append(
                {
                    "id": node.id,
                    "label": _label(node.title),
                    "type": node.type,
                    "cluster": node.cluster,
                    "importance": node.metadata.importance,
                }
            )

        selected = {n["id"] for n in viz_nodes}
        viz_edges = [
            {
                "source": edge.source,
                "target": edge.target,
                "weight": float(edge.weight),
                "type": str(edge.type),
            }
            for edge in self.store.get_all_edges()
            if edge.source in selected and edge.target in selected
        ]
        return viz_nodes, viz_edges

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def compute_analytics(self) -> GraphAnalytics:
        """Centrality measures, extended structural metrics and temporal patterns."""
        graph = self.store.to_networkx()

        if graph.number_of_nodes() > 0:
            centrality = {
                "degree": dict(nx.degree_centrality(graph)),
                "betweenness": dict(nx.betweenness_centrality(graph)),
                "closeness": dict(nx.closeness_centrality(graph)),
                "pagerank": dict(nx.pagerank(graph, weight="weight")),
            }
        else:
            centrality = {"degree": {}, "betweenness": {}, "closeness": {}, "pagerank": {}}

        metrics = self.store.calculate_metrics()
        diameter, average_path_length = self._path_statistics(graph)
        metrics.diameter = diameter
        metrics.average_path_length = average_path_length

        creation_trends, connection_evolution = self._temporal_patterns()
        return GraphAnalytics(
            centrality_measures=centrality,
            structural_metrics=metrics,
            creation_trends=creation_trends,
            connection_evolution=connection_evolution,
        )

    @staticmethod
    def _path_statistics(graph: nx.Graph) -> Tuple[Optional[int], Optional[float]]:
        """Diameter and average hop length of the largest connected component."""
        if graph.number_of_nodes() == 0:
            return None, None
        largest = max(nx.connected_components(graph), key=lambda c: (len(c), sorted(c)))
        component = graph.subgraph(largest)
        if component.number_of_nodes() < 2:
            return 0, 0.0
        return nx.diameter(component), float(nx.average_shortest_path_length(component))

    def _temporal_patterns(self) -> Tuple[Dict[str, int], List[Dict[str, Any]]]:
        nodes_df, edges_df = self.to_dataframes()
        if nodes_df.empty:
            return {}, []

        created_day = pd.to_datetime(nodes_df["created"], utc=True).dt.strftime("%Y-%m-%d")
        creation_trends = {str(day): int(count) for day, count in created_day.value_counts().sort_index().items()}

        if edges_df.empty:
            return creation_trends, []

        # An edge "appears" once its later endpoint exists.
        day_by_node = dict(zip(nodes_df["id"], created_day))
        edge_days = edges_df.apply(
            lambda row: max(day_by_node[row["source"]], day_by_node[row["target"]]),
            axis=1,
        )
        per_day = edge_days.value_counts().sort_index().cumsum()
        connection_evolution = [
            {"date": str(day), "edge_count": int(count)} for day, count in per_day.items()
        ]
        return creation_trends, connection_evolution

    def get_metrics(self) -> GraphMetrics:
        return self.store.calculate_metrics()

    def to_dataframes(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Tabular views of nodes and edges."""
        node_rows = [
            {
                "id": node.id,
                "type": node.type,
                "title": node.title,
                "path": node.path,
                "cluster": node.cluster,
                "framework": node.metadata.framework,
                "layer": node.metadata.layer,
                "tags": list(node.metadata.tags),
                "word_count": node.metadata.word_count,
                "importance": node.metadata.importance,
                "created": node.metadata.created,
                "modified": node.metadata.modified,
                "degree": self.store.get_node_degree(node.id),
            }
            for node in self.store.get_all_nodes()
        ]
        edge_rows = [
            {
                "id": edge.id,
                "source": edge.source,
                "target": edge.target,
                "weight": edge.weight,
                "type": edge.type,
            }
            for edge in self.store.get_all_edges()
        ]
        node_columns = [
            "id", "type", "title", "path", "cluster", "framework", "layer", "tags",
            "word_count", "importance", "created", "modified", "degree",
        ]
        edge_columns = ["id", "source", "target", "weight", "type"]
        return pd.DataFrame(node_rows, columns=node_columns), pd.DataFrame(edge_rows, columns=edge_columns)
