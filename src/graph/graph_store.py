"""
In-memory graph storage with dual indexing.

Nodes and edges live in dicts keyed by their ids. Two derived indexes are kept
in sync with the edge set after every mutation:

- adjacency index: node id -> set of neighbor node ids
- edge index: node id -> set of incident edge ids

The graph is undirected; every edge is recorded under both endpoints.
"""

import logging
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Set

import networkx as nx

from .types import ClusterInfo, GraphEdge, GraphMetrics, GraphNode

logger = logging.getLogger(__name__)


class GraphStore:
    """Owns nodes, edges, clusters and the adjacency/edge indexes."""

    def __init__(self) -> None:
        self._nodes: Dict[str, GraphNode] = {}
        self._edges: Dict[str, GraphEdge] = {}
        self._clusters: Dict[str, ClusterInfo] = {}
        self._adjacency: Dict[str, Set[str]] = {}
        self._edge_index: Dict[str, Set[str]] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_node(self, node: GraphNode) -> None:
        """
        Insert a node.

        Re-adding an existing id replaces the stored record but keeps its
        index entries, so edges already attached to that id stay valid.
        """
        if node.id in self._nodes:
            logger.warning("Node %s already exists; overwriting its record", node.id)
        self._nodes[node.id] = node
        self._adjacency.setdefault(node.id, set())
        self._edge_index.setdefault(node.id, set())
        logger.debug("Added node: %s (%s)", node.id, node.type)

    def add_edge(self, edge: GraphEdge) -> bool:
        """
        Insert an edge between two existing nodes.

        Returns False (and leaves the graph untouched) when an endpoint is
        missing, the weight falls outside [0, 1], the id already names an edge
        between a different pair, or the pair is already joined by another
        edge. Re-adding an edge id for the same pair replaces that edge.
        """
        if edge.source not in self._nodes or edge.target not in self._nodes:
            logger.warning("Cannot add edge %s: missing nodes", edge.id)
            return False
        if not 0.0 <= edge.weight <= 1.0:
            logger.warning("Cannot add edge %s: weight %.4f outside [0, 1]", edge.id, edge.weight)
            return False

        existing = self._edges.get(edge.id)
        if existing is not None and {existing.source, existing.target} != {edge.source, edge.target}:
            logger.warning(
                "Cannot add edge %s: id already joins %s and %s",
                edge.id,
                existing.source,
                existing.target,
            )
            return False
        if existing is None and edge.target in self._adjacency[edge.source]:
            logger.warning(
                "Cannot add edge %s: %s and %s are already connected",
                edge.id,
                edge.source,
                edge.target,
            )
            return False

        if existing is not None:
            self.remove_edge(edge.id)

        self._edges[edge.id] = edge

        self._adjacency[edge.source].add(edge.target)
        self._adjacency[edge.target].add(edge.source)

        self._edge_index[edge.source].add(edge.id)
        self._edge_index[edge.target].add(edge.id)

        logger.debug("Added edge: %s -> %s (%.4f)", edge.source, edge.target, edge.weight)
        return True

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it. Returns False if absent."""
        if node_id not in self._nodes:
            return False

        for edge_id in list(self._edge_index.get(node_id, ())):
            self.remove_edge(edge_id)

        del self._nodes[node_id]
        self._adjacency.pop(node_id, None)
        self._edge_index.pop(node_id, None)

        for cluster in self._clusters.values():
            cluster.nodes.discard(node_id)

        logger.debug("Removed node: %s", node_id)
        return True

    def remove_edge(self, edge_id: str) -> bool:
        """Remove an edge and its index entries. Returns False if absent."""
        edge = self._edges.pop(edge_id, None)
        if edge is None:
            return False

        for node_id in (edge.source, edge.target):
            self._edge_index.get(node_id, set()).discard(edge_id)
        self._adjacency.get(edge.source, set()).discard(edge.target)
        self._adjacency.get(edge.target, set()).discard(edge.source)

        logger.debug("Removed edge: %s", edge_id)
        return True

    def clear(self) -> None:
        self._nodes.clear()
        self._edges.clear()
        self._clusters.clear()
        self._adjacency.clear()
        self._edge_index.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[GraphEdge]:
        return self._edges.get(edge_id)

    def get_all_nodes(self) -> List[GraphNode]:
        return list(self._nodes.values())

    def get_all_edges(self) -> List[GraphEdge]:
        return list(self._edges.values())

    def get_neighbors(self, node_id: str) -> List[str]:
        """Neighbor ids of a node, sorted; empty for unknown ids."""
        return sorted(self._adjacency.get(node_id, ()))

    def get_connected_edges(self, node_id: str) -> List[GraphEdge]:
        """Edges incident to a node, sorted by id; empty for unknown ids."""
        edge_ids = self._edge_index.get(node_id, ())
        return [self._edges[edge_id] for edge_id in sorted(edge_ids) if edge_id in self._edges]

    def get_node_degree(self, node_id: str) -> int:
        return len(self._adjacency.get(node_id, ()))

    def find_shortest_path(self, source_id: str, target_id: str) -> Optional[List[str]]:
        """
        Breadth-first search over the unweighted adjacency index.

        Edge weights are not used as path costs; the result is the fewest-hop
        path (inclusive of both endpoints) or None if the nodes are not
        connected.
        """
        if source_id == target_id:
            return [source_id]
        if source_id not in self._adjacency or target_id not in self._adjacency:
            return None

        parents: Dict[str, Optional[str]] = {source_id: None}
        queue = deque([source_id])
        while queue:
            current = queue.popleft()
            if current == target_id:
                path = [current]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])
                path.reverse()
                return path
            for neighbor in sorted(self._adjacency[current]):
                if neighbor not in parents:
                    parents[neighbor] = current
                    queue.append(neighbor)

        return None

    # ------------------------------------------------------------------
    # Clusters
    # ------------------------------------------------------------------

    def set_clusters(self, clusters: Dict[str, ClusterInfo]) -> None:
        """Store a partition and annotate member nodes with their cluster id."""
        self._clusters = dict(clusters)
        for node in self._nodes.values():
            node.cluster = None
        for cluster_id, info in self._clusters.items():
            for node_id in info.nodes:
                node = self._nodes.get(node_id)
                if node is not None:
                    node.cluster = cluster_id

    def get_clusters(self) -> Dict[str, ClusterInfo]:
        return dict(self._clusters)

    # ------------------------------------------------------------------
    # Metrics / export
    # ------------------------------------------------------------------

    def calculate_metrics(self) -> GraphMetrics:
        node_count = len(self._nodes)
        edge_count = len(self._edges)

        max_possible_edges = node_count * (node_count - 1) / 2
        density = edge_count / max_possible_edges if max_possible_edges > 0 else 0.0

        total_degree = sum(len(neighbors) for neighbors in self._adjacency.values())
        average_degree = total_degree / node_count if node_count > 0 else 0.0

        return GraphMetrics(
            node_count=node_count,
            edge_count=edge_count,
            density=density,
            average_degree=average_degree,
            cluster_count=len(self._clusters),
        )

    def export_data(self) -> Dict[str, List[Dict[str, Any]]]:
        """Plain snapshot of nodes, edges and clusters."""
        return {
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "edges": [edge.to_dict() for edge in self._edges.values()],
            "clusters": [info.to_dict() for info in self._clusters.values()],
        }

    def import_data(self, data: Dict[str, Iterable[Dict[str, Any]]]) -> None:
        """Replace the graph with a snapshot produced by ``export_data``."""
        self.clear()

        for node_data in data.get("nodes") or []:
            self.add_node(GraphNode.from_dict(node_data))

        skipped = 0
        for edge_data in data.get("edges") or []:
            if not self.add_edge(GraphEdge.from_dict(edge_data)):
                skipped += 1

        for cluster_data in data.get("clusters") or []:
            info = ClusterInfo.from_dict(cluster_data)
            self._clusters[info.id] = info

        logger.info(
            "Imported graph: %d nodes, %d edges (%d skipped), %d clusters",
            len(self._nodes),
            len(self._edges),
            skipped,
            len(self._clusters),
        )

    def to_networkx(self) -> nx.Graph:
        """Undirected NetworkX view with node attributes and edge weights."""
        graph = nx.Graph()
        for node in self._nodes.values():
            graph.add_node(
                node.id,
                type=node.type,
                title=node.title,
                cluster=node.cluster,
                importance=node.metadata.importance,
            )
        for edge in self._edges.values():
            graph.add_edge(edge.source, edge.target, weight=edge.weight, type=edge.type, id=edge.id)
        return graph
