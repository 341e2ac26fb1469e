"""
Community detection over a built graph.

Clusters are the connected components of the subgraph made of edges whose
weight is at least ``min_edge_weight``. Every node belongs to exactly one
cluster; nodes without a qualifying edge form singleton clusters. Raising the
threshold can only split components, never merge them.
"""

import logging
from typing import Dict, List

import networkx as nx

from src.preprocessing.keywords import extract_keywords, top_keywords

from .graph_store import GraphStore
from .types import ClusterInfo

logger = logging.getLogger(__name__)


class GraphClusterer:
    """Deterministic weighted connected-component clustering."""

    def __init__(self, min_edge_weight: float = 0.1, top_k_keywords: int = 5):
        """
        Args:
            min_edge_weight: Edges lighter than this are ignored when grouping
            top_k_keywords: Number of keywords kept per cluster summary
        """
        self.min_edge_weight = min_edge_weight
        self.top_k_keywords = top_k_keywords

    def detect_communities(self, store: GraphStore) -> Dict[str, ClusterInfo]:
        graph = nx.Graph()
        graph.add_nodes_from(node.id for node in store.get_all_nodes())
        graph.add_edges_from(
            (edge.source, edge.target)
            for edge in store.get_all_edges()
            if edge.weight >= self.min_edge_weight
        )

        components: List[List[str]] = [sorted(c) for c in nx.connected_components(graph)]
        components.sort(key=lambda members: (-len(members), members[0]))

        clusters: Dict[str, ClusterInfo] = {}
        for index, members in enumerate(components):
            cluster_id = f"cluster-{index}"
            keywords = self._cluster_keywords(store, members)
            clusters[cluster_id] = ClusterInfo(
                id=cluster_id,
                nodes=set(members),
                label=self._cluster_label(store, members, keywords),
                density=self._cluster_density(store, members),
                keywords=keywords,
            )

        logger.info(
            "Detected %d clusters over %d nodes (min_edge_weight=%.2f)",
            len(clusters),
            graph.number_of_nodes(),
            self.min_edge_weight,
        )
        return clusters

    def _cluster_keywords(self, store: GraphStore, members: List[str]) -> List[str]:
        keyword_lists = []
        for node_id in members:
            node = store.get_node(node_id)
            if node is not None:
                keyword_lists.append(extract_keywords(node.title, node.metadata.tags))
        return top_keywords(keyword_lists, top_k=self.top_k_keywords)

    @staticmethod
    def _cluster_label(store: GraphStore, members: List[str], keywords: List[str]) -> str:
        if keywords:
            return " / ".join(keywords[:3])
        node = store.get_node(members[0])
        return node.title if node is not None else members[0]

    @staticmethod
    def _cluster_density(store: GraphStore, members: List[str]) -> float:
        n = len(members)
        if n < 2:
            return 0.0
        member_set = set(members)
        internal_edges = {
            edge.id
            for node_id in members
            for edge in store.get_connected_edges(node_id)
            if edge.other(node_id) in member_set
        }
        return len(internal_edges) / (n * (n - 1) / 2)
