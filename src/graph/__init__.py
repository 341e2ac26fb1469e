"""
Knowledge graph engine.

Turns document records into a weighted, undirected relationship graph,
scores document pairs with a multi-factor connection analyzer, and
partitions the result into clusters.
"""

from .clustering import GraphClusterer
from .connection_analyzer import ConnectionAnalyzer
from .graph_service import GraphService
from .graph_store import GraphStore
from .knowledge_graph import KnowledgeGraphBuilder, build_knowledge_graph
from .types import ClusterInfo, GraphEdge, GraphMetrics, GraphNode, NodeMetadata

__all__ = [
    "ClusterInfo",
    "ConnectionAnalyzer",
    "GraphClusterer",
    "GraphEdge",
    "GraphMetrics",
    "GraphNode",
    "GraphService",
    "GraphStore",
    "KnowledgeGraphBuilder",
    "NodeMetadata",
    "build_knowledge_graph",
]
