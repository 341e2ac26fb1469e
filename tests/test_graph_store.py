"""
Tests for graph storage, indexing and traversal (src/graph/graph_store.py).
"""

import networkx as nx
import pytest

from src.graph.graph_store import GraphStore
from src.graph.types import ClusterInfo, GraphEdge


@pytest.fixture
def path_store(node_factory, edge_factory):
    """A - B - C path plus isolated D."""
    store = GraphStore()
    for node_id in ["A", "B", "C", "D"]:
        store.add_node(node_factory(node_id))
    store.add_edge(edge_factory("A", "B", 0.6))
    store.add_edge(edge_factory("B", "C", 0.4))
    return store


def assert_invariants(store):
    """Endpoints exist, adjacency is symmetric and indexes match the edge set."""
    node_ids = {node.id for node in store.get_all_nodes()}
    for edge in store.get_all_edges():
        assert edge.source in node_ids
        assert edge.target in node_ids
        assert 0.0 <= edge.weight <= 1.0
        assert edge.target in store.get_neighbors(edge.source)
        assert edge.source in store.get_neighbors(edge.target)
        assert edge in store.get_connected_edges(edge.source)
        assert edge in store.get_connected_edges(edge.target)
    for node_id in node_ids:
        for neighbor in store.get_neighbors(node_id):
            assert node_id in store.get_neighbors(neighbor)


class TestMutation:
    """Node and edge insertion/removal."""

    def test_add_node_initializes_empty_indexes(self, node_factory):
        store = GraphStore()
        store.add_node(node_factory("A"))

        assert store.has_node("A")
        assert "A" in store
        assert len(store) == 1
        assert store.get_neighbors("A") == []
        assert store.get_connected_edges("A") == []
        assert store.get_node_degree("A") == 0

    def test_add_edge_updates_both_directions(self, path_store):
        assert path_store.get_neighbors("B") == ["A", "C"]
        assert path_store.get_neighbors("A") == ["B"]
        assert [e.id for e in path_store.get_connected_edges("B")] == ["A-B", "B-C"]
        assert_invariants(path_store)

    def test_add_edge_missing_endpoint_is_rejected(self, path_store, edge_factory, caplog):
        before = path_store.calculate_metrics()

        with caplog.at_level("WARNING"):
            added = path_store.add_edge(edge_factory("A", "Z", 0.5))

        assert added is False
        assert path_store.get_edge("A-Z") is None
        assert path_store.get_neighbors("A") == ["B"]
        assert path_store.calculate_metrics() == before
        assert "missing nodes" in caplog.text

    @pytest.mark.parametrize("weight", [-0.1, 1.5])
    def test_add_edge_weight_out_of_range_is_rejected(self, path_store, edge_factory, weight):
        assert path_store.add_edge(edge_factory("A", "D", weight)) is False
        assert path_store.get_neighbors("D") == []

    def test_add_edge_boundary_weights_accepted(self, path_store, edge_factory):
        assert path_store.add_edge(edge_factory("A", "D", 0.0)) is True
        assert path_store.add_edge(edge_factory("C", "D", 1.0)) is True
        assert_invariants(path_store)

    def test_readding_edge_replaces_it(self, path_store, edge_factory):
        assert path_store.add_edge(edge_factory("A", "B", 0.9))

        assert path_store.get_edge("A-B").weight == 0.9
        assert path_store.calculate_metrics().edge_count == 2
        assert_invariants(path_store)

    def test_duplicate_node_overwrites_record_and_keeps_edges(self, path_store, node_factory):
        path_store.add_node(node_factory("B", title="Renamed"))

        assert path_store.get_node("B").title == "Renamed"
        assert path_store.get_neighbors("B") == ["A", "C"]
        assert len(path_store.get_connected_edges("B")) == 2
        assert_invariants(path_store)

    def test_remove_node_cascades_edges(self, path_store):
        assert path_store.remove_node("B") is True

        assert not path_store.has_node("B")
        assert path_store.get_connected_edges("B") == []
        assert path_store.get_all_edges() == []
        for edge in path_store.get_all_edges():
            assert "B" not in (edge.source, edge.target)
        assert path_store.get_neighbors("A") == []
        assert path_store.get_neighbors("C") == []
        assert_invariants(path_store)

    def test_remove_unknown_node_is_noop(self, path_store):
        before = path_store.calculate_metrics()
        assert path_store.remove_node("Z") is False
        assert path_store.calculate_metrics() == before

    def test_remove_node_drops_cluster_membership(self, path_store):
        path_store.set_clusters({"cluster-0": ClusterInfo(id="cluster-0", nodes={"A", "B", "C"})})
        path_store.remove_node("A")
        assert path_store.get_clusters()["cluster-0"].nodes == {"B", "C"}

    def test_remove_edge_updates_indexes(self, path_store):
        assert path_store.remove_edge("A-B") is True

        assert path_store.get_edge("A-B") is None
        assert path_store.get_neighbors("A") == []
        assert path_store.get_neighbors("B") == ["C"]
        assert [e.id for e in path_store.get_connected_edges("B")] == ["B-C"]
        assert path_store.remove_edge("A-B") is False
        assert_invariants(path_store)

    def test_second_edge_between_connected_pair_is_rejected(self, path_store, edge_factory, caplog):
        with caplog.at_level("WARNING"):
            added = path_store.add_edge(edge_factory("B", "A", 0.2))

        assert added is False
        assert path_store.get_edge("B-A") is None
        metrics = path_store.calculate_metrics()
        assert metrics.edge_count == 2
        assert metrics.average_degree == pytest.approx(2 * metrics.edge_count / metrics.node_count)
        assert "already connected" in caplog.text
        assert_invariants(path_store)

    def test_edge_id_reused_for_other_pair_is_rejected(self, node_factory, caplog):
        store = GraphStore()
        for node_id in ["x-y", "z", "x", "y-z"]:
            store.add_node(node_factory(node_id))
        first = GraphEdge(id=GraphEdge.make_id("x-y", "z"), source="x-y", target="z", weight=0.35)
        second = GraphEdge(id=GraphEdge.make_id("x", "y-z"), source="x", target="y-z", weight=0.35)
        assert first.id == second.id

        assert store.add_edge(first) is True
        with caplog.at_level("WARNING"):
            assert store.add_edge(second) is False

        assert store.get_neighbors("x-y") == ["z"]
        assert store.get_neighbors("x") == []
        assert store.get_edge("x-y-z").target == "z"
        assert "id already joins" in caplog.text
        assert_invariants(store)

    def test_clear(self, path_store):
        path_store.clear()
        metrics = path_store.calculate_metrics()
        assert metrics.node_count == 0
        assert metrics.edge_count == 0
        assert path_store.get_clusters() == {}


class TestQueries:
    """Lookups and traversal."""

    def test_unknown_node_queries_are_empty(self):
        store = GraphStore()
        assert store.get_neighbors("nope") == []
        assert store.get_connected_edges("nope") == []
        assert store.get_node_degree("nope") == 0
        assert store.get_node("nope") is None

    def test_node_degree(self, path_store):
        assert path_store.get_node_degree("A") == 1
        assert path_store.get_node_degree("B") == 2
        assert path_store.get_node_degree("D") == 0

    def test_shortest_path(self, path_store):
        assert path_store.find_shortest_path("A", "C") == ["A", "B", "C"]
        assert path_store.find_shortest_path("C", "A") == ["C", "B", "A"]

    def test_shortest_path_disconnected(self, path_store):
        assert path_store.find_shortest_path("A", "D") is None
        assert path_store.find_shortest_path("A", "Z") is None

    def test_shortest_path_same_node(self, path_store):
        assert path_store.find_shortest_path("A", "A") == ["A"]

    def test_shortest_path_ignores_weights(self, path_store, edge_factory):
        # Direct light edge beats a heavy two-hop route.
        path_store.add_edge(edge_factory("A", "C", 0.01))
        assert path_store.find_shortest_path("A", "C") == ["A", "C"]


class TestMetrics:
    """Density and average degree."""

    def test_density_four_nodes_three_edges(self, path_store, edge_factory):
        path_store.add_edge(edge_factory("C", "D", 0.5))
        metrics = path_store.calculate_metrics()

        assert metrics.node_count == 4
        assert metrics.edge_count == 3
        assert metrics.density == pytest.approx(0.5)

    def test_average_degree_path(self, node_factory, edge_factory):
        store = GraphStore()
        for node_id in ["A", "B", "C"]:
            store.add_node(node_factory(node_id))
        store.add_edge(edge_factory("A", "B"))
        store.add_edge(edge_factory("B", "C"))

        metrics = store.calculate_metrics()
        assert metrics.average_degree == pytest.approx(4 / 3)
        assert metrics.average_degree == pytest.approx(2 * metrics.edge_count / metrics.node_count)

    def test_metrics_empty_and_single_node(self, node_factory):
        store = GraphStore()
        metrics = store.calculate_metrics()
        assert metrics.density == 0
        assert metrics.average_degree == 0

        store.add_node(node_factory("A"))
        metrics = store.calculate_metrics()
        assert metrics.density == 0
        assert metrics.average_degree == 0

    def test_cluster_count(self, sample_store):
        assert sample_store.calculate_metrics().cluster_count == 2


class TestExportImport:
    """Snapshot round-trips."""

    def test_export_structure(self, sample_store):
        data = sample_store.export_data()

        assert set(data.keys()) == {"nodes", "edges", "clusters"}
        assert len(data["nodes"]) == 4
        assert len(data["edges"]) == 2
        cluster = next(c for c in data["clusters"] if c["id"] == "cluster-0")
        assert cluster["nodes"] == ["A", "B", "C"]
        assert cluster["size"] == 3

    def test_round_trip(self, sample_store):
        restored = GraphStore()
        restored.import_data(sample_store.export_data())

        assert restored.calculate_metrics() == sample_store.calculate_metrics()
        assert {n.id for n in restored.get_all_nodes()} == {n.id for n in sample_store.get_all_nodes()}
        for edge in sample_store.get_all_edges():
            assert restored.get_edge(edge.id).weight == pytest.approx(edge.weight)
        assert {cid: info.nodes for cid, info in restored.get_clusters().items()} == {
            cid: info.nodes for cid, info in sample_store.get_clusters().items()
        }
        assert restored.get_node("A").cluster == sample_store.get_node("A").cluster
        assert restored.get_node("A").metadata.created == sample_store.get_node("A").metadata.created
        assert_invariants(restored)

    def test_import_skips_dangling_edges(self, sample_store):
        data = sample_store.export_data()
        data["edges"].append({"id": "A-Z", "source": "A", "target": "Z", "weight": 0.5})

        restored = GraphStore()
        restored.import_data(data)

        assert restored.get_edge("A-Z") is None
        assert restored.calculate_metrics().edge_count == 2

    def test_import_replaces_existing_graph(self, sample_store, path_store):
        path_store.import_data(sample_store.export_data())
        assert path_store.get_edge("B-C").weight == pytest.approx(0.3)
        assert path_store.get_node("A").title == "Socratic Method"

    def test_to_networkx(self, sample_store):
        graph = sample_store.to_networkx()

        assert isinstance(graph, nx.Graph)
        assert graph.number_of_nodes() == 4
        assert graph.number_of_edges() == 2
        assert graph["A"]["B"]["weight"] == pytest.approx(0.8)
        assert graph.nodes["A"]["cluster"] == "cluster-0"
