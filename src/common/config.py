"""
Configuration management.

Loads graph engine settings from config.yaml and provides helper functions
with defaults for every value, so a missing file or section never breaks a build.
"""

import os
from typing import Any, Dict

import yaml

CONFIG_PATH = "config.yaml"

DEFAULT_GRAPH_CONFIG: Dict[str, Any] = {
    "edge_threshold": 0.1,
    "min_cluster_edge_weight": 0.1,
    "max_nodes": 5000,
    "max_workers": 1,
    "show_progress": False,
    "cluster_keywords": 5,
}


def load_config(config_path: str = CONFIG_PATH) -> Dict:
    """Load configuration from YAML file; an absent file yields an empty config."""
    if not os.path.exists(config_path):
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_graph_config(config_path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Graph section merged over the defaults."""
    config = load_config(config_path)
    graph_cfg = config.get("graph", {}) if isinstance(config, dict) else {}
    merged = dict(DEFAULT_GRAPH_CONFIG)
    merged.update(graph_cfg or {})
    return merged


def get_builder_settings(config_path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Keyword arguments for ``KnowledgeGraphBuilder`` taken from the graph section."""
    graph_cfg = get_graph_config(config_path)
    max_nodes = graph_cfg.get("max_nodes")
    return {
        "edge_threshold": float(graph_cfg["edge_threshold"]),
        "min_cluster_edge_weight": float(graph_cfg["min_cluster_edge_weight"]),
        "max_nodes": int(max_nodes) if max_nodes else None,
        "max_workers": int(graph_cfg.get("max_workers") or 1),
        "show_progress": bool(graph_cfg.get("show_progress", False)),
        "cluster_keywords": int(graph_cfg["cluster_keywords"]),
    }
