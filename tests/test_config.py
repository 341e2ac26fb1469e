"""
Tests for configuration and logging helpers (src/common/).
"""

import logging
from pathlib import Path

import pytest

from src.common.config import DEFAULT_GRAPH_CONFIG, get_builder_settings, get_graph_config, load_config
from src.common.logging_utils import build_logging_config, setup_logging


def test_load_config_missing_file(tmp_path):
    assert load_config(str(tmp_path / "missing.yaml")) == {}


def test_graph_config_defaults(tmp_path):
    assert get_graph_config(str(tmp_path / "missing.yaml")) == DEFAULT_GRAPH_CONFIG


def test_graph_config_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("graph:\n  edge_threshold: 0.25\n  max_workers: 4\n", encoding="utf-8")

    cfg = get_graph_config(str(path))
    assert cfg["edge_threshold"] == 0.25
    assert cfg["max_workers"] == 4
    assert cfg["min_cluster_edge_weight"] == DEFAULT_GRAPH_CONFIG["min_cluster_edge_weight"]


def test_builder_settings_types(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("graph:\n  max_nodes: null\n  edge_threshold: 1\n", encoding="utf-8")

    settings = get_builder_settings(str(path))
    assert settings["max_nodes"] is None
    assert settings["edge_threshold"] == 1.0
    assert isinstance(settings["edge_threshold"], float)
    assert settings["max_workers"] == 1


def test_repository_config_is_valid():
    settings = get_builder_settings(str(Path(__file__).resolve().parents[1] / "config.yaml"))
    assert settings["edge_threshold"] == pytest.approx(0.1)


def test_build_logging_config_console_only():
    cfg = build_logging_config({"level": "debug"})
    assert cfg["root"]["level"] == "DEBUG"
    assert cfg["root"]["handlers"] == ["console"]


def test_build_logging_config_with_file_and_override(tmp_path):
    log_file = tmp_path / "logs" / "graph.log"
    cfg = build_logging_config({"level": "INFO", "file": str(log_file)}, level_override="warning")

    assert cfg["root"]["level"] == "WARNING"
    assert cfg["root"]["handlers"] == ["console", "file"]
    assert cfg["handlers"]["file"]["filename"] == str(log_file)


def test_setup_logging_creates_log_directory(tmp_path, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    log_file = tmp_path / "logs" / "graph.log"
    config = tmp_path / "config.yaml"
    config.write_text(f"logging:\n  level: INFO\n  file: '{log_file.as_posix()}'\n", encoding="utf-8")

    setup_logging(str(config))
    logging.getLogger("src.graph").info("hello")

    assert log_file.parent.exists()
    for handler in logging.getLogger().handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            logging.getLogger().removeHandler(handler)


def test_build_logging_config_per_logger_levels():
    cfg = build_logging_config({"level": "DEBUG", "loggers": {"src.graph.graph_store": "info"}})

    assert cfg["loggers"] == {"src.graph.graph_store": {"level": "INFO"}}
    assert cfg["root"]["level"] == "DEBUG"


def test_build_logging_config_rejects_unknown_level():
    with pytest.raises(ValueError):
        build_logging_config({"level": "chatty"})
    with pytest.raises(ValueError):
        build_logging_config({"loggers": {"src.graph": "loud"}})
