"""
Graph construction pipeline script.

Builds a knowledge graph from already-extracted document records (a JSON list)
and writes the exported graph structure as JSON. Called via:
    python -m src.graph.build_graph --input documents.json --output graph.json
"""

import argparse
import json
import logging
import os
from typing import Dict, List, Optional

from src.common.config import CONFIG_PATH, get_builder_settings
from src.common.logging_utils import setup_logging

from .knowledge_graph import builder_from_config

logger = logging.getLogger(__name__)

DOCUMENTS_PATH = os.path.join("data", "documents.json")
GRAPH_PATH = os.path.join("data", "graph", "knowledge_graph.json")


def load_documents(path: str = DOCUMENTS_PATH) -> List[Dict]:
    """Load document records (content, path, timestamps, metadata)."""
    if not os.path.exists(path):
        raise FileNotFoundError(
            f"Documents file not found at {path}. "
            "Export the document records first."
        )
    with open(path, "r", encoding="utf-8") as f:
        documents = json.load(f)
    if not isinstance(documents, list):
        raise ValueError("Documents file must contain a JSON list of records")
    logger.info("Loaded %d documents from %s", len(documents), path)
    return documents


def save_graph(data: Dict, path: str = GRAPH_PATH) -> None:
    """Write an exported graph to disk as JSON."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info(
        "Saved graph to %s (%d nodes, %d edges, %d clusters)",
        path,
        len(data["nodes"]),
        len(data["edges"]),
        len(data["clusters"]),
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build a knowledge graph from document records")
    parser.add_argument("--input", default=DOCUMENTS_PATH, help="JSON list of document records")
    parser.add_argument("--output", default=GRAPH_PATH, help="Where to write the exported graph")
    parser.add_argument("--config", default=CONFIG_PATH, help="Path to config.yaml")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Main graph construction pipeline."""
    args = parse_args(argv)
    setup_logging(args.config)
    logger.info("Starting knowledge graph construction pipeline")

    try:
        settings = get_builder_settings(args.config)
        documents = load_documents(args.input)

        builder = builder_from_config(settings)
        store = builder.build_from_documents(documents)

        save_graph(store.export_data(), args.output)
        logger.info("Knowledge graph construction complete")
    except FileNotFoundError as exc:
        logger.error("Graph construction failed: %s", exc)
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Graph construction failed with error: %s", exc)
        raise


if __name__ == "__main__":
    main()
