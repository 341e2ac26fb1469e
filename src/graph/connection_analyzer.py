"""
Connection analysis between pairs of graph nodes.

The connection weight is a weighted combination of five independent signals:

- explicit links (0.35)
- semantic similarity of title/tag keywords (0.30)
- framework alignment (0.20)
- tag overlap (0.10)
- temporal proximity of creation times (0.05)

capped at 1.0.
"""

import logging
import math
from typing import Dict, List, Optional, Set

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from src.preprocessing.keywords import build_vocabulary, extract_keywords, term_frequency_vector

from .types import GraphNode

logger = logging.getLogger(__name__)

FACTOR_WEIGHTS: Dict[str, float] = {
    "explicit": 0.35,
    "semantic": 0.30,
    "framework": 0.20,
    "tag": 0.10,
    "temporal": 0.05,
}

# Hours; creation times a week apart score exp(-1).
TEMPORAL_DECAY_HOURS = 168.0

FRAMEWORK_RELATIONS: Dict[str, Dict[str, float]] = {
    "socratic": {
        "inquiry": 0.8,
        "dialogue": 0.7,
        "questioning": 0.9,
    },
    "feynman": {
        "teaching": 0.6,
        "explanation": 0.7,
        "simplification": 0.8,
    },
    "cornell": {
        "note-taking": 0.9,
        "summary": 0.6,
        "review": 0.7,
    },
    "mind-mapping": {
        "visual": 0.8,
        "brainstorming": 0.7,
        "connection": 0.9,
    },
    "spaced-repetition": {
        "memory": 0.9,
        "review": 0.8,
        "retention": 0.9,
    },
}


def jaccard_similarity(a: Set[str], b: Set[str]) -> float:
    """|A ∩ B| / |A ∪ B|, or 0.0 when both sets are empty."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def framework_relatedness(framework1: str, framework2: str) -> float:
    """Look up two framework names in the relation table, in both orders."""
    name1 = framework1.lower()
    name2 = framework2.lower()
    value = FRAMEWORK_RELATIONS.get(name1, {}).get(name2)
    if value is None:
        value = FRAMEWORK_RELATIONS.get(name2, {}).get(name1)
    return value or 0.0


class ConnectionAnalyzer:
    """Calculates relationships and connection strengths between nodes."""

    def calculate_connection_weight(self, node1: GraphNode, node2: GraphNode) -> float:
        """Combined connection weight in [0, 1]."""
        factors = self.calculate_factors(node1, node2)
        total = sum(FACTOR_WEIGHTS[name] * value for name, value in factors.items())

        logger.debug(
            "Connection weight for %s -> %s: %s = %.4f",
            node1.id,
            node2.id,
            factors,
            total,
        )
        return min(total, 1.0)

    def calculate_factors(self, node1: GraphNode, node2: GraphNode) -> Dict[str, float]:
        """Unweighted value of every factor, each in [0, 1]."""
        return {
            "explicit": self.calculate_explicit_link_weight(node1, node2),
            "semantic": self.calculate_semantic_similarity(node1, node2),
            "framework": self.calculate_framework_alignment(node1, node2),
            "tag": self.calculate_tag_similarity(node1, node2),
            "temporal": self.calculate_temporal_proximity(node1, node2),
        }

    def calculate_explicit_link_weight(self, node1: GraphNode, node2: GraphNode) -> float:
        # Wiki-style links live in document bodies, which nodes do not carry.
        return 0.0

    def calculate_semantic_similarity(self, node1: GraphNode, node2: GraphNode) -> float:
        """
        Keyword similarity: 0.6 * Jaccard + 0.4 * cosine of term frequencies.

        Returns 0.0 if either node has no keywords.
        """
        keywords1 = self.extract_keywords(node1)
        keywords2 = self.extract_keywords(node2)

        if not keywords1 or not keywords2:
            return 0.0

        jaccard = jaccard_similarity(set(keywords1), set(keywords2))
        cosine = self.calculate_tf_similarity(keywords1, keywords2)
        return jaccard * 0.6 + cosine * 0.4

    @staticmethod
    def extract_keywords(node: GraphNode) -> List[str]:
        return extract_keywords(node.title, node.metadata.tags)

    @staticmethod
    def calculate_tf_similarity(keywords1: List[str], keywords2: List[str]) -> float:
        """Cosine similarity of raw term-frequency vectors over the shared vocabulary."""
        vocabulary = build_vocabulary(keywords1, keywords2)
        if not vocabulary:
            return 0.0

        tf1 = term_frequency_vector(keywords1, vocabulary)
        tf2 = term_frequency_vector(keywords2, vocabulary)
        if not np.any(tf1) or not np.any(tf2):
            return 0.0

        return float(cosine_similarity(tf1.reshape(1, -1), tf2.reshape(1, -1))[0][0])

    @staticmethod
    def calculate_temporal_proximity(node1: GraphNode, node2: GraphNode) -> float:
        """Exponential decay over the gap between creation times, in hours."""
        delta = node1.metadata.created - node2.metadata.created
        hours = abs(delta.total_seconds()) / 3600.0
        return math.exp(-hours / TEMPORAL_DECAY_HOURS)

    @staticmethod
    def calculate_framework_alignment(node1: GraphNode, node2: GraphNode) -> float:
        framework1: Optional[str] = node1.metadata.framework
        framework2: Optional[str] = node2.metadata.framework

        if not framework1 or not framework2:
            return 0.0
        if framework1 == framework2:
            return 1.0
        return framework_relatedness(framework1, framework2)

    @staticmethod
    def calculate_tag_similarity(node1: GraphNode, node2: GraphNode) -> float:
        return jaccard_similarity(set(node1.metadata.tags), set(node2.metadata.tags))

    # ------------------------------------------------------------------
    # Secondary signals
    # ------------------------------------------------------------------

    def calculate_co_occurrence(self, node1: GraphNode, node2: GraphNode) -> float:
        """Co-occurrence estimate; uses tag overlap until session data is available."""
        return self.calculate_tag_similarity(node1, node2)

    @staticmethod
    def calculate_importance_weight(node1: GraphNode, node2: GraphNode) -> float:
        """Geometric mean of both importances, normalized by the maximum importance of 5."""
        importance1 = node1.metadata.importance or 1.0
        importance2 = node2.metadata.importance or 1.0
        return math.sqrt(importance1 * importance2) / 5.0

    def analyze_connection_types(self, node1: GraphNode, node2: GraphNode) -> List[str]:
        """Labels describing why two nodes are related."""
        types: List[str] = []
        meta1, meta2 = node1.metadata, node2.metadata

        if meta1.framework and meta1.framework == meta2.framework:
            types.append("framework")
        if meta1.layer and meta1.layer == meta2.layer:
            types.append("layer")
        if self.calculate_tag_similarity(node1, node2) > 0:
            types.append("topic")
        if self.calculate_temporal_proximity(node1, node2) > 0.5:
            types.append("temporal")

        return types

    def get_connection_metadata(self, node1: GraphNode, node2: GraphNode) -> Dict[str, object]:
        return {
            "semantic_similarity": self.calculate_semantic_similarity(node1, node2),
            "temporal_proximity": self.calculate_temporal_proximity(node1, node2),
            "framework_alignment": self.calculate_framework_alignment(node1, node2),
            "tag_similarity": self.calculate_tag_similarity(node1, node2),
            "connection_types": self.analyze_connection_types(node1, node2),
        }
