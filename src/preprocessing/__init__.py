"""
Text preprocessing for the knowledge graph engine.
"""

from .keywords import STOP_WORDS, extract_keywords, tokenize_keywords

__all__ = [
    "STOP_WORDS",
    "extract_keywords",
    "tokenize_keywords",
]
