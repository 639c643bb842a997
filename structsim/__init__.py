"""Structural Similarity Detector - flag likely plagiarism by comparing code structure."""

__version__ = "0.1.0"

from .core.types import CorpusEntry, Fingerprint, StructuralNode, Token
from .pipeline import StructuralPipeline
from .similarity.engine import SimilarityEngine, compute_similarity, shared_token_count

__all__ = [
    "CorpusEntry",
    "Fingerprint",
    "StructuralNode",
    "Token",
    "StructuralPipeline",
    "SimilarityEngine",
    "compute_similarity",
    "shared_token_count",
    "__version__",
]
