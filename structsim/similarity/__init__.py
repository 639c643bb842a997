"""Fingerprint comparison, confidence banding and bulk all-pairs mode."""

from .bands import FLAG_THRESHOLD, ConfidenceBands, is_flagged, to_confidence
from .engine import SimilarityEngine, compute_similarity, pair_count, shared_token_count

__all__ = [
    'FLAG_THRESHOLD',
    'ConfidenceBands',
    'is_flagged',
    'to_confidence',
    'SimilarityEngine',
    'compute_similarity',
    'pair_count',
    'shared_token_count',
]
