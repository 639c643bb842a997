"""Vectorizer: token sequence -> depth-weighted fingerprint.

Each token contributes ``1 / (depth + 1)`` to the weight of its type, so
top-level shape dominates the fingerprint and deeply nested detail only
nudges it.
"""

from typing import Dict, Iterable, Tuple, Union

from .serializer import decode_with_stats
from .types import Fingerprint, TokenLike, canonical_label
from ..utils.logging_setup import get_logger

logger = get_logger(__name__)

TokenInput = Union[str, Iterable[TokenLike]]


def depth_weight(depth: int) -> float:
    """Weight of a token found ``depth`` levels below the root."""
    return 1.0 / (depth + 1)


def _valid_depth(depth) -> bool:
    return isinstance(depth, int) and not isinstance(depth, bool) and depth >= 0


class Vectorizer:
    """Turns serializer output into a :class:`Fingerprint`.

    Accepts either the canonical ``type:depth`` string (as stored for
    corpus entries) or an iterable of ``(type, depth)`` pairs.
    """

    def vectorize(self, tokens: TokenInput) -> Fingerprint:
        """Build the fingerprint, silently skipping malformed tokens."""
        fingerprint, skipped = self.vectorize_with_stats(tokens)
        if skipped:
            logger.debug(f"Skipped {skipped} unparseable tokens while vectorizing")
        return fingerprint

    def vectorize_with_stats(self, tokens: TokenInput) -> Tuple[Fingerprint, int]:
        """Build the fingerprint and report how many tokens were skipped.

        Returns:
            Tuple of (fingerprint, skipped_count)
        """
        skipped = 0
        if isinstance(tokens, str):
            if not tokens.strip():
                return Fingerprint(), 0
            tokens, skipped = decode_with_stats(tokens)

        weights: Dict[str, float] = {}
        for token in tokens:
            try:
                node_type, depth = token
            except (TypeError, ValueError):
                skipped += 1
                continue
            if not isinstance(node_type, str) or not _valid_depth(depth):
                skipped += 1
                continue
            label = canonical_label(node_type)
            weights[label] = weights.get(label, 0.0) + depth_weight(depth)

        return Fingerprint(weights), skipped


_default = Vectorizer()


def vectorize(tokens: TokenInput) -> Fingerprint:
    """Module-level shortcut for :meth:`Vectorizer.vectorize`."""
    return _default.vectorize(tokens)
