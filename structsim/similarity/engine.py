"""
Similarity engine: cosine scoring over structural fingerprints.

Provides the single-pair score, the best match within a corpus, and the
all-pairs bulk mode. Scoring is total: empty or zero-magnitude
fingerprints score 0 instead of raising. The only rejection is the bulk
pair-count ceiling, checked before any work is done.
"""

import asyncio
import math
import time
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .bands import DEFAULT_BANDS, FLAG_THRESHOLD, ConfidenceBands
from ..core.types import (
    BulkReport,
    CorpusEntry,
    Fingerprint,
    PairComparison,
    SimilarityResult,
    SuspiciousPair,
)
from ..core.vectorizer import Vectorizer
from ..errors import BulkLimitExceededError
from ..utils.logging_setup import get_logger, log_operation

logger = get_logger(__name__)

# 100 samples
DEFAULT_MAX_BULK_PAIRS = 4950
DEFAULT_YIELD_EVERY = 5
SCORE_DECIMALS = 4


def pair_count(sample_count: int) -> int:
    """Number of unordered pairs among ``sample_count`` samples."""
    return sample_count * (sample_count - 1) // 2


def compute_similarity(a: Mapping[str, float], b: Mapping[str, float]) -> float:
    """
    Cosine similarity of two fingerprints.

    dot(a, b) / (|a| * |b|), rounded to 4 decimals and clamped to [0, 1].
    Returns exactly 0 when either side is empty or has zero magnitude.
    """
    if not a or not b:
        return 0.0

    # Sorted shared keys keep the summation order independent of argument order.
    dot = sum(a[key] * b[key] for key in sorted(a.keys() & b.keys()))

    norm_a = math.sqrt(sum(w * w for w in a.values()))
    norm_b = math.sqrt(sum(w * w for w in b.values()))
    if norm_a == 0 or norm_b == 0:
        return 0.0

    score = round(dot / (norm_a * norm_b), SCORE_DECIMALS)
    return min(1.0, max(0.0, score))


def shared_token_count(a: Mapping[str, float], b: Mapping[str, float]) -> int:
    """Number of distinct token types present in both fingerprints."""
    return len(a.keys() & b.keys())


class SimilarityEngine:
    """
    Compares fingerprints and classifies the results.

    Args:
        threshold: Flag threshold; pairs scoring at or above it are flagged
        bands: Confidence band boundaries
        max_bulk_pairs: Ceiling on pair comparisons for one bulk call
        yield_every: Pair comparisons between cooperative yields in bulk mode
        vectorizer: Used to rebuild corpus fingerprints from stored strings
    """

    def __init__(self,
                 threshold: float = FLAG_THRESHOLD,
                 bands: ConfidenceBands = DEFAULT_BANDS,
                 max_bulk_pairs: int = DEFAULT_MAX_BULK_PAIRS,
                 yield_every: int = DEFAULT_YIELD_EVERY,
                 vectorizer: Optional[Vectorizer] = None):
        if yield_every < 1:
            raise ValueError(f"yield_every must be >= 1, got {yield_every}")
        if max_bulk_pairs < 0:
            raise ValueError(f"max_bulk_pairs must be >= 0, got {max_bulk_pairs}")
        self.threshold = threshold
        self.bands = bands
        self.max_bulk_pairs = max_bulk_pairs
        self.yield_every = yield_every
        self.vectorizer = vectorizer or Vectorizer()

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def compute_similarity(self, a: Mapping[str, float], b: Mapping[str, float]) -> float:
        return compute_similarity(a, b)

    def shared_token_count(self, a: Mapping[str, float], b: Mapping[str, float]) -> int:
        return shared_token_count(a, b)

    def to_confidence(self, score: float) -> str:
        return self.bands.classify(score)

    def is_flagged(self, score: float) -> bool:
        return score >= self.threshold

    def compare(self, a: Fingerprint, b: Fingerprint) -> PairComparison:
        """Score one pair and attach band, flag and size metadata."""
        score = compute_similarity(a, b)
        return PairComparison(
            score=score,
            confidence=self.to_confidence(score),
            flagged=self.is_flagged(score),
            shared_nodes=shared_token_count(a, b),
            total_nodes_a=len(a),
            total_nodes_b=len(b),
        )

    # ------------------------------------------------------------------
    # Corpus search
    # ------------------------------------------------------------------

    def find_most_similar(self, target: Fingerprint,
                          corpus: Iterable[CorpusEntry]) -> SimilarityResult:
        """
        Linear scan for the corpus entry most similar to ``target``.

        Only a strictly greater score replaces the current best, so ties
        keep the first entry seen. An empty corpus, or one where nothing
        scores above 0, yields score 0 and no match.
        """
        best_score = 0.0
        best_id: Optional[str] = None
        best_fingerprint: Optional[Fingerprint] = None
        scanned = 0

        for entry in corpus:
            scanned += 1
            candidate = self.vectorizer.vectorize(entry.serialized)
            score = compute_similarity(target, candidate)
            if score > best_score:
                best_score = score
                best_id = entry.id
                best_fingerprint = candidate

        logger.debug(f"Scanned {scanned} corpus entries, best={best_id!r} ({best_score})")

        return SimilarityResult(
            score=best_score,
            matched_id=best_id,
            shared_nodes=(
                shared_token_count(target, best_fingerprint)
                if best_fingerprint is not None else 0
            ),
            total_nodes_target=len(target),
            total_nodes_match=len(best_fingerprint) if best_fingerprint is not None else None,
            confidence=self.to_confidence(best_score),
            flagged=self.is_flagged(best_score),
        )

    # ------------------------------------------------------------------
    # Bulk all-pairs
    # ------------------------------------------------------------------

    def check_bulk_limit(self, sample_count: int) -> int:
        """
        Reject a bulk request whose pair count exceeds the ceiling.

        Returns:
            The pair count, when within the limit

        Raises:
            BulkLimitExceededError: if the request is too large
        """
        pairs = pair_count(sample_count)
        if pairs > self.max_bulk_pairs:
            logger.warning(
                f"Rejected bulk request: {sample_count} samples, "
                f"{pairs} pairs > {self.max_bulk_pairs}"
            )
            raise BulkLimitExceededError(sample_count, pairs, self.max_bulk_pairs)
        return pairs

    async def bulk_compare(self,
                           fingerprints: Sequence[Tuple[str, Fingerprint]]) -> BulkReport:
        """
        All-pairs comparison of labeled fingerprints.

        Only the upper triangle is scored and mirrored into the lower one;
        the diagonal is fixed at 1.0. Control is handed back to the event
        loop every ``yield_every`` comparisons. Yielding never changes the
        matrix or the pair list.

        Raises:
            BulkLimitExceededError: if the pair count exceeds the ceiling
        """
        n = len(fingerprints)
        total_pairs = self.check_bulk_limit(n)
        log_operation(logger, "bulk_compare", sample_count=n, pair_count=total_pairs)
        started = time.perf_counter()

        labels = [label for label, _ in fingerprints]
        matrix = np.eye(n, dtype=np.float64)
        suspicious: List[SuspiciousPair] = []
        processed = 0
        yields = 0

        for i in range(n):
            fp_a = fingerprints[i][1]
            for j in range(i + 1, n):
                fp_b = fingerprints[j][1]
                score = compute_similarity(fp_a, fp_b)
                matrix[i, j] = score
                matrix[j, i] = score

                if self.is_flagged(score):
                    suspicious.append(SuspiciousPair(
                        label_a=labels[i],
                        label_b=labels[j],
                        score=score,
                        confidence=self.to_confidence(score),
                        shared_nodes=shared_token_count(fp_a, fp_b),
                    ))

                processed += 1
                if processed % self.yield_every == 0:
                    yields += 1
                    await asyncio.sleep(0)

        # Stable sort: equal scores stay in matrix order.
        suspicious.sort(key=lambda pair: pair.score, reverse=True)

        logger.debug(
            f"Bulk compare of {n} samples: {processed} pairs, {len(suspicious)} flagged, "
            f"{yields} yields in {time.perf_counter() - started:.3f}s"
        )

        return BulkReport(
            labels=labels,
            matrix=matrix,
            suspicious_pairs=suspicious,
            threshold=self.threshold,
        )
