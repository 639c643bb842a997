"""Shared data structures for the structural fingerprinting pipeline.

Every value here is created once per call and never mutated afterwards:
trees, tokens and fingerprints flow one way from parser output to score.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

import numpy as np

# =============================================================================
# Parser boundary
# =============================================================================

@runtime_checkable
class RawNode(Protocol):
    """Shape expected from the parsing collaborator.

    tree-sitter's ``Node`` satisfies this protocol as-is.
    """

    @property
    def type(self) -> str: ...

    @property
    def children(self) -> Sequence["RawNode"]: ...


# =============================================================================
# Core Data Structures
# =============================================================================

@dataclass(frozen=True)
class StructuralNode:
    """A node of the filtered tree: a type label and its ordered children."""
    type: str
    children: Tuple["StructuralNode", ...] = ()

    def size(self) -> int:
        """Total number of nodes in this subtree."""
        count = 0
        stack = [self]
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.children)
        return count

    def depth(self) -> int:
        """Number of levels below this node (a leaf has depth 0)."""
        deepest = 0
        stack = [(self, 0)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            stack.extend((child, level + 1) for child in node.children)
        return deepest


def canonical_label(node_type: str) -> str:
    """Label as it appears in fingerprints and stored tokens.

    Runs of whitespace (tree-sitter emits ``not in``, ``is not``) become a
    single ``_``, so the token separator never occurs inside a label.
    """
    return "_".join(node_type.split())


class Token(NamedTuple):
    """A (type, depth) pair emitted by the serializer."""
    type: str
    depth: int

    def encode(self) -> str:
        """Canonical ``type:depth`` text form."""
        return f"{canonical_label(self.type)}:{self.depth}"


class Fingerprint(Mapping[str, float]):
    """Depth-weighted frequency vector over structural token types.

    Behaves as a read-only mapping and compares equal to any mapping with
    the same items.
    """

    __slots__ = ("_weights",)

    def __init__(self, weights: Union[Mapping[str, float], Iterable[Tuple[str, float]], None] = None):
        self._weights: Dict[str, float] = dict(weights or {})

    def __getitem__(self, key: str) -> float:
        return self._weights[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __repr__(self) -> str:
        return f"Fingerprint({self._weights!r})"

    __hash__ = None  # type: ignore[assignment]

    def norm(self) -> float:
        """Euclidean norm over all weights."""
        return math.sqrt(sum(w * w for w in self._weights.values()))

    def to_dict(self) -> Dict[str, float]:
        """Plain dict copy, for JSON output."""
        return dict(self._weights)


@dataclass(frozen=True)
class CorpusEntry:
    """A previously recorded submission: identifier plus canonical token string."""
    id: str
    serialized: str


# =============================================================================
# Results
# =============================================================================

@dataclass
class SimilarityResult:
    """Best corpus match for a target fingerprint."""
    score: float
    matched_id: Optional[str]
    shared_nodes: int
    total_nodes_target: int
    total_nodes_match: Optional[int]
    confidence: str = "none"
    flagged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": self.score,
            "matched_id": self.matched_id,
            "confidence": self.confidence,
            "flagged": self.flagged,
            "shared_nodes": self.shared_nodes,
            "total_nodes_target": self.total_nodes_target,
            "total_nodes_match": self.total_nodes_match,
        }


@dataclass
class PairComparison:
    """Direct comparison of two samples."""
    score: float
    confidence: str
    flagged: bool
    shared_nodes: int
    total_nodes_a: int
    total_nodes_b: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": self.score,
            "confidence": self.confidence,
            "flagged": self.flagged,
            "shared_nodes": self.shared_nodes,
            "total_nodes_a": self.total_nodes_a,
            "total_nodes_b": self.total_nodes_b,
        }


@dataclass(frozen=True)
class SuspiciousPair:
    """A bulk pair whose score reached the flag threshold."""
    label_a: str
    label_b: str
    score: float
    confidence: str
    shared_nodes: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "label_a": self.label_a,
            "label_b": self.label_b,
            "score": self.score,
            "confidence": self.confidence,
            "shared_nodes": self.shared_nodes,
        }


@dataclass
class BulkReport:
    """Outcome of an all-pairs comparison.

    Attributes:
        labels: Sample labels, in input order
        matrix: Symmetric N x N similarity matrix, diagonal fixed at 1.0
        suspicious_pairs: Pairs at or above the threshold, highest score first
        threshold: Flag threshold used
    """
    labels: List[str]
    matrix: np.ndarray
    suspicious_pairs: List[SuspiciousPair] = field(default_factory=list)
    threshold: float = 0.75

    @property
    def sample_count(self) -> int:
        return len(self.labels)

    @property
    def pair_count(self) -> int:
        n = len(self.labels)
        return n * (n - 1) // 2

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "labels": list(self.labels),
            "matrix": self.matrix.tolist(),
            "suspicious_pairs": [pair.to_dict() for pair in self.suspicious_pairs],
            "metadata": {
                "sample_count": self.sample_count,
                "pair_count": self.pair_count,
                "threshold": self.threshold,
            },
        }


# =============================================================================
# Type Aliases
# =============================================================================

TokenLike = Union[Token, Tuple[str, int]]
LabeledSample = Tuple[str, str]
Sample = Union[str, LabeledSample]
