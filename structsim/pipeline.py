"""
End-to-end pipeline: source code -> structure -> tokens -> fingerprint -> score.

The parser is an owned resource passed in by the caller; one pipeline can
serve many requests since every call works on its own tree, tokens and
fingerprint.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DetectorConfig
from .core.languages import get_profile
from .core.normalizer import Normalizer
from .core.parser import TreeSitterParser
from .core.serializer import Serializer, encode
from .core.types import (
    BulkReport,
    CorpusEntry,
    Fingerprint,
    PairComparison,
    Sample,
    SimilarityResult,
    StructuralNode,
    Token,
)
from .core.vectorizer import Vectorizer
from .similarity.engine import SimilarityEngine
from .utils.logging_setup import get_logger, log_operation

logger = get_logger(__name__)


def label_samples(samples: Sequence[Sample]) -> List[Tuple[str, str]]:
    """Attach labels to samples; bare code strings become ``submission_<n>``."""
    labeled = []
    for index, sample in enumerate(samples):
        if isinstance(sample, str):
            labeled.append((f"submission_{index + 1}", sample))
        else:
            label, code = sample
            labeled.append((label or f"submission_{index + 1}", code))
    return labeled


class StructuralPipeline:
    """
    Wires parser, normalizer, serializer, vectorizer and engine together.

    Args:
        config: Detector configuration (defaults when omitted)
        parser: Shared tree-sitter parser; a new one is created if omitted
    """

    def __init__(self,
                 config: Optional[DetectorConfig] = None,
                 parser: Optional[TreeSitterParser] = None):
        self.config = config or DetectorConfig()
        self.parser = parser or TreeSitterParser()
        self.serializer = Serializer()
        self.vectorizer = Vectorizer()
        self.engine = SimilarityEngine(
            threshold=self.config.flag_threshold,
            bands=self.config.bands,
            max_bulk_pairs=self.config.max_bulk_pairs,
            yield_every=self.config.yield_every,
            vectorizer=self.vectorizer,
        )
        self._normalizers: Dict[str, Normalizer] = {}

    def _language(self, language: Optional[str]) -> str:
        return language or self.config.language

    def normalizer_for(self, language: Optional[str] = None) -> Normalizer:
        """Normalizer for ``language``, built on first use.

        Raises:
            UnsupportedLanguageError: if no profile exists for the language
        """
        language = self._language(language)
        normalizer = self._normalizers.get(language)
        if normalizer is None:
            profile = get_profile(language, self.config.languages)
            normalizer = Normalizer(profile)
            self._normalizers[language] = normalizer
        return normalizer

    # ------------------------------------------------------------------
    # Single sample
    # ------------------------------------------------------------------

    def structure(self, code: str, language: Optional[str] = None) -> StructuralNode:
        language = self._language(language)
        normalizer = self.normalizer_for(language)
        tree = self.parser.parse(code, language)
        return normalizer.normalize(tree.root_node)

    def tokens(self, code: str, language: Optional[str] = None) -> List[Token]:
        return self.serializer.serialize(self.structure(code, language))

    def serialize(self, code: str, language: Optional[str] = None) -> str:
        """Canonical ``type:depth`` string, as stored for corpus entries."""
        return encode(self.tokens(code, language))

    def fingerprint(self, code: str, language: Optional[str] = None) -> Fingerprint:
        return self.vectorizer.vectorize(self.tokens(code, language))

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------

    def compare(self, code_a: str, code_b: str,
                language: Optional[str] = None) -> PairComparison:
        """Direct comparison of two code samples."""
        return self.engine.compare(
            self.fingerprint(code_a, language),
            self.fingerprint(code_b, language),
        )

    def analyze(self, code: str, corpus: Iterable[CorpusEntry],
                language: Optional[str] = None) -> SimilarityResult:
        """Best match for ``code`` among previously recorded submissions."""
        return self.engine.find_most_similar(self.fingerprint(code, language), corpus)

    async def bulk_analyze(self, samples: Sequence[Sample],
                           language: Optional[str] = None) -> BulkReport:
        """
        All-pairs comparison of code samples.

        The pair ceiling is enforced before any sample is parsed; each
        sample is then fingerprinted exactly once.

        Raises:
            BulkLimitExceededError: if too many pairs are requested
        """
        self.engine.check_bulk_limit(len(samples))
        language = self._language(language)
        log_operation(logger, "bulk_analyze", sample_count=len(samples), language=language)

        fingerprints = [
            (label, self.fingerprint(code, language))
            for label, code in label_samples(samples)
        ]
        return await self.engine.bulk_compare(fingerprints)
