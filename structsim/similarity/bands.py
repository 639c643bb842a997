"""Confidence banding and flagging.

Banding and flagging are separate decisions: the default flag threshold
(0.75) sits inside the medium band, so pairs are surfaced for review
before they reach high confidence.
"""

from dataclasses import dataclass

FLAG_THRESHOLD = 0.75

HIGH = "high"
MEDIUM = "medium"
LOW = "low"
NONE = "none"


@dataclass(frozen=True)
class ConfidenceBands:
    """Lower bounds of the confidence bands."""
    high: float = 0.85
    medium: float = 0.65
    low: float = 0.40

    def __post_init__(self):
        for name in ("high", "medium", "low"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} band must be between 0 and 1, got {value}")
        if not self.high >= self.medium >= self.low:
            raise ValueError(
                f"bands must be ordered high >= medium >= low, got "
                f"{self.high}/{self.medium}/{self.low}"
            )

    def classify(self, score: float) -> str:
        if score >= self.high:
            return HIGH
        if score >= self.medium:
            return MEDIUM
        if score >= self.low:
            return LOW
        return NONE


DEFAULT_BANDS = ConfidenceBands()


def to_confidence(score: float, bands: ConfidenceBands = DEFAULT_BANDS) -> str:
    """Map a similarity score to none / low / medium / high."""
    return bands.classify(score)


def is_flagged(score: float, threshold: float = FLAG_THRESHOLD) -> bool:
    """A pair is flagged iff its score reaches the threshold."""
    return score >= threshold
