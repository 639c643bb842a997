"""
Error types for the structural similarity detector.

The scoring pipeline itself is total; these errors only describe caller
mistakes (unsupported language, oversized bulk requests).
"""

from typing import Optional, Any, Dict, Iterable


class StructSimError(Exception):
    """
    Base exception for all detector errors.

    Provides common functionality for error tracking and reporting.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize detector error.

        Args:
            message: Error message
            details: Optional detailed error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(StructSimError):
    """Raised when a request is rejected before any work is done."""

    def __init__(self, message: str,
                 validation_type: str = 'general',
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.validation_type = validation_type
        self.details['validation_type'] = validation_type


class BulkLimitExceededError(ValidationError):
    """
    Raised when an all-pairs request asks for more comparisons than allowed.

    The check runs before any fingerprint is built, so this always means
    "too much work requested", never a partial result.
    """

    def __init__(self, sample_count: int, pair_count: int, max_pairs: int):
        """
        Initialize bulk limit error.

        Args:
            sample_count: Number of samples in the request
            pair_count: Resulting number of unordered pairs
            max_pairs: Configured ceiling
        """
        message = (
            f"Bulk request of {sample_count} samples needs {pair_count} "
            f"comparisons, exceeding the limit of {max_pairs}"
        )
        super().__init__(message, validation_type='bulk_limit', details={
            'sample_count': sample_count,
            'pair_count': pair_count,
            'max_pairs': max_pairs,
        })
        self.sample_count = sample_count
        self.pair_count = pair_count
        self.max_pairs = max_pairs


class UnsupportedLanguageError(ValidationError):
    """Raised when no grammar or language profile is registered for a language."""

    def __init__(self, language: str, supported: Iterable[str] = ()):
        self.language = language
        self.supported = sorted(supported)
        listed = ", ".join(self.supported) or "none"
        super().__init__(
            f'Unsupported language: "{language}". Supported: {listed}',
            validation_type='language',
            details={'language': language, 'supported': self.supported},
        )


def is_bulk_limit_error(error: Exception) -> bool:
    """Check if error is due to the bulk pair ceiling."""
    return isinstance(error, BulkLimitExceededError)
