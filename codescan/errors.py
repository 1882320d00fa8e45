"""
Exception taxonomy for the review pipeline.

Malformed model output is deliberately absent: the decoder degrades it to a
low-confidence result instead of raising.
"""
from typing import Optional


class CodeScanError(Exception):
    """Base class for all codescan errors."""


class ReviewValidationError(CodeScanError, ValueError):
    """Request rejected before any inference call (empty code, no language, no standards)."""


class EngineUnavailableError(CodeScanError):
    """The selected engine could not be reached at all."""

    def __init__(self, engine: str, message: str):
        self.engine = engine
        super().__init__(message)


class InferenceError(CodeScanError):
    """Engine answered with a non-2xx status or an unusable envelope."""

    def __init__(self, engine: str, message: str, status_code: Optional[int] = None):
        self.engine = engine
        self.status_code = status_code
        super().__init__(message)


class InferenceTimeoutError(InferenceError):
    """Engine call exceeded its per-call timeout."""


class ReviewCancelledError(CodeScanError):
    """Caller signalled cancellation."""
