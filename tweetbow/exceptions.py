"""
Error and warning types raised by the bag-of-words pipeline.

Only malformed input is an error. An empty corpus flows through every stage
and produces empty outputs; trimming that removes every feature is surfaced
as a warning because the result is still a valid (zero-column) matrix.
"""

from __future__ import annotations

from typing import Optional


class InvalidInput(ValueError):
    """Raised when a document's content is not text."""

    def __init__(self, message: str, doc_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.doc_id = doc_id


class ThresholdTooStrict(UserWarning):
    """Emitted when trimming thresholds eliminate every feature."""
