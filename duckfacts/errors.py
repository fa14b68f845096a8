"""
Exception types raised by the duck facts service.
"""

from __future__ import annotations


class DuckFactsError(Exception):
    """Base class for failures that surface as a generic 500."""


class GenerationFailure(DuckFactsError):
    """The chat endpoint failed or replied with something unusable."""


class RetryExhaustedError(GenerationFailure):
    def __init__(self, attempts: int):
        super().__init__(f"no novel fact after {attempts} attempts")
        self.attempts = attempts


class StorageError(DuckFactsError):
    """A table creation, query or insert failed."""
