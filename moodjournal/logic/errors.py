"""Error taxonomy for the journal core.

Each error also derives from the closest builtin so callers that only know
about ValueError / LookupError / PermissionError keep working.
"""

from __future__ import annotations


class JournalError(Exception):
    """Root of all journal errors."""


class ValidationError(JournalError, ValueError):
    """Bad question/answer/schedule shape; raised before any store write."""


class NotFoundError(JournalError, LookupError):
    """The referenced id no longer exists."""

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident


class AlarmPermissionError(JournalError, PermissionError):
    """The host timer facility refused an exact-time wake-up."""


class StoreError(JournalError):
    """Underlying persistence failure."""


__all__ = [
    "JournalError",
    "ValidationError",
    "NotFoundError",
    "AlarmPermissionError",
    "StoreError",
]
