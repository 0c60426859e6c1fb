"""Error taxonomy for danknn.

Every failure is reported to the immediate caller by raising one of the
classes below. Each also derives from the closest builtin so callers that
only know the standard hierarchy (``ValueError``, ``OSError`` ...) still
catch it. Nothing is retried internally.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DankNNError(Exception):
    """Base exception for all danknn errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class InvalidTopologyError(DankNNError, ValueError):
    """Bad layer count or layer sizes at creation."""


class ShapeError(DankNNError, ValueError):
    """Input, target or parameter vector length does not match the topology."""


class RangeError(DankNNError, IndexError):
    """Layer index outside ``[1, L-1]``."""


class MismatchError(DankNNError, ValueError):
    """A batch is empty or references more than one parameter store."""


class AllocationError(DankNNError, MemoryError):
    """Parameter or scratch storage could not be allocated."""


class NetworkIOError(DankNNError, OSError):
    """A file could not be opened, read or written."""


class FormatError(DankNNError, ValueError):
    """A network file is malformed or a store cannot be encoded."""


__all__ = [
    "DankNNError",
    "InvalidTopologyError",
    "ShapeError",
    "RangeError",
    "MismatchError",
    "AllocationError",
    "NetworkIOError",
    "FormatError",
]
