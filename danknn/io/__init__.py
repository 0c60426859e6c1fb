"""Network persistence."""

from .netfile import dumps, load, loads, save

__all__ = ["dumps", "loads", "save", "load"]
