"""Dataset registry and loaders used by the training driver."""

# Ensure built-in datasets register themselves when the package is imported.
from . import idx as _idx  # noqa: F401
from . import synthetic as _synthetic  # noqa: F401
from .registry import Dataset, get_dataset, names, one_hot, register_dataset

__all__ = ["Dataset", "get_dataset", "names", "one_hot", "register_dataset"]
