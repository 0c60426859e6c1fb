"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, MutableMapping

import numpy as np

from ..core.types import Array, Batch


@dataclass(frozen=True)
class Dataset:
    """In-memory examples with one row per example.

    Attributes
    ----------
    inputs:
        ``(n, d_in)`` float32 input vectors.
    targets:
        ``(n, d_out)`` float32 target vectors.
    labels:
        Optional ``(n,)`` integer class labels when ``targets`` are one-hot;
        used for accuracy reporting.
    provenance:
        Free-form metadata describing where the examples came from.
    """

    name: str
    inputs: Array
    targets: Array
    labels: Array | None = None
    provenance: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return int(self.inputs.shape[0])

    @property
    def d_in(self) -> int:
        return int(self.inputs.shape[1])

    @property
    def d_out(self) -> int:
        return int(self.targets.shape[1])

    def batches(self, batch_size: int, rng: np.random.Generator | None = None) -> Iterator[Batch]:
        """Yield consecutive batches, shuffled when ``rng`` is given."""

        order = np.arange(len(self)) if rng is None else rng.permutation(len(self))
        for start in range(0, len(self), batch_size):
            idx = order[start : start + batch_size]
            yield Batch(inputs=self.inputs[idx], targets=self.targets[idx])


DatasetFactory = Callable[..., Dataset]

_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(name: str, /, **options: Any) -> Dataset:
    """Build the dataset registered under ``name``."""

    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown dataset: {name}. Available datasets: {available}")
    return _REGISTRY[name](**options)


def names() -> list[str]:
    return sorted(_REGISTRY)


def one_hot(labels: Array, num_classes: int) -> Array:
    labels = np.asarray(labels, dtype=np.int64).reshape(-1)
    if labels.size and (labels.min() < 0 or labels.max() >= num_classes):
        raise ValueError(f"Labels must lie in [0, {num_classes}), got range [{labels.min()}, {labels.max()}]")
    return np.eye(num_classes, dtype=np.float32)[labels]


__all__ = ["Dataset", "register_dataset", "get_dataset", "names", "one_hot"]
