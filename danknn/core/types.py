"""Core typing contracts for danknn."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from .errors import InvalidTopologyError

Array = np.ndarray

# Every parameter and scratch buffer is a 4-byte IEEE-754 float.
DTYPE = np.float32


@dataclass(frozen=True)
class Topology:
    """Immutable ordered layer widths; ``sizes[0]`` is the input width."""

    sizes: Tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.sizes) < 2:
            raise InvalidTopologyError(
                f"A network needs at least 2 layers, got {len(self.sizes)}",
                context={"sizes": self.sizes},
            )
        for idx, size in enumerate(self.sizes):
            if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
                raise InvalidTopologyError(
                    f"Layer {idx} size must be an integer, got {size!r}",
                    context={"sizes": self.sizes},
                )
            if size <= 0:
                raise InvalidTopologyError(
                    f"Layer {idx} size must be positive, got {size}",
                    context={"sizes": self.sizes},
                )

    @property
    def num_layers(self) -> int:
        return len(self.sizes)

    @property
    def input_size(self) -> int:
        return self.sizes[0]

    @property
    def output_size(self) -> int:
        return self.sizes[-1]

    def layer_shape(self, layer: int) -> Tuple[int, int]:
        """Weight matrix shape ``(outputs, inputs)`` of internal ``layer``."""

        return self.sizes[layer], self.sizes[layer - 1]

    def parameter_count(self) -> int:
        return int(sum(o * i + o for i, o in zip(self.sizes[:-1], self.sizes[1:])))

    def __iter__(self):
        return iter(self.sizes)

    def __len__(self) -> int:
        return len(self.sizes)


def create_topology(sizes: Iterable[int] | Topology) -> Topology:
    """Return a validated :class:`Topology` for ``sizes``."""

    if isinstance(sizes, Topology):
        return sizes
    if sizes is None:
        raise InvalidTopologyError("Layer sizes must be provided")
    return Topology(tuple(int(s) if isinstance(s, np.integer) else s for s in sizes))


@dataclass(frozen=True)
class Batch:
    """A block of examples; one row per example."""

    inputs: Array
    targets: Array

    def __len__(self) -> int:
        return int(self.inputs.shape[0])


__all__ = ["Array", "DTYPE", "Topology", "create_topology", "Batch"]
