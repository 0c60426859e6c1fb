"""Parameter store: weight matrices, bias vectors and per-layer activations."""

from __future__ import annotations

import logging
from typing import Iterable, List

import numpy as np

from .activations import DEFAULT_ACTIVATION, Activation, ActivationLike, get_activation
from .errors import AllocationError, DankNNError, RangeError
from .types import DTYPE, Array, Topology, create_topology

logger = logging.getLogger(__name__)


class ParameterStore:
    """Trainable parameters of a fully-connected feed-forward network.

    Internal layers are indexed ``1..L-1``; layer 0 is the input and owns no
    parameters. ``weight(i)`` has shape ``(sizes[i], sizes[i-1])`` with one
    row per output node, ``bias(i)`` has length ``sizes[i]``.

    The store is shared read-only by every :class:`TrainingContext` bound to
    it. Only :func:`danknn.core.aggregate.apply` (and the initializer or
    loader) may write to it, and callers must not run ``apply`` while any
    ``train_step`` or ``infer`` against the same store is in flight.
    """

    def __init__(self, topology: Topology | Iterable[int]) -> None:
        self.topology = create_topology(topology)
        sizes = self.topology.sizes
        try:
            self._weights: List[Array] = [
                np.zeros(self.topology.layer_shape(i), dtype=DTYPE)
                for i in range(1, len(sizes))
            ]
            self._biases: List[Array] = [
                np.zeros(sizes[i], dtype=DTYPE) for i in range(1, len(sizes))
            ]
        except (MemoryError, ValueError) as exc:
            raise AllocationError(
                f"Unable to allocate parameters for topology {sizes}",
                context={"sizes": sizes},
            ) from exc
        default = get_activation(DEFAULT_ACTIVATION)
        self._activations: List[Activation] = [default] * (len(sizes) - 1)
        self._destroyed = False
        logger.debug("Created parameter store %s (%d parameters)", sizes, self.topology.parameter_count())

    # ------------------------------------------------------------------
    # Shape helpers

    @property
    def sizes(self) -> tuple[int, ...]:
        return self.topology.sizes

    @property
    def num_layers(self) -> int:
        return self.topology.num_layers

    def _check_layer(self, layer: int) -> int:
        if isinstance(layer, bool) or not isinstance(layer, (int, np.integer)):
            raise RangeError(f"Layer index must be an integer, got {layer!r}")
        if layer < 1 or layer >= self.num_layers:
            raise RangeError(
                f"Layer index {layer} outside [1, {self.num_layers - 1}]",
                context={"layer": layer, "num_layers": self.num_layers},
            )
        return int(layer) - 1

    def _alive(self) -> None:
        if self._destroyed:
            raise DankNNError("Parameter store has been destroyed")

    # ------------------------------------------------------------------
    # Parameter access

    def weight(self, layer: int) -> Array:
        self._alive()
        return self._weights[self._check_layer(layer)]

    def bias(self, layer: int) -> Array:
        self._alive()
        return self._biases[self._check_layer(layer)]

    def activation(self, layer: int) -> Activation:
        self._alive()
        return self._activations[self._check_layer(layer)]

    @property
    def weights(self) -> List[Array]:
        """Weight matrices for layers ``1..L-1`` (list index 0 is layer 1)."""

        self._alive()
        return self._weights

    @property
    def biases(self) -> List[Array]:
        self._alive()
        return self._biases

    @property
    def activations(self) -> List[Activation]:
        self._alive()
        return self._activations

    def set_activation(self, layer: int, activation: ActivationLike) -> None:
        """Select the nonlinearity of internal ``layer`` (``1..L-1``)."""

        self._alive()
        idx = self._check_layer(layer)
        self._activations[idx] = get_activation(activation)

    def state_dict(self) -> dict[str, Array]:
        self._alive()
        state: dict[str, Array] = {}
        for idx, (W, b) in enumerate(zip(self._weights, self._biases), start=1):
            state[f"W{idx}"] = W.copy()
            state[f"b{idx}"] = b.copy()
        return state

    def copy(self) -> "ParameterStore":
        self._alive()
        clone = ParameterStore(self.topology)
        for dst, src in zip(clone._weights + clone._biases, self._weights + self._biases):
            dst[...] = src
        clone._activations = list(self._activations)
        return clone

    # ------------------------------------------------------------------
    # Lifecycle

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Release all parameter storage; the store is unusable afterwards."""

        self._weights = []
        self._biases = []
        self._activations = []
        self._destroyed = True

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else "live"
        return f"ParameterStore(sizes={self.sizes}, {state})"


def create_store(topology: Topology | Iterable[int]) -> ParameterStore:
    return ParameterStore(topology)


def set_activation(store: ParameterStore, layer: int, activation: ActivationLike) -> None:
    store.set_activation(layer, activation)


def destroy_store(store: ParameterStore) -> None:
    store.destroy()


__all__ = ["ParameterStore", "create_store", "set_activation", "destroy_store"]
