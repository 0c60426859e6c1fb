"""Per-example training scratch space: cached forward pass and backpropagation."""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .activations import ActivationFn, ActivationLike, get_activation
from .costs import DEFAULT_COST, Cost, CostLike, get_cost
from .errors import AllocationError, DankNNError, RangeError, ShapeError
from .inference import as_vector
from .store import ParameterStore
from .types import DTYPE, Array

logger = logging.getLogger(__name__)


class TrainingContext:
    """Gradient buffers for one in-flight example against one store.

    Buffers are indexed by layer ``0..L-1`` and allocated once. Every call to
    :meth:`train_step` overwrites them with the gradient of the most recent
    example only; nothing accumulates across calls. A context never writes
    to its store, so contexts bound to the same store may run in parallel
    with no coordination. Use one context per concurrently running worker.

    ``legacy_overwrite`` reproduces the historical backward pass in which the
    activation gradient of layer ``i-1`` kept only the contribution of the
    last output node of layer ``i``.
    """

    def __init__(
        self,
        store: ParameterStore,
        cost: CostLike = DEFAULT_COST,
        *,
        legacy_overwrite: bool = False,
    ) -> None:
        if store.destroyed:
            raise DankNNError("Cannot bind a training context to a destroyed store")
        self.store = store
        self.cost: Cost = get_cost(cost)
        self.legacy_overwrite = bool(legacy_overwrite)
        sizes = store.sizes
        try:
            self.act: List[Array] = [np.zeros(n, dtype=DTYPE) for n in sizes]
            self.d_act: List[Array] = [np.zeros(n, dtype=DTYPE) for n in sizes]
            # Index 0 is unused for everything below: the input has no parameters.
            self.preact: List[Optional[Array]] = [None] + [np.zeros(n, dtype=DTYPE) for n in sizes[1:]]
            self.d_preact: List[Optional[Array]] = [None] + [np.zeros(n, dtype=DTYPE) for n in sizes[1:]]
            self.d_bias: List[Optional[Array]] = [None] + [np.zeros(n, dtype=DTYPE) for n in sizes[1:]]
            self.d_weight: List[Optional[Array]] = [None] + [
                np.zeros(store.topology.layer_shape(i), dtype=DTYPE) for i in range(1, len(sizes))
            ]
        except (MemoryError, ValueError) as exc:
            raise AllocationError(
                f"Unable to allocate training buffers for topology {sizes}",
                context={"sizes": sizes},
            ) from exc
        self._d_act_overrides: List[Optional[ActivationFn]] = [None] * len(sizes)
        self._destroyed = False
        if self.legacy_overwrite:
            logger.warning(
                "Training context created with legacy_overwrite=True; hidden-layer "
                "gradients only keep the last output node's contribution"
            )

    # ------------------------------------------------------------------
    # Configuration

    def set_activation_derivative(self, layer: int, derivative: ActivationLike | ActivationFn) -> None:
        """Override the activation derivative used for ``layer`` (``1..L-1``).

        Accepts an activation tag, an :class:`Activation` (its derivative is
        used) or a bare callable. Without an override the derivative of the
        store's current activation for that layer is used.
        """

        self._alive()
        if isinstance(layer, bool) or not isinstance(layer, (int, np.integer)):
            raise RangeError(f"Layer index must be an integer, got {layer!r}")
        if layer < 1 or layer >= self.store.num_layers:
            raise RangeError(f"Layer index {layer} outside [1, {self.store.num_layers - 1}]")
        if callable(derivative) and not hasattr(derivative, "derivative"):
            self._d_act_overrides[layer] = derivative
        else:
            self._d_act_overrides[layer] = get_activation(derivative).derivative

    def set_cost(self, cost: CostLike) -> None:
        self._alive()
        self.cost = get_cost(cost)

    def activation_derivative(self, layer: int) -> ActivationFn:
        override = self._d_act_overrides[layer]
        if override is not None:
            return override
        return self.store.activation(layer).derivative

    # ------------------------------------------------------------------
    # Forward / backward

    @property
    def output(self) -> Array:
        """Output activations of the most recent example."""

        self._alive()
        return self.act[-1]

    def loss(self, targets) -> float:
        """Scalar cost of the cached output against ``targets``."""

        self._alive()
        want = as_vector(targets, self.store.sizes[-1], "Target")
        return self.cost.loss(self.act[-1], want)

    def train_step(self, inputs, targets) -> None:
        """Run forward and backward passes for one example.

        Leaves the per-example gradients in ``d_weight``/``d_bias`` and the
        gradient w.r.t. the inputs in ``d_act[0]``. The store is only read.
        """

        self._alive()
        sizes = self.store.sizes
        inp = as_vector(inputs, sizes[0], "Input")
        want = as_vector(targets, sizes[-1], "Target")
        if inp.ndim != 1 or want.ndim != 1:
            raise ShapeError("train_step takes a single example; got a batch")

        weights = self.store.weights
        biases = self.store.biases
        activations = self.store.activations
        last = len(sizes) - 1

        self.act[0][...] = inp
        for i in range(1, last + 1):
            np.matmul(weights[i - 1], self.act[i - 1], out=self.preact[i])
            self.preact[i] += biases[i - 1]
            self.act[i][...] = activations[i - 1](self.preact[i])

        self.d_act[last][...] = self.cost.derivative(self.act[last], want)

        for i in range(last, 0, -1):
            W = weights[i - 1]
            np.multiply(self.activation_derivative(i)(self.preact[i]), self.d_act[i], out=self.d_preact[i])
            self.d_bias[i][...] = self.d_preact[i]
            np.outer(self.d_preact[i], self.act[i - 1], out=self.d_weight[i])
            if self.legacy_overwrite:
                np.multiply(self.d_preact[i][-1], W[-1], out=self.d_act[i - 1])
            else:
                # sum over every output node j of d_preact[j] * W[j, k]
                np.matmul(self.d_preact[i], W, out=self.d_act[i - 1])

    def input_gradient(self) -> Array:
        """Copy of d(cost)/d(input) for the most recent example."""

        self._alive()
        return self.d_act[0].copy()

    # ------------------------------------------------------------------
    # Lifecycle

    def _alive(self) -> None:
        if self._destroyed:
            raise DankNNError("Training context has been destroyed")

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        for buffers in (self.act, self.d_act, self.preact, self.d_preact, self.d_bias, self.d_weight):
            buffers.clear()
        self._destroyed = True

    def __repr__(self) -> str:
        return f"TrainingContext(sizes={self.store.sizes}, cost={self.cost.name!r})"


def create_context(store: ParameterStore, cost: CostLike = DEFAULT_COST, **kwargs) -> TrainingContext:
    return TrainingContext(store, cost, **kwargs)


def train_step(context: TrainingContext, inputs, targets) -> None:
    context.train_step(inputs, targets)


def get_input_gradient(context: TrainingContext) -> Array:
    return context.input_gradient()


def destroy_context(context: TrainingContext) -> None:
    context.destroy()


__all__ = [
    "TrainingContext",
    "create_context",
    "train_step",
    "get_input_gradient",
    "destroy_context",
]
