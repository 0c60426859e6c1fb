"""Pure forward evaluation of a parameter store."""

from __future__ import annotations

import numpy as np

from .errors import ShapeError
from .store import ParameterStore
from .types import DTYPE, Array


def as_vector(values, length: int, what: str) -> Array:
    """Return ``values`` as float32, checking its trailing length."""

    arr = np.asarray(values, dtype=DTYPE)
    if arr.ndim not in (1, 2) or arr.shape[-1] != length:
        raise ShapeError(
            f"{what} must have length {length}, got shape {arr.shape}",
            context={"expected": length, "shape": arr.shape},
        )
    return arr


def infer(store: ParameterStore, inputs) -> Array:
    """Return the output activations of ``store`` for ``inputs``.

    ``inputs`` is a vector of length ``sizes[0]`` or a ``(batch, sizes[0])``
    block whose rows are evaluated independently. The store is only read, so
    any number of callers may infer concurrently as long as no ``apply`` on
    the same store is running.
    """

    act = as_vector(inputs, store.sizes[0], "Input")
    for W, b, activation in zip(store.weights, store.biases, store.activations):
        act = activation(act @ W.T + b)
    return act


__all__ = ["infer", "as_vector"]
