"""Activation strategies for danknn layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Union

import numpy as np

from .types import Array

ActivationFn = Callable[[Array], Array]


@dataclass(frozen=True)
class Activation:
    """Elementwise nonlinearity paired with its derivative."""

    name: str
    fn: ActivationFn
    derivative: ActivationFn

    def __call__(self, x: Array) -> Array:
        return self.fn(x)


ActivationLike = Union[str, Activation]


class ActivationRegistry:
    """Central registry for activation strategies, keyed by tag."""

    def __init__(self) -> None:
        self._registry: Dict[str, Activation] = {}

    def register(self, name: str, fn: ActivationFn, derivative: ActivationFn) -> Activation:
        activation = Activation(name, fn, derivative)
        self._registry[name] = activation
        return activation

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, activation: ActivationLike) -> Activation:
        if isinstance(activation, Activation):
            return activation
        if activation not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(
                f"Unknown activation {activation!r}. Available activations: {available}"
            )
        return self._registry[activation]


ACTIVATIONS = ActivationRegistry()

DEFAULT_ACTIVATION = "swish"


def sigmoid(x: Array) -> Array:
    # exp(-log(1 + exp(-x))) avoids overflow for large |x|
    return np.exp(-np.logaddexp(0.0, -x)).astype(x.dtype, copy=False)


def d_sigmoid(x: Array) -> Array:
    s = sigmoid(x)
    return s * (1 - s)


def swish(x: Array) -> Array:
    return x * sigmoid(x)


def d_swish(x: Array) -> Array:
    s = sigmoid(x)
    sw = x * s
    return sw + s * (1 - sw)


def identity(x: Array) -> Array:
    return x.copy()


def d_identity(x: Array) -> Array:
    return np.ones_like(x)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def d_tanh(x: Array) -> Array:
    return 1 - np.tanh(x) ** 2


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0).astype(x.dtype, copy=False)


def d_relu(x: Array) -> Array:
    return (x > 0).astype(x.dtype)


ACTIVATIONS.register("sigmoid", sigmoid, d_sigmoid)
ACTIVATIONS.register("swish", swish, d_swish)
ACTIVATIONS.register("identity", identity, d_identity)
ACTIVATIONS.register("tanh", tanh, d_tanh)
ACTIVATIONS.register("relu", relu, d_relu)


def get_activation(activation: ActivationLike) -> Activation:
    return ACTIVATIONS.resolve(activation)


__all__ = [
    "Activation",
    "ActivationLike",
    "ActivationRegistry",
    "ACTIVATIONS",
    "DEFAULT_ACTIVATION",
    "get_activation",
    "sigmoid",
    "swish",
    "identity",
    "tanh",
    "relu",
]
