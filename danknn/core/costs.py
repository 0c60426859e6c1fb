"""Cost strategies: scalar loss for reporting and d(cost)/d(output) for backprop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Union

import numpy as np

from .types import Array

LossFn = Callable[[Array, Array], float]
DerivativeFn = Callable[[Array, Array], Array]

_EPS = 1e-7


@dataclass(frozen=True)
class Cost:
    """Cost wrapper carrying both the loss and its derivative w.r.t. the output."""

    name: str
    loss: LossFn
    derivative: DerivativeFn


CostLike = Union[str, Cost]


class CostRegistry:
    """Central registry for cost functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Cost] = {}

    def register(self, name: str, loss: LossFn, derivative: DerivativeFn) -> Cost:
        cost = Cost(name, loss, derivative)
        self._registry[name] = cost
        return cost

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, cost: CostLike) -> Cost:
        if isinstance(cost, Cost):
            return cost
        if cost not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown cost {cost!r}. Available costs: {available}")
        return self._registry[cost]


COSTS = CostRegistry()

DEFAULT_COST = "mse"


def _mse_loss(out: Array, target: Array) -> float:
    diff = out - target
    return float(np.sum(np.square(diff, dtype=np.float64)))


def _mse_derivative(out: Array, target: Array) -> Array:
    return 2 * (out - target)


def _cross_entropy_loss(out: Array, target: Array) -> float:
    p = np.clip(out.astype(np.float64), _EPS, 1 - _EPS)
    return float(-np.sum(target * np.log(p) + (1 - target) * np.log(1 - p)))


def _cross_entropy_derivative(out: Array, target: Array) -> Array:
    p = np.clip(out, _EPS, 1 - _EPS)
    return (p - target) / (p * (1 - p))


COSTS.register("mse", _mse_loss, _mse_derivative)
COSTS.register("cross_entropy", _cross_entropy_loss, _cross_entropy_derivative)
# Alias for parity with the short names used in configs
COSTS.register("bce", _cross_entropy_loss, _cross_entropy_derivative)


def get_cost(cost: CostLike) -> Cost:
    return COSTS.resolve(cost)


__all__ = ["Cost", "CostLike", "CostRegistry", "COSTS", "DEFAULT_COST", "get_cost"]
