"""Xavier-style parameter initialisation."""

from __future__ import annotations

import logging
import math
from typing import Union

import numpy as np

from .store import ParameterStore
from .types import DTYPE, Array

logger = logging.getLogger(__name__)

SeedLike = Union[int, np.random.Generator, None]

_NORM = 1.0 / math.sqrt(2.0 * math.pi)


def normal_density(x: Array) -> Array:
    """Standard normal probability density."""

    return _NORM * np.exp(-0.5 * np.square(x))


def xavier_weights(rng: np.random.Generator, n_out: int, n_in: int) -> Array:
    """Draw an ``(n_out, n_in)`` matrix bounded by ``1/sqrt(n_in)``.

    Each magnitude starts as a uniform candidate ``u`` in ``[0, 1)``; a fresh
    uniform threshold ``t`` is drawn and ``u`` is redrawn for as long as
    ``density(t) > density(u)``. Survivors get a random sign and are scaled
    by ``1/sqrt(n_in)``.
    """

    size = n_out * n_in
    u = rng.random(size)
    pending = np.arange(size)
    while pending.size:
        t = rng.random(pending.size)
        rejected = pending[normal_density(t) > normal_density(u[pending])]
        u[rejected] = rng.random(rejected.size)
        pending = rejected
    negative = rng.integers(0, 2, size=size) == 0
    u[negative] *= -1
    u /= math.sqrt(n_in)
    return u.reshape(n_out, n_in).astype(DTYPE)


def initialize(store: ParameterStore, seed: SeedLike = None) -> np.random.Generator:
    """Fill ``store`` with Xavier weights and zero biases.

    ``seed`` may be an integer or an explicit :class:`numpy.random.Generator`;
    the same integer always reproduces the same parameters. Concurrent
    initialisation must use one generator per caller. Returns the generator
    used so callers can keep drawing from the same stream.
    """

    rng = np.random.default_rng(seed)
    for layer in range(1, store.num_layers):
        n_out, n_in = store.topology.layer_shape(layer)
        weights = xavier_weights(rng, n_out, n_in)
        store.weight(layer)[...] = weights
        store.bias(layer)[...] = 0
    logger.debug("Initialised store %s", store.sizes)
    return rng


__all__ = ["initialize", "xavier_weights", "normal_density"]
