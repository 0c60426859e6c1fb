"""Mini-batch gradient descent step over a batch of training contexts."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from .context import TrainingContext
from .errors import DankNNError, MismatchError
from .types import DTYPE

logger = logging.getLogger(__name__)


def apply(contexts: Sequence[TrainingContext], learning_rate: float) -> None:
    """Subtract ``learning_rate`` times the mean gradient of ``contexts``.

    All contexts must be bound to the same store. This is the only operation
    that mutates a store after initialisation; every ``train_step`` of the
    batch must have finished before it is called, and no ``train_step`` or
    ``infer`` may run against the store until it returns. No locking is done
    here.
    """

    contexts = list(contexts)
    if not contexts:
        raise MismatchError("Cannot apply an empty batch of training contexts")
    store = contexts[0].store
    for idx, ctx in enumerate(contexts):
        if ctx.store is not store:
            raise MismatchError(
                f"Context {idx} is bound to a different parameter store",
                context={"index": idx},
            )
        if ctx.destroyed:
            raise DankNNError(f"Context {idx} has been destroyed")

    n = len(contexts)
    lr = DTYPE(learning_rate)
    for layer in range(1, store.num_layers):
        for param, grads in (
            (store.weight(layer), [ctx.d_weight[layer] for ctx in contexts]),
            (store.bias(layer), [ctx.d_bias[layer] for ctx in contexts]),
        ):
            mean = grads[0].copy()
            for grad in grads[1:]:
                np.add(mean, grad, out=mean)
            mean /= DTYPE(n)
            mean *= lr
            param -= mean
    logger.debug("Applied %d gradients to store %s (lr=%g)", n, store.sizes, learning_rate)


__all__ = ["apply"]
