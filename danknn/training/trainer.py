"""Threaded mini-batch training loop built on the core engine.

This is a *caller* of the core: it owns one :class:`TrainingContext` per
concurrency slot, runs ``train_step`` on a worker pool, joins every worker
and only then calls :func:`apply` once for the batch.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence

import numpy as np

from ..core.aggregate import apply
from ..core.context import TrainingContext
from ..core.costs import DEFAULT_COST, CostLike, get_cost
from ..core.inference import infer
from ..core.store import ParameterStore
from ..core.types import Array
from ..data.registry import Dataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`danknn.training.pipelines.run_pipeline`."""

    steps: int
    metrics_path: str
    manifest_path: str
    network_path: str
    final_metrics: Mapping[str, float]


def count_correct(outputs: Array, targets: Array) -> int:
    """Argmax agreement for multi-output nets, 0.5 threshold for one output."""

    outputs = np.atleast_2d(outputs)
    targets = np.atleast_2d(targets)
    if outputs.shape[1] == 1:
        return int(np.sum((outputs[:, 0] >= 0.5) == (targets[:, 0] >= 0.5)))
    return int(np.sum(outputs.argmax(axis=1) == targets.argmax(axis=1)))


def evaluate(store: ParameterStore, dataset: Dataset, cost: CostLike = DEFAULT_COST) -> dict[str, float]:
    """Mean per-example cost and accuracy of ``store`` on ``dataset``."""

    if len(dataset) == 0:
        return {"loss": 0.0, "accuracy": 0.0}
    outputs = infer(store, dataset.inputs)
    loss = get_cost(cost).loss(outputs, dataset.targets)
    return {
        "loss": loss / len(dataset),
        "accuracy": count_correct(outputs, dataset.targets) / len(dataset),
    }


class Trainer:
    """Run mini-batch gradient descent over a worker pool.

    A mini-batch holds ``workers * batch_size`` examples; worker ``w`` trains
    examples ``[w*batch_size, (w+1)*batch_size)`` of the batch on its own
    slice of contexts.
    """

    def __init__(
        self,
        store: ParameterStore,
        *,
        workers: int = 4,
        batch_size: int = 5,
        learning_rate: float = 0.03,
        cost: CostLike = DEFAULT_COST,
        legacy_overwrite: bool = False,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if workers < 1 or batch_size < 1:
            raise ValueError("workers and batch_size must be positive")
        self.store = store
        self.workers = int(workers)
        self.batch_size = int(batch_size)
        self.learning_rate = float(learning_rate)
        self.cost = get_cost(cost)
        self.callbacks = list(callbacks or [])
        self.contexts: List[TrainingContext] = [
            TrainingContext(store, self.cost, legacy_overwrite=legacy_overwrite)
            for _ in range(self.workers * self.batch_size)
        ]
        self._pool: ThreadPoolExecutor | None = None
        if self.workers > 1:
            self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="danknn-worker")
        self.steps = 0

    @property
    def slots(self) -> int:
        return len(self.contexts)

    # ------------------------------------------------------------------
    # Training

    @staticmethod
    def _work(contexts: Sequence[TrainingContext], inputs: Array, targets: Array) -> tuple[float, int]:
        loss = 0.0
        correct = 0
        for ctx, x, y in zip(contexts, inputs, targets):
            ctx.train_step(x, y)
            loss += ctx.cost.loss(ctx.output, y)
            correct += count_correct(ctx.output, y)
        return loss, correct

    def step(self, inputs: Array, targets: Array) -> tuple[float, int]:
        """Train one mini-batch of at most :attr:`slots` examples and apply it.

        Returns the summed cost and number of correct predictions, both
        measured on the forward pass before the update.
        """

        n = len(inputs)
        if n == 0 or n > self.slots:
            raise ValueError(f"Batch must hold 1..{self.slots} examples, got {n}")
        if len(targets) != n:
            raise ValueError(f"Got {n} inputs but {len(targets)} targets")

        jobs = []
        for start in range(0, n, self.batch_size):
            stop = min(start + self.batch_size, n)
            jobs.append((self.contexts[start:stop], inputs[start:stop], targets[start:stop]))

        if self._pool is None:
            results = [self._work(*job) for job in jobs]
        else:
            futures = [self._pool.submit(self._work, *job) for job in jobs]
            # every worker must finish before the store is mutated
            results = [future.result() for future in futures]

        apply(self.contexts[:n], self.learning_rate)
        self.steps += 1
        return sum(r[0] for r in results), sum(r[1] for r in results)

    def run_epoch(self, dataset: Dataset, rng: np.random.Generator | None = None) -> dict[str, float]:
        loss = 0.0
        correct = 0
        for batch in dataset.batches(self.slots, rng):
            batch_loss, batch_correct = self.step(batch.inputs, batch.targets)
            loss += batch_loss
            correct += batch_correct
        n = max(1, len(dataset))
        return {"loss": loss / n, "accuracy": correct / n}

    def run(
        self,
        dataset: Dataset,
        epochs: int,
        seed: int | None = 0,
        *,
        shuffle: bool = True,
    ) -> list[dict[str, float]]:
        """Train for ``epochs`` passes over ``dataset``; returns per-epoch metrics."""

        rng = np.random.default_rng(seed) if shuffle else None
        history: list[dict[str, float]] = []
        for epoch in range(1, epochs + 1):
            metrics = self.run_epoch(dataset, rng)
            history.append(metrics)
            logger.info(
                "epoch %d/%d loss=%.6f accuracy=%.4f", epoch, epochs, metrics["loss"], metrics["accuracy"]
            )
            self._emit_epoch(epoch, metrics)
        return history

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)

    # ------------------------------------------------------------------
    # Lifecycle

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None
        for ctx in self.contexts:
            if not ctx.destroyed:
                ctx.destroy()

    def __enter__(self) -> "Trainer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def train(
    store: ParameterStore,
    dataset: Dataset,
    epochs: int,
    *,
    seed: int | None = 0,
    callbacks: Iterable[object] | None = None,
    **kwargs: object,
) -> list[dict[str, float]]:
    """Convenience wrapper: build a :class:`Trainer`, run it and close it."""

    with Trainer(store, callbacks=list(callbacks or []), **kwargs) as trainer:  # type: ignore[arg-type]
        return trainer.run(dataset, epochs, seed)


__all__ = ["RunResult", "Trainer", "count_correct", "evaluate", "train"]
