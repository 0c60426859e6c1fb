from __future__ import annotations

from typing import Mapping

import numpy as np
import pytest

from danknn.core.aggregate import apply
from danknn.core.context import TrainingContext
from danknn.core.initializers import initialize
from danknn.core.store import create_store
from danknn.data import get_dataset
from danknn.training.trainer import Trainer, count_correct, evaluate, train


class _Capture:
    def __init__(self) -> None:
        self.history: list[tuple[int, Mapping[str, float]]] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.history.append((epoch, dict(metrics)))


def _blobs_store(seed: int = 0):
    store = create_store([2, 8, 3])
    store.set_activation(2, "sigmoid")
    initialize(store, seed)
    return store


def test_training_reduces_loss():
    dataset = get_dataset("blobs", n_points=120, num_classes=3, seed=1)
    store = _blobs_store()
    capture = _Capture()
    with Trainer(store, workers=4, batch_size=3, learning_rate=0.5, callbacks=[capture]) as trainer:
        trainer.run(dataset, epochs=15, seed=0)
        assert trainer.steps == 15 * 10

    assert [epoch for epoch, _ in capture.history] == list(range(1, 16))
    first = capture.history[0][1]
    last = capture.history[-1][1]
    assert last["loss"] < first["loss"]
    assert 0.0 <= last["accuracy"] <= 1.0


def test_threaded_run_matches_sequential_reference():
    dataset = get_dataset("blobs", n_points=50, num_classes=3, seed=2)
    threaded = _blobs_store(4)
    reference = _blobs_store(4)

    train(threaded, dataset, epochs=2, seed=9, workers=3, batch_size=2, learning_rate=0.2)

    contexts = [TrainingContext(reference) for _ in range(6)]
    rng = np.random.default_rng(9)
    for _ in range(2):
        for batch in dataset.batches(6, rng):
            for ctx, x, y in zip(contexts, batch.inputs, batch.targets):
                ctx.train_step(x, y)
            apply(contexts[: len(batch)], 0.2)

    for layer in (1, 2):
        np.testing.assert_array_equal(threaded.weight(layer), reference.weight(layer))
        np.testing.assert_array_equal(threaded.bias(layer), reference.bias(layer))


def test_step_rejects_oversized_batch():
    store = _blobs_store()
    with Trainer(store, workers=2, batch_size=2) as trainer:
        with pytest.raises(ValueError):
            trainer.step(np.zeros((5, 2), dtype=np.float32), np.zeros((5, 3), dtype=np.float32))
        with pytest.raises(ValueError):
            trainer.step(np.zeros((0, 2), dtype=np.float32), np.zeros((0, 3), dtype=np.float32))


def test_close_destroys_contexts():
    trainer = Trainer(_blobs_store(), workers=2, batch_size=1)
    contexts = list(trainer.contexts)
    trainer.close()
    assert all(ctx.destroyed for ctx in contexts)


def test_evaluate_and_count_correct():
    dataset = get_dataset("xor")
    store = create_store([2, 1])
    store.set_activation(1, "identity")
    store.weight(1)[...] = [[1.0, 1.0]]
    metrics = evaluate(store, dataset)
    # outputs 0, 1, 1, 2 against 0, 1, 1, 0
    assert metrics["accuracy"] == pytest.approx(0.75)
    assert metrics["loss"] == pytest.approx(4.0 / 4)

    outputs = np.array([[0.1, 0.7, 0.2], [0.6, 0.3, 0.1]])
    targets = np.array([[0, 1, 0], [0, 0, 1]])
    assert count_correct(outputs, targets) == 1
