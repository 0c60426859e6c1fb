"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from .registry import Dataset, one_hot, register_dataset

_XOR_INPUTS = np.array([[0, 0], [0, 1], [1, 0], [1, 1]], dtype=np.float32)
_XOR_TARGETS = np.array([[0], [1], [1], [0]], dtype=np.float32)


@register_dataset("xor")
def make_xor(repeat: int = 1, **_: object) -> Dataset:
    """The four XOR examples, tiled ``repeat`` times."""

    inputs = np.tile(_XOR_INPUTS, (repeat, 1))
    targets = np.tile(_XOR_TARGETS, (repeat, 1))
    return Dataset(
        name="xor",
        inputs=inputs,
        targets=targets,
        provenance={"type": "synthetic", "repeat": repeat},
    )


@register_dataset("blobs")
def make_blobs(
    n_points: int = 256,
    num_classes: int = 3,
    d_in: int = 2,
    spread: float = 0.15,
    seed: int = 0,
    **_: object,
) -> Dataset:
    """Gaussian clusters around random centres in ``[0, 1]^d_in``."""

    rng = np.random.default_rng(seed)
    centres = rng.random((num_classes, d_in))
    labels = rng.integers(0, num_classes, size=n_points)
    inputs = centres[labels] + spread * rng.standard_normal((n_points, d_in))
    return Dataset(
        name="blobs",
        inputs=inputs.astype(np.float32),
        targets=one_hot(labels, num_classes),
        labels=labels.astype(np.int64),
        provenance={
            "type": "synthetic",
            "n_points": n_points,
            "num_classes": num_classes,
            "spread": spread,
            "seed": seed,
        },
    )


__all__ = ["make_xor", "make_blobs"]
