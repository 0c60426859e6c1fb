import math

import numpy as np
import pytest

from danknn.core.errors import ShapeError
from danknn.core.inference import infer
from danknn.core.initializers import initialize
from danknn.core.store import create_store


def _sig(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-x))


def make_221_sigmoid():
    store = create_store([2, 2, 1])
    store.weight(1)[...] = [[0.15, 0.20], [0.25, 0.30]]
    store.bias(1)[...] = [0.35, 0.35]
    store.weight(2)[...] = [[0.40, 0.45]]
    store.bias(2)[...] = [0.60]
    store.set_activation(1, "sigmoid")
    store.set_activation(2, "sigmoid")
    return store


def test_hand_computed_forward_pass():
    store = make_221_sigmoid()
    h1 = _sig(0.15 * 1 + 0.20 * 0 + 0.35)
    h2 = _sig(0.25 * 1 + 0.30 * 0 + 0.35)
    expected = _sig(0.40 * h1 + 0.45 * h2 + 0.60)

    out = infer(store, [1.0, 0.0])
    assert out.shape == (1,)
    assert out.dtype == np.float32
    assert out[0] == pytest.approx(expected, rel=1e-5)
    assert out[0] == pytest.approx(0.7576, abs=1e-3)


def test_batched_rows_match_single_inference():
    store = create_store([4, 6, 3])
    initialize(store, 0)
    rng = np.random.default_rng(1)
    x = rng.standard_normal((5, 4)).astype(np.float32)
    batched = infer(store, x)
    assert batched.shape == (5, 3)
    for row, expected in zip(x, batched):
        np.testing.assert_allclose(infer(store, row), expected, rtol=1e-5, atol=1e-6)


@pytest.mark.parametrize("bad", [[1.0], [1.0, 2.0, 3.0], [[1.0, 2.0, 3.0]], 1.0])
def test_wrong_input_length_raises(bad):
    store = create_store([2, 2, 1])
    with pytest.raises(ShapeError):
        infer(store, bad)


def test_infer_does_not_mutate_store():
    store = create_store([3, 4, 2])
    initialize(store, 5)
    before = store.state_dict()
    infer(store, np.ones(3))
    for key, value in store.state_dict().items():
        assert np.array_equal(value, before[key])
