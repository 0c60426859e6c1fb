import numpy as np
import pytest

from danknn.core.activations import ACTIVATIONS
from danknn.core.errors import AllocationError, DankNNError, InvalidTopologyError, RangeError
from danknn.core.store import ParameterStore, create_store, destroy_store, set_activation
from danknn.core.types import Topology, create_topology


def test_store_shapes_follow_topology():
    store = create_store([3, 5, 2])
    assert store.num_layers == 3
    assert store.weight(1).shape == (5, 3)
    assert store.weight(2).shape == (2, 5)
    assert store.bias(1).shape == (5,)
    assert store.bias(2).shape == (2,)
    assert all(w.dtype == np.float32 and w.flags["C_CONTIGUOUS"] for w in store.weights)
    assert store.topology.parameter_count() == 5 * 3 + 5 + 2 * 5 + 2


@pytest.mark.parametrize("sizes", [[], [4], [3, 0, 2], [3, -1], [2, 2.5]])
def test_invalid_topologies_rejected(sizes):
    with pytest.raises(InvalidTopologyError):
        ParameterStore(sizes)


def test_invalid_topology_is_value_error():
    with pytest.raises(ValueError):
        create_topology([1])


def test_topology_is_immutable():
    topo = create_topology([2, 3, 1])
    assert isinstance(topo, Topology)
    assert create_topology(topo) is topo
    with pytest.raises(AttributeError):
        topo.sizes = (1, 1)  # type: ignore[misc]


def test_default_activation_is_swish():
    store = create_store([2, 2, 1])
    assert store.activation(1).name == "swish"
    assert store.activation(2).name == "swish"


def test_set_activation_by_tag_and_instance():
    store = create_store([2, 3, 1])
    set_activation(store, 1, "sigmoid")
    store.set_activation(2, ACTIVATIONS.resolve("identity"))
    assert store.activation(1).name == "sigmoid"
    assert store.activation(2).name == "identity"


@pytest.mark.parametrize("layer", [0, 3, -1])
def test_set_activation_out_of_range(layer):
    store = create_store([2, 3, 1])
    with pytest.raises(RangeError):
        store.set_activation(layer, "sigmoid")
    assert [a.name for a in store.activations] == ["swish", "swish"]


def test_unknown_activation_lists_choices():
    store = create_store([2, 1])
    with pytest.raises(KeyError, match="sigmoid"):
        store.set_activation(1, "softsign")


def test_copy_is_independent():
    store = create_store([2, 2])
    store.weight(1)[...] = 1.0
    clone = store.copy()
    clone.weight(1)[...] = 2.0
    assert np.all(store.weight(1) == 1.0)


def test_destroy_releases_storage():
    store = create_store([2, 2, 1])
    destroy_store(store)
    assert store.destroyed
    with pytest.raises(DankNNError):
        store.weight(1)


def test_unallocatable_topology_raises_allocation_error():
    with pytest.raises(AllocationError) as exc:
        create_store([10**10, 10**10])
    assert exc.value.context["sizes"] == (10**10, 10**10)
