import struct

import numpy as np
import pytest

from danknn.core.errors import FormatError, NetworkIOError
from danknn.core.initializers import initialize
from danknn.core.store import create_store
from danknn.io.netfile import MAGIC, dumps, load, loads, save


def _trained_store():
    store = create_store([3, 5, 2])
    initialize(store, 11)
    store.bias(1)[...] = np.linspace(-1, 1, 5)
    store.bias(2)[...] = [np.float32(1e-30), np.float32(-3.5)]
    return store


def test_round_trip_is_bit_exact(tmp_path):
    store = _trained_store()
    path = tmp_path / "net.dnn"
    save(store, path)
    loaded = load(path)
    assert loaded.sizes == store.sizes
    for layer in (1, 2):
        assert loaded.weight(layer).tobytes() == store.weight(layer).tobytes()
        assert loaded.bias(layer).tobytes() == store.bias(layer).tobytes()
    assert dumps(loaded) == dumps(store)


def test_byte_layout():
    store = create_store([2, 300, 1])
    store.bias(1)[...] = 0.5
    store.weight(1)[...] = np.arange(600, dtype=np.float32).reshape(300, 2)
    store.weight(2)[...] = 2.0
    store.bias(2)[...] = -1.0
    data = dumps(store)

    assert data[:4] == MAGIC == b"\x00\x00\x10\x41"
    assert data[4] == 3
    assert data[5:11] == bytes([2, 0, 0x2C, 0x01, 1, 0])
    offset = 11
    biases1 = np.frombuffer(data, dtype="<f4", count=300, offset=offset)
    assert np.all(biases1 == 0.5)
    offset += 300 * 4
    weights1 = np.frombuffer(data, dtype="<f4", count=600, offset=offset)
    # row-major: output node first, then input node
    assert weights1[0] == 0.0 and weights1[1] == 1.0 and weights1[2] == 2.0
    offset += 600 * 4
    assert struct.unpack_from("<f", data, offset)[0] == -1.0
    offset += 4 + 300 * 4
    assert data[offset:] == b"\xff"


def test_bad_magic_rejected():
    data = bytearray(dumps(_trained_store()))
    data[:4] = struct.pack("<f", 8.0)
    with pytest.raises(FormatError):
        loads(bytes(data))


def test_bad_magic_aborts_before_reading_sizes():
    # bogus header claiming enormous layers must not allocate anything
    data = struct.pack("<f", 1.0) + bytes([255]) + b"\xff\xff" * 255
    with pytest.raises(FormatError, match="magic"):
        loads(data)


def test_truncated_parameters_rejected():
    data = dumps(_trained_store())
    with pytest.raises(FormatError, match="Truncated"):
        loads(data[:-10])


def test_missing_terminator_tolerated_but_garbage_rejected():
    data = dumps(_trained_store())
    assert loads(data[:-1]).sizes == (3, 5, 2)
    with pytest.raises(FormatError):
        loads(data[:-1] + b"\x00")
    with pytest.raises(FormatError):
        loads(data + b"\x00")


def test_invalid_header_topology_rejected():
    data = MAGIC + bytes([1]) + struct.pack("<H", 4)
    with pytest.raises(FormatError):
        loads(data)
    data = MAGIC + bytes([2]) + struct.pack("<2H", 4, 0)
    with pytest.raises(FormatError):
        loads(data)


def test_layer_size_above_two_bytes_fails_without_writing(tmp_path):
    store = create_store([65536, 1])
    path = tmp_path / "big.dnn"
    with pytest.raises(FormatError):
        save(store, path)
    assert not path.exists()


def test_max_layer_size_round_trips():
    store = create_store([65535, 1])
    store.weight(1)[0, -1] = 7.0
    loaded = loads(dumps(store))
    assert loaded.sizes == (65535, 1)
    assert loaded.weight(1)[0, -1] == 7.0


def test_too_many_layers_fails():
    with pytest.raises(FormatError):
        dumps(create_store([1] * 256))


def test_io_errors(tmp_path):
    with pytest.raises(NetworkIOError):
        load(tmp_path / "missing.dnn")
    with pytest.raises(OSError):
        save(_trained_store(), tmp_path / "no" / "such" / "dir" / "net.dnn")


def test_huge_header_without_parameters_is_truncation_not_allocation():
    data = MAGIC + bytes([3]) + struct.pack("<3H", 65535, 65535, 65535)
    with pytest.raises(FormatError, match="Truncated parameter section"):
        loads(data)
