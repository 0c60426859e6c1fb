"""Binary network file codec.

Layout (all multi-byte values little-endian)::

    magic        4 bytes   float32 9.0 (00 00 10 41)
    layer count  1 byte    L, at most 255
    sizes        2 bytes   per layer, at most 65535 each
    parameters             for each internal layer 1..L-1:
                             biases  sizes[i] float32
                             weights sizes[i] * sizes[i-1] float32, row-major
                             (output node, then input node)
    terminator   1 byte    0xFF

Activation choices are not stored; a loaded store uses the default
activation on every layer.
"""

from __future__ import annotations

import logging
import os
import struct
from pathlib import Path
from typing import Union

import numpy as np

from ..core.errors import FormatError, InvalidTopologyError, NetworkIOError
from ..core.store import ParameterStore
from ..core.types import create_topology

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

MAGIC = struct.pack("<f", 9.0)
TERMINATOR = 0xFF
MAX_LAYERS = 0xFF
MAX_LAYER_SIZE = 0xFFFF

_WIRE_FLOAT = np.dtype("<f4")


def _check_encodable(store: ParameterStore) -> None:
    sizes = store.sizes
    if len(sizes) > MAX_LAYERS:
        raise FormatError(
            f"Network has {len(sizes)} layers; the file format allows at most {MAX_LAYERS}",
            context={"num_layers": len(sizes)},
        )
    for idx, size in enumerate(sizes):
        if size > MAX_LAYER_SIZE:
            raise FormatError(
                f"Layer {idx} has {size} nodes; the file format allows at most {MAX_LAYER_SIZE}",
                context={"layer": idx, "size": size},
            )


def dumps(store: ParameterStore) -> bytes:
    """Encode ``store`` to bytes."""

    _check_encodable(store)
    sizes = store.sizes
    chunks = [MAGIC, struct.pack(f"<B{len(sizes)}H", len(sizes), *sizes)]
    for W, b in zip(store.weights, store.biases):
        chunks.append(b.astype(_WIRE_FLOAT).tobytes())
        chunks.append(W.astype(_WIRE_FLOAT).tobytes(order="C"))
    chunks.append(bytes([TERMINATOR]))
    return b"".join(chunks)


def loads(data: bytes) -> ParameterStore:
    """Decode a store previously produced by :func:`dumps`."""

    view = memoryview(data)
    if len(view) < len(MAGIC) or bytes(view[: len(MAGIC)]) != MAGIC:
        raise FormatError("Bad magic number; not a network file or written by an incompatible version")
    offset = len(MAGIC)
    if len(view) < offset + 1:
        raise FormatError("Truncated header: missing layer count")
    num_layers = view[offset]
    offset += 1
    header_end = offset + 2 * num_layers
    if len(view) < header_end:
        raise FormatError("Truncated header: missing layer sizes")
    sizes = struct.unpack_from(f"<{num_layers}H", view, offset)
    offset = header_end

    try:
        topology = create_topology(sizes)
    except InvalidTopologyError as exc:
        raise FormatError(f"Header declares an invalid topology: {exc}", context={"sizes": sizes}) from exc

    expected = offset + 4 * topology.parameter_count()
    if len(view) < expected:
        raise FormatError(
            f"Truncated parameter section: expected {expected} bytes, got {len(view)}",
            context={"expected": expected, "actual": len(view)},
        )
    store = ParameterStore(topology)
    for W, b in zip(store.weights, store.biases):
        b[...] = np.frombuffer(view, dtype=_WIRE_FLOAT, count=b.size, offset=offset)
        offset += 4 * b.size
        W[...] = np.frombuffer(view, dtype=_WIRE_FLOAT, count=W.size, offset=offset).reshape(W.shape)
        offset += 4 * W.size

    trailing = bytes(view[offset:])
    if trailing and trailing != bytes([TERMINATOR]):
        raise FormatError(
            f"Unexpected {len(trailing)} trailing byte(s) after parameters",
            context={"trailing": trailing[:8]},
        )
    return store


def save(store: ParameterStore, path: PathLike) -> None:
    """Write ``store`` to ``path``; nothing is written if it cannot be encoded."""

    payload = dumps(store)
    path = Path(path)
    try:
        with path.open("wb") as handle:
            handle.write(payload)
    except OSError as exc:
        raise NetworkIOError(f"Unable to write network file {path}: {exc}", context={"path": str(path)}) from exc
    logger.debug("Saved network %s to %s (%d bytes)", store.sizes, path, len(payload))


def load(path: PathLike) -> ParameterStore:
    """Read a store written by :func:`save`."""

    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise NetworkIOError(f"Unable to read network file {path}: {exc}", context={"path": str(path)}) from exc
    store = loads(data)
    logger.debug("Loaded network %s from %s", store.sizes, path)
    return store


__all__ = ["MAGIC", "TERMINATOR", "dumps", "loads", "save", "load"]
