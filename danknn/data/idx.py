"""IDX file reader (the format MNIST is distributed in).

An IDX file starts with two zero bytes, a type code and the number of
dimensions, followed by one big-endian 32-bit size per dimension and then
the raw values in row-major order.
"""

from __future__ import annotations

import gzip
import logging
import struct
from pathlib import Path

import numpy as np

from ..core.errors import FormatError, NetworkIOError
from ..core.types import Array
from .registry import Dataset, one_hot, register_dataset

logger = logging.getLogger(__name__)

_TYPE_CODES = {
    0x08: np.dtype("u1"),
    0x09: np.dtype("i1"),
    0x0B: np.dtype(">i2"),
    0x0C: np.dtype(">i4"),
    0x0D: np.dtype(">f4"),
    0x0E: np.dtype(">f8"),
}


def _read_bytes(path: Path) -> bytes:
    try:
        if path.suffix == ".gz":
            with gzip.open(path, "rb") as handle:
                return handle.read()
        return path.read_bytes()
    except OSError as exc:
        raise NetworkIOError(f"Unable to read IDX file {path}: {exc}", context={"path": str(path)}) from exc


def parse_idx(data: bytes) -> Array:
    if len(data) < 4 or data[0] != 0 or data[1] != 0:
        raise FormatError("File format is not IDX: the first two bytes must be zero")
    type_code, ndim = data[2], data[3]
    if type_code not in _TYPE_CODES:
        raise FormatError(f"Unsupported IDX type code 0x{type_code:02x}")
    if ndim == 0:
        raise FormatError("IDX file declares zero dimensions")
    header_end = 4 + 4 * ndim
    if len(data) < header_end:
        raise FormatError("Truncated IDX header")
    shape = struct.unpack_from(f">{ndim}I", data, 4)
    dtype = _TYPE_CODES[type_code]
    count = int(np.prod(shape))
    if len(data) - header_end < count * dtype.itemsize:
        raise FormatError(f"Truncated IDX payload: expected {count} values of shape {shape}")
    values = np.frombuffer(data, dtype=dtype, count=count, offset=header_end)
    return values.reshape(shape).astype(dtype.newbyteorder("="))


def read_idx(path: str | Path) -> Array:
    """Return the array stored in the IDX file at ``path``."""

    return parse_idx(_read_bytes(Path(path)))


@register_dataset("idx")
def load_idx_dataset(
    images: str | Path,
    labels: str | Path,
    *,
    num_classes: int = 10,
    max_items: int | None = None,
) -> Dataset:
    """Load an image/label IDX pair as flattened, one-hot encoded examples."""

    raw_images = read_idx(images)
    raw_labels = read_idx(labels)
    if raw_labels.ndim != 1:
        raise FormatError(f"Label file must be one-dimensional, got shape {raw_labels.shape}")
    if raw_images.shape[0] != raw_labels.shape[0]:
        raise FormatError(
            f"Unequal number of images ({raw_images.shape[0]}) and labels ({raw_labels.shape[0]})"
        )
    if max_items is not None:
        raw_images = raw_images[:max_items]
        raw_labels = raw_labels[:max_items]

    inputs = raw_images.reshape(raw_images.shape[0], -1).astype(np.float32)
    if raw_images.dtype == np.uint8:
        inputs /= 255.0
    label_ids = raw_labels.astype(np.int64)
    logger.info("Loaded %d IDX examples of width %d from %s", inputs.shape[0], inputs.shape[1], images)
    return Dataset(
        name="idx",
        inputs=inputs,
        targets=one_hot(label_ids, num_classes),
        labels=label_ids,
        provenance={
            "images": str(images),
            "labels": str(labels),
            "image_shape": list(raw_images.shape[1:]),
            "num_classes": num_classes,
        },
    )


__all__ = ["parse_idx", "read_idx", "load_idx_dataset"]
