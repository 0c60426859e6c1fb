"""Run manifest helpers."""

from __future__ import annotations

import json
import platform
import time
from pathlib import Path
from typing import Mapping

import numpy as np


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    topology: tuple[int, ...],
    extra: Mapping[str, object] | None = None,
) -> str:
    """Write a JSON manifest capturing what produced a trained network."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "topology": list(topology),
        "environment": {
            "python": platform.python_version(),
            "numpy": np.__version__,
            "byteorder": "little",
        },
    }
    if extra:
        manifest.update(extra)
    path.write_text(json.dumps(manifest, indent=2, default=str))
    return str(path)


__all__ = ["write_manifest"]
