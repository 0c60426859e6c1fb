import json
from pathlib import Path

import numpy as np

from danknn.io.netfile import load
from danknn.training import pipelines


def _config(run_dir: Path) -> dict:
    config = pipelines.load_preset("blobs-swish")
    config["data"]["options"]["n_points"] = 48
    config["train"].update({"epochs": 3, "run_dir": str(run_dir)})
    return config


def test_pipeline_produces_artifacts(tmp_path):
    result = pipelines.run_pipeline(_config(tmp_path / "run"))
    assert Path(result.metrics_path).exists()
    assert (tmp_path / "run" / "metrics.csv").exists()
    assert (tmp_path / "run" / "metrics_eval.jsonl").exists()

    records = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines() if line]
    assert [r["epoch"] for r in records] == [1, 2, 3]
    assert all("loss" in r and "accuracy" in r for r in records)

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 7
    assert manifest["topology"] == [2, 8, 3]
    assert manifest["dataset"]["type"] == "synthetic"

    store = load(result.network_path)
    assert store.sizes == (2, 8, 3)
    assert result.steps == 3 * 3


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path / "run1"))
    second = pipelines.run_pipeline(_config(tmp_path / "run2"))
    assert Path(first.metrics_path).read_text() == Path(second.metrics_path).read_text()
    a, b = load(first.network_path), load(second.network_path)
    for layer in (1, 2):
        np.testing.assert_array_equal(a.weight(layer), b.weight(layer))


def test_presets_are_complete():
    for name, config in pipelines.presets().items():
        assert {"data", "model", "train"} <= set(config), name
