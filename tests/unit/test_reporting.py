import csv
import json

import numpy as np
import pytest

from danknn.reporting import CsvSink, JsonlSink, PlotAdapter, write_manifest


def test_jsonl_sink_keeps_numeric_metrics(tmp_path):
    sink = JsonlSink(tmp_path / "m.jsonl", split="train", seed=3)
    sink.on_epoch(1, {"loss": 0.5, "accuracy": 0.25, "note": "ignored"})
    sink(2, {"loss": np.float64(0.25)})
    lines = [json.loads(line) for line in (tmp_path / "m.jsonl").read_text().splitlines()]
    assert lines[0] == {"epoch": 1, "split": "train", "seed": 3, "loss": 0.5, "accuracy": 0.25}
    assert lines[1]["loss"] == pytest.approx(0.25)


def test_csv_sink_header_written_once(tmp_path):
    sink = CsvSink(tmp_path / "m.csv")
    sink.on_epoch(1, {"loss": 1.0, "accuracy": 0.5})
    sink.on_epoch(2, {"loss": 0.5, "accuracy": 0.75})
    with (tmp_path / "m.csv").open(newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["epoch"] for row in rows] == ["1", "2"]
    assert float(rows[1]["accuracy"]) == 0.75


def test_manifest_contents(tmp_path):
    path = write_manifest(
        tmp_path / "run" / "manifest.json",
        config={"train": {"seed": 1}},
        dataset_provenance={"type": "synthetic"},
        topology=(2, 3, 1),
        extra={"network": "n.dnn"},
    )
    manifest = json.loads((tmp_path / "run" / "manifest.json").read_text())
    assert path.endswith("manifest.json")
    assert manifest["topology"] == [2, 3, 1]
    assert manifest["network"] == "n.dnn"
    assert manifest["environment"]["numpy"] == np.__version__


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    adapter = PlotAdapter(tmp_path, enable_plots=False)
    adapter.on_epoch(1, {"loss": 1.0})
    assert adapter.close() is None
    assert not (tmp_path / "loss.png").exists()


def test_plot_adapter_renders_loss_curve(tmp_path):
    pytest.importorskip("matplotlib")
    adapter = PlotAdapter(tmp_path, enable_plots=True)
    for epoch, loss in enumerate([1.0, 0.6, 0.4], start=1):
        adapter.on_epoch(epoch, {"loss": loss, "accuracy": 1.0 - loss})
    path = adapter.close()
    assert path is not None and path.exists()
