"""Config-driven training runs: dataset -> network -> trainer -> artifacts."""

from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping

from ..core.initializers import initialize
from ..core.store import ParameterStore
from ..data import registry
from ..io.netfile import save
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .trainer import RunResult, Trainer, evaluate

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor-sigmoid": {
        "data": {"name": "xor", "options": {"repeat": 4}},
        "model": {"hidden": [4], "activation": "sigmoid", "cost": "mse"},
        "train": {
            "epochs": 200,
            "workers": 2,
            "batch_size": 2,
            "lr": 0.5,
            "seed": 3,
            "run_dir": "runs/xor-sigmoid",
            "enable_plots": False,
        },
    },
    "blobs-swish": {
        "data": {"name": "blobs", "options": {"n_points": 240, "num_classes": 3, "seed": 0}},
        "model": {
            "hidden": [8],
            "activation": "swish",
            "output_activation": "sigmoid",
            "cost": "mse",
        },
        "train": {
            "epochs": 20,
            "workers": 4,
            "batch_size": 4,
            "lr": 0.3,
            "seed": 7,
            "run_dir": "runs/blobs-swish",
            "enable_plots": False,
        },
    },
    "mnist-idx": {
        "data": {
            "name": "idx",
            "options": {
                "images": "MNIST/train-images-idx3-ubyte",
                "labels": "MNIST/train-labels-idx1-ubyte",
                "num_classes": 10,
            },
        },
        "eval_data": {
            "name": "idx",
            "options": {
                "images": "MNIST/t10k-images-idx3-ubyte",
                "labels": "MNIST/t10k-labels-idx1-ubyte",
                "num_classes": 10,
            },
        },
        "model": {"hidden": [256, 128], "activation": "swish", "cost": "mse"},
        "train": {
            "epochs": 5,
            "workers": 16,
            "batch_size": 5,
            "lr": 0.03,
            "seed": 0,
            "run_dir": "runs/mnist-idx",
            "save_as": "dank.net",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: Path) -> Mapping[str, object]:
    """Decode a JSON or YAML config file into a mapping."""

    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load YAML configs") from exc
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: {', '.join(sorted(missing))}"
                    )
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def build_store(model_cfg: Mapping[str, object], d_in: int, d_out: int) -> ParameterStore:
    """Create an uninitialised store from the ``model`` config section."""

    hidden: List[int] = [int(h) for h in model_cfg.get("hidden", [])]  # type: ignore[union-attr]
    return apply_activations(ParameterStore([d_in, *hidden, d_out]), model_cfg)


def apply_activations(store: ParameterStore, model_cfg: Mapping[str, object]) -> ParameterStore:
    """Re-apply the configured activations (they are not stored in network files)."""

    activation = model_cfg.get("activation")
    output_activation = model_cfg.get("output_activation")
    for layer in range(1, store.num_layers):
        if activation:
            store.set_activation(layer, str(activation))
    if output_activation:
        store.set_activation(store.num_layers - 1, str(output_activation))
    return store


def _load_dataset(section: Mapping[str, object]) -> registry.Dataset:
    options = dict(section.get("options", {}))  # type: ignore[arg-type]
    return registry.get_dataset(str(section["name"]), **options)


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Train a network as described by ``config`` and write its artifacts."""

    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config.get("model", {}))  # type: ignore[arg-type]
    train_cfg = dict(config.get("train", {}))  # type: ignore[arg-type]

    dataset = _load_dataset(data_cfg)
    eval_dataset = _load_dataset(config["eval_data"]) if config.get("eval_data") else dataset  # type: ignore[arg-type]

    seed = int(train_cfg.get("seed", 0))
    epochs = int(train_cfg.get("epochs", 1))
    run_dir = Path(str(train_cfg.get("run_dir", f"runs/{dataset.name}")))
    run_dir.mkdir(parents=True, exist_ok=True)

    store = build_store(model_cfg, dataset.d_in, dataset.d_out)
    initialize(store, seed)
    cost = str(model_cfg.get("cost", "mse"))

    logger.info(
        "dataset=%s examples=%d topology=%s params=%d cost=%s",
        dataset.name,
        len(dataset),
        list(store.sizes),
        store.topology.parameter_count(),
        cost,
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    with Trainer(
        store,
        workers=int(train_cfg.get("workers", 1)),
        batch_size=int(train_cfg.get("batch_size", 1)),
        learning_rate=float(train_cfg.get("lr", 0.03)),
        cost=cost,
        legacy_overwrite=bool(model_cfg.get("legacy_overwrite", False)),
        callbacks=[jsonl, csv_sink, plots],
    ) as trainer:
        trainer.run(dataset, epochs, seed)
        steps = trainer.steps
    plots.close()

    final = evaluate(store, eval_dataset, cost)
    test_sink = JsonlSink(run_dir / "metrics_eval.jsonl", split="eval", seed=seed)
    test_sink.on_epoch(epochs, final)
    logger.info("evaluation loss=%.6f accuracy=%.4f", final["loss"], final["accuracy"])

    network_path = run_dir / str(train_cfg.get("save_as", "network.dnn"))
    save(store, network_path)
    manifest_path = write_manifest(
        run_dir / "manifest.json",
        config=json.loads(json.dumps(config)),
        dataset_provenance=dataset.provenance,
        topology=store.sizes,
        extra={"final_metrics": final, "network": str(network_path)},
    )
    return RunResult(
        steps=steps,
        metrics_path=str(jsonl.path),
        manifest_path=manifest_path,
        network_path=str(network_path),
        final_metrics=final,
    )


__all__ = [
    "apply_activations",
    "build_store",
    "load_preset",
    "presets",
    "read_config_file",
    "run_pipeline",
]
