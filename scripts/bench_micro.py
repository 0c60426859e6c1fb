from __future__ import annotations

import argparse
import csv
import json
import sys
from pathlib import Path
from statistics import mean, pstdev

MODES = {"accumulate": False, "legacy": True}


def _fmt_mu_sigma(vals):
    mu = mean(vals)
    sd = pstdev(vals) if len(vals) > 1 else 0.0
    return f"{mu:.4f} ± {sd:.4f}"


def _run_one(legacy: bool, seed: int, epochs: int, lr: float, batch: int) -> dict:
    from danknn.core.initializers import initialize
    from danknn.core.store import ParameterStore
    from danknn.data import get_dataset
    from danknn.training.trainer import Trainer, evaluate

    dataset = get_dataset("blobs", n_points=192, num_classes=3, seed=seed)
    store = ParameterStore([dataset.d_in, 12, 8, dataset.d_out])
    store.set_activation(store.num_layers - 1, "sigmoid")
    initialize(store, seed)
    with Trainer(store, workers=1, batch_size=batch, learning_rate=lr, legacy_overwrite=legacy) as trainer:
        trainer.run(dataset, epochs, seed)
    final = evaluate(store, dataset)
    return {"final_loss": final["loss"], "final_acc": final["accuracy"]}


def main(argv=None):
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))

    ap = argparse.ArgumentParser(description="Compare accumulated and legacy backprop on blobs")
    ap.add_argument("--seeds", nargs="+", type=int, default=[123, 124, 125])
    ap.add_argument("--epochs", type=int, default=10)
    ap.add_argument("--lr", type=float, default=0.3)
    ap.add_argument("--batch", type=int, default=8)
    ap.add_argument("--out", type=str, default=".artifacts/bench")
    args = ap.parse_args(argv)

    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)
    runs = []
    for mode, legacy in MODES.items():
        for s in args.seeds:
            r = _run_one(legacy, seed=s, epochs=args.epochs, lr=args.lr, batch=args.batch)
            runs.append({"mode": mode, "seed": s, **r})
    (out / "results.jsonl").write_text(
        "\n".join(json.dumps(x) for x in runs), encoding="utf-8"
    )

    agg = {}
    for mode in MODES:
        accs = [r["final_acc"] for r in runs if r["mode"] == mode]
        losses = [r["final_loss"] for r in runs if r["mode"] == mode]
        agg[mode] = {"n": len(accs), "accs": accs, "losses": losses}
    base_acc = mean(agg["accumulate"]["accs"])
    for mode in MODES:
        agg[mode]["delta_acc"] = mean(agg[mode]["accs"]) - base_acc

    csv_path = out / "bench_micro.csv"
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["mode", "seeds", "epochs", "final_loss_mu", "final_acc_mu", "delta_acc"])
        for mode in MODES:
            a = agg[mode]
            w.writerow(
                [
                    mode,
                    a["n"],
                    args.epochs,
                    f"{mean(a['losses']):.4f}",
                    f"{mean(a['accs']):.4f}",
                    f"{a['delta_acc']:.4f}",
                ]
            )

    md_path = out / "bench_micro.md"
    lines = ["### Micro-Benchmark: accumulated vs legacy hidden-layer gradients", ""]
    lines.append(
        f"- Seeds: `{args.seeds}`; Epochs: `{args.epochs}`; LR: `{args.lr}`; Batch: `{args.batch}`"
    )
    lines.append("")
    lines.append("| Mode | Final Loss (μ±σ) | Final Acc (μ±σ) | ΔAcc | Seeds |")
    lines.append("|---|---:|---:|---:|---:|")
    for mode in MODES:
        a = agg[mode]
        lines.append(
            f"| {mode.upper()} | {_fmt_mu_sigma(a['losses'])} | {_fmt_mu_sigma(a['accs'])} | "
            f"{a['delta_acc']:+.4f} | {a['n']} |"
        )
    md_path.write_text("\n".join(lines), encoding="utf-8")
    print("Wrote:", csv_path, md_path)


if __name__ == "__main__":
    main()
