"""Caller-side training driver: threaded trainer and config pipelines."""

from .pipelines import load_preset, presets, run_pipeline
from .trainer import RunResult, Trainer, evaluate, train

__all__ = ["RunResult", "Trainer", "evaluate", "train", "load_preset", "presets", "run_pipeline"]
