"""Core network engine for danknn."""

from . import activations, costs, errors, types
from .aggregate import apply
from .context import TrainingContext, create_context, destroy_context, get_input_gradient, train_step
from .inference import infer
from .initializers import initialize
from .store import ParameterStore, create_store, destroy_store, set_activation

__all__ = [
    "activations",
    "costs",
    "errors",
    "types",
    "ParameterStore",
    "TrainingContext",
    "apply",
    "create_context",
    "create_store",
    "destroy_context",
    "destroy_store",
    "get_input_gradient",
    "infer",
    "initialize",
    "set_activation",
    "train_step",
]
