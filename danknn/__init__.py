"""danknn public API."""

from .core import activations, costs, types  # noqa: F401
from .core.activations import ACTIVATIONS, Activation
from .core.aggregate import apply
from .core.context import (
    TrainingContext,
    create_context,
    destroy_context,
    get_input_gradient,
    train_step,
)
from .core.costs import COSTS, Cost
from .core.errors import (
    AllocationError,
    DankNNError,
    FormatError,
    InvalidTopologyError,
    MismatchError,
    NetworkIOError,
    RangeError,
    ShapeError,
)
from .core.inference import infer
from .core.initializers import initialize
from .core.store import ParameterStore, create_store, destroy_store, set_activation
from .core.types import Topology, create_topology
from .io.netfile import dumps, load, loads, save

__version__ = "0.3.0"

__all__ = [
    "ACTIVATIONS",
    "COSTS",
    "Activation",
    "Cost",
    "Topology",
    "ParameterStore",
    "TrainingContext",
    "create_topology",
    "create_store",
    "set_activation",
    "initialize",
    "infer",
    "create_context",
    "train_step",
    "get_input_gradient",
    "apply",
    "save",
    "load",
    "dumps",
    "loads",
    "destroy_store",
    "destroy_context",
    "DankNNError",
    "InvalidTopologyError",
    "ShapeError",
    "RangeError",
    "MismatchError",
    "AllocationError",
    "NetworkIOError",
    "FormatError",
]
