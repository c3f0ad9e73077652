from . import models
from . import opts
from . import preconditioners
from .exceptions import (
    DimensionMismatch,
    NumericalInstabilityWarning,
    ObjectiveEvaluationError,
)
from .opts import SGDOLS, SGDOLSState, init_state, sgdols

__all__ = [
    "models",
    "opts",
    "preconditioners",
    "DimensionMismatch",
    "NumericalInstabilityWarning",
    "ObjectiveEvaluationError",
    "SGDOLS",
    "SGDOLSState",
    "init_state",
    "sgdols",
]
__version__ = "0.1.0"
