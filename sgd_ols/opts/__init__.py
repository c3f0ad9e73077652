from sgd_ols.opts.optimizer import Optimizer
from sgd_ols.opts.sgdols import SGDOLS, sgdols
from sgd_ols.opts.state import SGDOLSState, init_state

__all__ = [
    "Optimizer",
    "SGDOLS",
    "SGDOLSState",
    "init_state",
    "sgdols",
]
