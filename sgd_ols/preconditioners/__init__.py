from sgd_ols.preconditioners.ols import OLSPreconditioner
from sgd_ols.preconditioners.preconditioner import Preconditioner

__all__ = ["OLSPreconditioner", "Preconditioner"]
