from .autograd import AutogradObjective
from .least_squares import LeastSquares
from .objective import Objective
from .quadratic import Quadratic

__all__ = ["AutogradObjective", "LeastSquares", "Objective", "Quadratic"]
