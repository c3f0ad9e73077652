class DimensionMismatch(ValueError):
    """Raised when a point or gradient does not match the optimizer state's size."""


class ObjectiveEvaluationError(RuntimeError):
    """Raised when the objective returns a non-finite value or gradient."""


class NumericalInstabilityWarning(RuntimeWarning):
    """
    Emitted when a Sherman-Morrison denominator is (near) zero or non-finite.

    The affected rank-one update is skipped for that call, so the optimizer
    state stays finite.
    """
