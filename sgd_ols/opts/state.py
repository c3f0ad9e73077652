from typing import Optional

import torch

from ..exceptions import DimensionMismatch
from ..preconditioners.ols import OLSPreconditioner


class SGDOLSState:
    """
    Persistent state of the SGD-OLS optimizer.

    A fresh instance is empty; `init_state` fills it on the first call and it is
    mutated in place by every later call. Reuse one instance per optimization
    run and do not share it between threads.

    Attributes:
        eval_counter (int): Number of objective evaluations performed.
        num_parameters (int): Parameter dimension p.
        parameters_slow (torch.Tensor): Working point, i.e. the iterate before
            Polyak averaging.
        precond (OLSPreconditioner): Holds the regression and curvature matrices.
    """

    def __init__(self):
        self.eval_counter: Optional[int] = None
        self.num_parameters: Optional[int] = None
        self.parameters_slow: Optional[torch.Tensor] = None
        self.precond: Optional[OLSPreconditioner] = None

    def _get_matrix(self, name):
        return None if self.precond is None else getattr(self.precond, name)

    @property
    def P(self) -> Optional[torch.Tensor]:
        return self._get_matrix("P")

    @property
    def B(self) -> Optional[torch.Tensor]:
        return self._get_matrix("B")

    @property
    def G(self) -> Optional[torch.Tensor]:
        return self._get_matrix("G")

    @property
    def Gt(self) -> Optional[torch.Tensor]:
        return self._get_matrix("Gt")

    @property
    def n_unstable(self) -> int:
        return 0 if self.precond is None else self.precond.n_skipped

    def __repr__(self):
        return (
            f"{type(self).__name__}(eval_counter={self.eval_counter}, "
            f"num_parameters={self.num_parameters}, n_unstable={self.n_unstable})"
        )


def init_state(
    state: SGDOLSState, x: torch.Tensor, eps: Optional[float] = 1e-8
) -> SGDOLSState:
    """
    Lazily initializes the absent fields of `state` from the initial point `x`.

    Fields that already exist are left untouched, so the same state can be
    passed to any number of calls.

    Args:
        state (SGDOLSState): State to initialize in place.
        x (torch.Tensor): One-dimensional initial point. Its dtype and device are
            used for every tensor created here.
        eps (float, optional): Denominator threshold handed to a newly created
            preconditioner.

    Returns:
        SGDOLSState: The same `state`.

    Raises:
        TypeError: If `x` is not a floating point tensor.
        DimensionMismatch: If `x` is not a vector or its length disagrees with
            a previously initialized state.
    """
    if not x.is_floating_point():
        raise TypeError(f"Expected a floating point tensor, got dtype {x.dtype}")
    if x.dim() != 1:
        raise DimensionMismatch(f"Expected a 1-D point, got shape {tuple(x.shape)}")
    if state.num_parameters is not None and state.num_parameters != x.numel():
        raise DimensionMismatch(
            f"State was created for {state.num_parameters} parameters, "
            f"got a point with {x.numel()}"
        )

    if state.eval_counter is None:
        state.eval_counter = 0
    if state.num_parameters is None:
        state.num_parameters = x.numel()
    if state.precond is None:
        state.precond = OLSPreconditioner(
            state.num_parameters, device=x.device, dtype=x.dtype, eps=eps
        )
    if state.parameters_slow is None:
        state.parameters_slow = x.detach().clone()

    return state
