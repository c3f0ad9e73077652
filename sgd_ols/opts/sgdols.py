from typing import Optional

import torch

from .optimizer import Optimizer
from .state import SGDOLSState, init_state
from ._utils.general import (
    _evaluate,
    _get_lr,
    _polyak_average,
    _validate_config,
)


def sgdols(oracle, x: torch.Tensor, config: Optional[dict], state: SGDOLSState):
    """
    One step of SGD with an online OLS estimate of the inverse Hessian.

    The objective is evaluated at the working point, the working point takes a
    step preconditioned by the current curvature estimate, the caller's `x` is
    overwritten with the running average of all working points, and finally the
    observation (point, gradient) is folded into the curvature estimate.

    Args:
        oracle: An `Objective` or a callable; `evaluate(point)` / `oracle(point)`
            must return the objective value and its gradient at `point`. Both
            may be stochastic.
        x (torch.Tensor): Averaged point, overwritten in place. On the first
            call with a fresh state it also seeds the working point.
        config (dict, optional): Optimizer settings:
            - `learning_rate` (float, default 1.0): initial step size.
            - `gamma` (float in [0, 1), default 0.6): power of the step size decay
              `learning_rate / (1 + n) ** gamma`.
            - `sgd_steps` (int, default 0): number of initial calls that take a
              plain SGD step instead of the preconditioned one. With the default
              every call is preconditioned; a positive value reproduces the
              warm-up variant, which lets the regression see some points before
              its estimate is trusted.
            - `eps` (float, default 1e-8): Sherman-Morrison denominators smaller
              than this in magnitude cause the rank-one update to be skipped.
        state (SGDOLSState): Optimizer state, mutated in place. Pass a fresh
            `SGDOLSState()` on the first call of a run.

    Returns:
        tuple: `(x, fx)` where `fx` is the objective value at the working point
            *before* this call's update.

    Raises:
        DimensionMismatch: If `x` or the gradient disagrees with the state's size.
        ObjectiveEvaluationError: If the objective returns non-finite output. The
            state is left unmodified.
    """
    config = _validate_config(config)
    init_state(state, x, config["eps"])

    p = state.num_parameters
    precond = state.precond
    n_evals = state.eval_counter

    # Evaluate f(x) and df/dx at the working point
    fx, y = _evaluate(oracle, state.parameters_slow, p)
    precond.eps = config["eps"]

    with torch.no_grad():
        state.eval_counter += 1
        clr = _get_lr(config["learning_rate"], config["gamma"], n_evals)

        # The regressor is the point the gradient was observed at
        x_one = torch.cat([state.parameters_slow, state.parameters_slow.new_ones(1)])

        if state.eval_counter > config["sgd_steps"]:
            state.parameters_slow.sub_(precond.inv_lin_op(y), alpha=clr)
        else:
            state.parameters_slow.sub_(y, alpha=clr)

        _polyak_average(x, state.parameters_slow, state.eval_counter)

        precond.update(x_one, y, stacklevel=3)

    return x, fx


class SGDOLS(Optimizer):
    """
    Object interface to `sgdols`: holds the objective, the averaged point and
    the optimizer state across calls to `step`.
    """

    def __init__(
        self,
        model,
        x: torch.Tensor,
        learning_rate: Optional[float] = 1.0,
        gamma: Optional[float] = 0.60,
        sgd_steps: Optional[int] = 0,
        eps: Optional[float] = 1e-8,
    ):
        config = _validate_config(
            {
                "learning_rate": learning_rate,
                "gamma": gamma,
                "sgd_steps": sgd_steps,
                "eps": eps,
            }
        )
        super().__init__(model, x, config)
        self.state = init_state(SGDOLSState(), self.x, self.config["eps"])

    def step(self):
        self.x, fx = sgdols(self.model, self.x, self.config, self.state)
        return fx
