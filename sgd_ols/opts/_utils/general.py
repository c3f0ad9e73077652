import numbers

import torch

from ...exceptions import DimensionMismatch, ObjectiveEvaluationError

DEFAULT_CONFIG = {
    "learning_rate": 1.0,
    "gamma": 0.60,
    "sgd_steps": 0,
    "eps": 1e-8,
}


def _validate_config(config):
    """
    Merge `config` with the defaults and check every value.
    :param config: Dictionary of optimizer settings, or None.
    :return: A new dictionary holding every setting.
    """
    config = {} if config is None else config
    unknown = set(config) - set(DEFAULT_CONFIG)
    if unknown:
        raise ValueError(f"Unknown optimizer settings: {sorted(unknown)}")

    merged = DEFAULT_CONFIG | {k: v for k, v in config.items() if v is not None}

    for key in ["learning_rate", "gamma", "eps"]:
        if isinstance(merged[key], bool) or not isinstance(merged[key], numbers.Real):
            raise ValueError(f"{key} must be a real number, got {merged[key]!r}")

    if not merged["learning_rate"] > 0:
        raise ValueError("learning_rate must be positive")
    if not 0 <= merged["gamma"] < 1:
        raise ValueError("gamma must lie in [0, 1)")
    if (
        isinstance(merged["sgd_steps"], bool)
        or not isinstance(merged["sgd_steps"], int)
        or merged["sgd_steps"] < 0
    ):
        raise ValueError("sgd_steps must be a non-negative integer")
    if not merged["eps"] > 0:
        raise ValueError("eps must be positive")

    return merged


def _get_lr(lr, gamma, n_evals):
    return lr / ((1.0 + n_evals) ** gamma)


def _evaluate(oracle, point, p):
    # Accept both Objective instances and plain callables
    evaluate = oracle.evaluate if hasattr(oracle, "evaluate") else oracle
    fx, dfdx = evaluate(point.clone())

    dfdx = torch.as_tensor(dfdx, dtype=point.dtype, device=point.device)
    if dfdx.numel() != p:
        raise DimensionMismatch(
            f"Objective returned a gradient with {dfdx.numel()} entries, expected {p}"
        )
    if not bool(torch.isfinite(torch.as_tensor(fx)).all()):
        raise ObjectiveEvaluationError(f"Objective value is not finite: {fx}")
    if not bool(torch.isfinite(dfdx).all()):
        raise ObjectiveEvaluationError("Objective gradient has non-finite entries")

    # Copy so a reused gradient buffer cannot alias the regression target
    return fx, dfdx.detach().reshape(p).clone()


def _polyak_average(x, parameters_slow, k):
    x.mul_((k - 1) / k)
    x.add_(parameters_slow, alpha=1 / k)
