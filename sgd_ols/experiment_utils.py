import random
import warnings

import numpy as np
import torch
import yaml

from .models import LeastSquares, Quadratic
from .opts import SGDOLS

PROBLEM_TYPES = {"least_squares", "quadratic"}

# Validation rules for the experiment arguments
VALIDATION_RULES = {
    "least_squares": {
        "required": ["n", "p", "lambd"],
        "optional": ["bg", "noise"],
    },
    "quadratic": {
        "required": ["p", "cond"],
        "optional": ["noise"],
    },
}

OPT_ARGS = ["learning_rate", "gamma", "sgd_steps", "eps"]


def load_config(path):
    """
    Read experiment arguments from a YAML file.
    :param path: Path to the YAML file.
    :return: Dictionary of experiment arguments.
    """
    with open(path, "r") as file:
        return yaml.safe_load(file) or {}


def validate_experiment_args(experiment_args):
    """
    Validate the experiment arguments based on the problem type.
    :param experiment_args: Dictionary of experiment arguments.
    """
    # Validate max_time or max_iter
    if "max_time" not in experiment_args and "max_iter" not in experiment_args:
        raise ValueError("At least one of max_time or max_iter must be provided")

    problem = experiment_args.get("problem")
    if problem not in PROBLEM_TYPES:
        raise ValueError(f"Unknown problem type: {problem}")

    rules = VALIDATION_RULES[problem]
    for required_arg in rules["required"]:
        if required_arg not in experiment_args or experiment_args[required_arg] is None:
            raise ValueError(f"{required_arg} must be provided for {problem}")

    for optional_arg in rules["optional"] + OPT_ARGS:
        if optional_arg not in experiment_args or experiment_args[optional_arg] is None:
            warnings.warn(f"{optional_arg} is not provided for {problem}. Using default.")

    if experiment_args.get("log_freq", 1) < 1:
        raise ValueError("log_freq must be a positive integer")


def get_dtype(precision):
    if precision == "float32":
        return torch.float32
    elif precision == "float64":
        return torch.float64
    else:
        raise ValueError("Precision must be either 'float32' or 'float64'")


def set_random_seed(seed: int):
    """
    Set the random seed for reproducibility across NumPy, Python's random module,
    and PyTorch.

    This function ensures that the random number generation is
    consistent and reproducible by setting the same seed across different libraries.
    It also sets the seed for CUDA if a GPU is being used.

    Args:
        seed (int): The seed value to use for random number generation.
    """
    np.random.seed(seed)
    random.seed(seed)
    torch.manual_seed(seed)
    torch.cuda.manual_seed(seed)


def _get_spectrum(p, cond, dtype, device):
    # Eigenvalues spread geometrically between 1 / cond and 1
    return torch.logspace(-np.log10(cond), 0.0, p, dtype=dtype, device=device)


def get_quadratic(p, cond, noise, dtype, device):
    Q, _ = torch.linalg.qr(torch.randn(p, p, dtype=dtype, device=device))
    A = Q @ torch.diag(_get_spectrum(p, cond, dtype, device)) @ Q.T
    c = torch.randn(p, dtype=dtype, device=device)
    return Quadratic(A, c, noise_std=noise or 0.0)


def get_least_squares(n, p, lambd, bg, noise, dtype, device):
    x = torch.randn(n, p, dtype=dtype, device=device)
    w_true = torch.randn(p, dtype=dtype, device=device)
    b = x @ w_true
    if noise:
        b += noise * torch.randn(n, dtype=dtype, device=device)
    return LeastSquares(x, b, lambd=lambd, bg=bg)


def get_model(exp_args, dtype, device):
    if exp_args["problem"] == "least_squares":
        return get_least_squares(
            exp_args["n"],
            exp_args["p"],
            exp_args["lambd"],
            exp_args.get("bg"),
            exp_args.get("noise"),
            dtype,
            device,
        )
    elif exp_args["problem"] == "quadratic":
        return get_quadratic(
            exp_args["p"], exp_args["cond"], exp_args.get("noise"), dtype, device
        )


def get_opt(model, exp_args, dtype, device):
    x0 = torch.zeros(model.p, dtype=dtype, device=device)
    opt_params = {k: exp_args[k] for k in OPT_ARGS if exp_args.get(k) is not None}
    return SGDOLS(model, x0, **opt_params)
