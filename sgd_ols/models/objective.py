from abc import ABC, abstractmethod
from typing import Dict, Tuple

import torch


class Objective(ABC):
    """
    Abstract base class for objectives minimized by the optimizers.

    An objective acts as the gradient oracle: `evaluate` returns the value and
    gradient at a point, possibly using only part of the data, so two calls at
    the same point may disagree. Subclasses must implement `evaluate` and
    `loss`; the latter gives the exact objective value used for reporting.

    Attributes:
        p (int): Dimension of the points the objective accepts.
        device (torch.device): Device on which to perform computations.
    """

    def __init__(self, p: int, device: torch.device) -> None:
        """
        Initialize the Objective.

        Args:
            p (int): Dimension of the points the objective accepts.
            device (torch.device): Device for computation.
        """
        self.p = p
        self.device = device

    @abstractmethod
    def evaluate(self, w: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Evaluate the (possibly stochastic) objective value and gradient.

        Args:
            w (torch.Tensor): Point of evaluation, of shape (p,).

        Returns:
            Tuple[torch.Tensor, torch.Tensor]: Objective value and gradient.
        """
        pass

    @abstractmethod
    def loss(self, w: torch.Tensor) -> torch.Tensor:
        """
        Exact (full data, noise free) objective value.

        Args:
            w (torch.Tensor): Point of evaluation.

        Returns:
            torch.Tensor: Scalar objective value.
        """
        pass

    def grad(self, w: torch.Tensor) -> torch.Tensor:
        """
        Exact gradient. Defaults to autograd through `loss`.

        Args:
            w (torch.Tensor): Point of evaluation.

        Returns:
            torch.Tensor: Gradient of `loss` at `w`.
        """
        with torch.enable_grad():
            w = w.detach().requires_grad_(True)
            (g,) = torch.autograd.grad(self.loss(w), w)
        return g

    def __call__(self, w: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        return self.evaluate(w)

    def compute_metrics(self, w: torch.Tensor) -> Dict[str, float]:
        """
        Compute metrics for logging at the point `w`.

        Args:
            w (torch.Tensor): Point at which to report, usually the averaged iterate.

        Returns:
            Dict[str, float]: Dictionary of metrics.
        """
        return {
            "train_loss": float(self.loss(w)),
            "grad_norm": float(torch.norm(self.grad(w))),
        }
