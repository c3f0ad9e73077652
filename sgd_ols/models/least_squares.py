from typing import Optional

import torch

from .minibatch_generator import MinibatchGenerator
from .objective import Objective


class LeastSquares(Objective):
    """
    Ridge-regularized least squares,
    `f(w) = 1/(2n) ||x w - b||^2 + lambd/2 ||w||^2`.

    `evaluate` returns the loss and gradient on the next minibatch of `bg` rows,
    so repeated calls walk through shuffled epochs of the data. With `bg=None`
    every call uses the full data set.

    Attributes:
        x (torch.Tensor): Features of shape (n_samples, n_features).
        b (torch.Tensor): Targets of shape (n_samples,).
        lambd (float): Regularization parameter.
        n (int): Number of samples.
    """

    def __init__(
        self,
        x: torch.Tensor,
        b: torch.Tensor,
        lambd: Optional[float] = 0.0,
        bg: Optional[int] = None,
        generator: Optional[torch.Generator] = None,
    ):
        super().__init__(x.shape[1], x.device)
        self.x = x
        self.b = b
        self.lambd = lambd
        self.n = x.shape[0]
        self.bg = self.n if bg is None else min(bg, self.n)
        self.batches = MinibatchGenerator(self.n, self.bg, x.device, generator)

    def _loss_grad(self, w, idx=None):
        xb = self.x if idx is None else self.x[idx]
        bb = self.b if idx is None else self.b[idx]
        residual = xb @ w - bb
        loss = (
            0.5 * torch.dot(residual, residual) / xb.shape[0]
            + 0.5 * self.lambd * torch.dot(w, w)
        )
        grad = xb.T @ residual / xb.shape[0] + self.lambd * w
        return loss, grad

    def loss(self, w):
        return self._loss_grad(w)[0]

    def grad(self, w):
        return self._loss_grad(w)[1]

    def evaluate(self, w):
        if self.bg == self.n:
            return self._loss_grad(w)
        return self._loss_grad(w, next(self.batches))

    def solution(self) -> torch.Tensor:
        """Minimizer of the full objective, via a direct solve."""
        H = self.x.T @ self.x / self.n
        H.diagonal().add_(self.lambd)
        return torch.linalg.solve(H, self.x.T @ self.b / self.n)

    def compute_metrics(self, w):
        metrics_dict = super().compute_metrics(w)
        w_star = self.solution()
        metrics_dict["rel_dist"] = float(torch.norm(w - w_star) / torch.norm(w_star))
        return metrics_dict
