from typing import Optional

import torch

from .objective import Objective


class Quadratic(Objective):
    """
    `f(w) = 1/2 w^T A w + c^T w` with gradient `A w + c`.

    With `noise_std > 0` the gradient returned by `evaluate` is perturbed by
    isotropic Gaussian noise, which makes the oracle stochastic while `loss`
    and `grad` stay exact.
    """

    def __init__(
        self,
        A: torch.Tensor,
        c: Optional[torch.Tensor] = None,
        noise_std: Optional[float] = 0.0,
        generator: Optional[torch.Generator] = None,
    ):
        super().__init__(A.shape[0], A.device)
        self.A = A
        self.c = torch.zeros_like(A[0]) if c is None else c
        self.noise_std = noise_std
        self.generator = generator

    def loss(self, w):
        return 0.5 * torch.dot(w, self.A @ w) + torch.dot(self.c, w)

    def grad(self, w):
        return self.A @ w + self.c

    def evaluate(self, w):
        g = self.grad(w)
        if self.noise_std > 0:
            noise = torch.randn(
                g.shape, generator=self.generator, dtype=g.dtype, device="cpu"
            )
            g = g + self.noise_std * noise.to(g.device)
        return self.loss(w), g
