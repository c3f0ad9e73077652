from typing import Callable

import torch

from .objective import Objective


class AutogradObjective(Objective):
    """Wraps a scalar torch function; gradients come from autograd."""

    def __init__(self, fn: Callable[[torch.Tensor], torch.Tensor], p, device=None):
        super().__init__(p, device)
        self.fn = fn

    def loss(self, w):
        return self.fn(w)

    def evaluate(self, w):
        with torch.enable_grad():
            w = w.detach().requires_grad_(True)
            fx = self.fn(w)
            (g,) = torch.autograd.grad(fx, w)
        return fx.detach(), g
