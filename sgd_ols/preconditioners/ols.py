import math
import warnings
from typing import Optional

import torch

from ..exceptions import NumericalInstabilityWarning
from .preconditioner import Preconditioner


def _is_degenerate(denom: float, eps: float) -> bool:
    return not math.isfinite(denom) or abs(denom) < eps


class OLSPreconditioner(Preconditioner):
    """
    Inverse-curvature estimate obtained from an online regression of gradients
    on parameters.

    Every observation `(x_one, y)` (an intercept-augmented point and the gradient
    seen there) is folded into a recursive least squares fit `y ~ B^T x_one`.
    `P` is the inverse of the regressor covariance (identity prior) and `B` the
    corresponding coefficients. `G` is kept equal to `inv(I + B[:p])`, the
    inverse of the linear block, through a second Sherman-Morrison update, so
    neither matrix is ever inverted explicitly. `Gt` mirrors `G^T`.

    Attributes:
        p (int): Parameter dimension.
        eps (float): Smallest admissible magnitude of a Sherman-Morrison
            denominator.
        P (torch.Tensor): (p + 1) x (p + 1) inverse covariance of the regressors.
        B (torch.Tensor): (p + 1) x p regression coefficients.
        G (torch.Tensor): p x p inverse curvature estimate.
        Gt (torch.Tensor): Transpose of `G`, updated alongside it.
        n_skipped (int): Number of rank-one updates skipped as unstable.
    """

    def __init__(
        self,
        p: int,
        device: torch.device,
        dtype: torch.dtype,
        eps: Optional[float] = 1e-8,
    ):
        super().__init__(device, dtype)
        self.p = p
        self.eps = eps
        self.n_skipped = 0

        self.P = torch.eye(p + 1, device=device, dtype=dtype)
        self.B = torch.zeros(p + 1, p, device=device, dtype=dtype)
        self.G = torch.eye(p, device=device, dtype=dtype)
        self.Gt = torch.eye(p, device=device, dtype=dtype)

    def _skip(self, which, denom, stacklevel):
        self.n_skipped += 1
        warnings.warn(
            f"Skipping the {which} rank-one update: denominator {denom:.3e} "
            f"is non-finite or below eps={self.eps:.1e}",
            NumericalInstabilityWarning,
            stacklevel=stacklevel + 1,
        )

    def update(
        self, x_one: torch.Tensor, y: torch.Tensor, stacklevel: int = 2
    ) -> bool:
        """
        Folds one observation into the regression and the inverse-curvature
        estimate.

        Args:
            x_one (torch.Tensor): Augmented regressor `[point; 1]` of length p + 1.
            y (torch.Tensor): Gradient observed at `point`, length p. Must not
                alias a buffer the caller reuses.
            stacklevel (int, optional): Stack level of the instability warning,
                counted from `update` as in `warnings.warn`. The default blames
                the caller of `update`.

        Returns:
            bool: False if any rank-one update had to be skipped.
        """
        P, B, G, Gt = self.P, self.B, self.G, self.Gt

        # Covariance downdate (recursive least squares)
        Px = P @ x_one
        a = 1.0 + float(torch.dot(x_one, Px))
        if _is_degenerate(a, self.eps):
            self._skip("covariance", a, stacklevel)
            return False
        alpha = 1.0 / a
        u = alpha * Px[: self.p]  # before P changes
        v = y - B.T @ x_one
        B.addr_(Px, v, alpha=alpha)
        P.addr_(Px, Px, alpha=-alpha)

        # Inverse-curvature downdate, mirrors the step above on G
        Gu = G @ u
        Gv = G.T @ v
        b = 1.0 + float(torch.dot(v, Gu))
        if _is_degenerate(b, self.eps):
            self._skip("inverse-curvature", b, stacklevel)
            return False
        beta = 1.0 / b
        G.addr_(Gu, Gv, alpha=-beta)
        Gt.addr_(Gv, Gu, alpha=-beta)
        return True

    def inv_lin_op(self, v: torch.Tensor) -> torch.Tensor:
        return 0.5 * (self.G @ v) + 0.5 * (self.Gt @ v)
