from abc import ABC, abstractmethod
from typing import Any
import torch


class Preconditioner(ABC):
    """
    Abstract base class for preconditioners used by the stochastic optimizers.

    A preconditioner is a linear operator applied to the gradient before the
    parameter step, typically an online estimate of the inverse Hessian. This
    class provides an interface for implementing custom preconditioners.

    Attributes:
        device (torch.device): The device (CPU or GPU) where computations
          will be performed.
        dtype (torch.dtype): The floating point type of the stored matrices.
    """

    def __init__(self, device: torch.device, dtype: torch.dtype):
        """
        Initializes the preconditioner.

        Args:
            device (torch.device): The device on which computations will be performed
                (e.g., torch.device('cpu') or torch.device('cuda')).
            dtype (torch.dtype): The floating point type of the stored matrices.
                Chosen by the caller; the preconditioner never consults torch's
                global default dtype.
        """
        self.device = device
        self.dtype = dtype

    @abstractmethod
    def update(self, *args: Any, **kwargs: Any):
        """
        Updates the preconditioner based on the provided arguments.

        This method is intended to adjust the preconditioner's internal state,
        usually with the newest observation made by the optimizer.

        Subclasses should specify the required arguments and define the update logic.
        """
        pass

    @abstractmethod
    def inv_lin_op(self, v: torch.Tensor) -> torch.Tensor:
        """
        Applies the inverse linear operator of the preconditioner to an input vector.

        Args:
            v (torch.Tensor): Input vector (usually a gradient) to which the
              inverse linear operator is applied.

        Returns:
            torch.Tensor: The preconditioned output vector.
        """
        pass
