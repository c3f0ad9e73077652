from abc import ABC, abstractmethod


class Optimizer(ABC):
    """
    Abstract base class for optimizers. Defines the structure for optimizer classes
    that drive an objective from a starting point using stochastic gradients.

    Attributes:
        model: The objective to be minimized. Any object with an
            `evaluate(point)` method returning the value and gradient at `point`
            (see `sgd_ols.models.Objective`), or a plain callable doing the same.
        x (torch.Tensor): The point reported by the optimizer. Updated in place
            by `step()`.
        config (dict): Validated optimizer settings such as the learning rate
            and its decay.

    Methods:
        step(): Abstract method to perform a single optimization step. This method
            must be implemented by subclasses to define the specific optimization logic.
    """

    def __init__(self, model, x, config: dict):
        """
        Initializes the optimizer with an objective, a starting point and its settings.

        Args:
            model: The objective to be minimized.
            x (torch.Tensor): Initial point. Owned by the caller, but overwritten
                by every step.
            config (dict): Optimizer settings, already merged with their defaults.
        """
        self.model = model
        self.x = x
        self.config = config

    @abstractmethod
    def step(self):
        """
        Performs a single optimization step.

        This method should be implemented by subclasses to evaluate the objective,
        update `x` and return the objective value that was observed.
        """
        pass
