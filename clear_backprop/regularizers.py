import numpy as np
from typing import Optional, Union
import logging

from .errors import ConstructionError

logger = logging.getLogger(__name__)


class KernelRegularizer:
    """Base class for penalties on a layer's weight matrix."""

    def loss(self, weights: np.ndarray) -> float:
        """Penalty added to the loss for the current weights."""
        raise NotImplementedError

    def regularize(self, dw_regularized: np.ndarray, weights: np.ndarray) -> np.ndarray:
        """Writes the penalty gradient for `weights` into `dw_regularized`."""
        raise NotImplementedError


class L2Regularizer(KernelRegularizer):
    """
    L2 (weight decay) penalty.

    Loss = 0.5 * lambda * sum(W^2)
    Gradient = lambda * W

    The gradient does not depend on the upstream derivative, so the layer
    adds it to its weight gradient after the chain rule has been applied.
    """

    def __init__(self, lam: float):
        if lam <= 0:
            raise ConstructionError(f"L2 regularization strength must be positive, got {lam}.")
        self.lam = float(lam)

    def loss(self, weights):
        return 0.5 * self.lam * float(np.sum(weights * weights))

    def regularize(self, dw_regularized, weights):
        np.multiply(weights, self.lam, out=dw_regularized)
        return dw_regularized

    def __repr__(self) -> str:
        return f"L2Regularizer(lam={self.lam})"


def get_regularizer(regularizer: Union[None, float, KernelRegularizer]) -> Optional[KernelRegularizer]:
    """
    Normalizes a regularizer argument.

    None means no penalty, a number is taken as an L2 strength, and a
    KernelRegularizer instance is returned unchanged.
    """
    if regularizer is None or isinstance(regularizer, KernelRegularizer):
        return regularizer
    if isinstance(regularizer, (int, float)):
        return L2Regularizer(regularizer)
    raise TypeError(f"Invalid regularizer type '{type(regularizer).__name__}'.")
