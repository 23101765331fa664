import numpy as np
from typing import Dict, Type, Union
import logging

from .errors import InvalidLabelError

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]


def sigmoid(z: ArrayLike) -> ArrayLike:
    """Numerically stable logistic function for scalars or arrays."""
    z = np.asarray(z, dtype=float)
    # exp(-|z|) never overflows; pick the algebraically equal branch per sign
    e = np.exp(-np.abs(z))
    result = np.where(z >= 0, 1.0 / (1.0 + e), e / (1.0 + e))
    return float(result) if result.ndim == 0 else result


class Loss:
    """
    Base class for loss functions.

    A loss compares a scalar label `y` with a prediction `y_hat` (a scalar,
    or the vector of final-layer outputs, in which case every output is
    compared with the same label).
    """

    name = "loss"

    def loss(self, y: float, y_hat: ArrayLike) -> ArrayLike:
        """Loss value(s) for the prediction."""
        raise NotImplementedError

    def derivative(self, y: float, y_hat: ArrayLike) -> ArrayLike:
        """Derivative of the loss with respect to the prediction."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MeanSquaredError(Loss):
    """
    Squared error with a one-half factor.

    Loss = (y_hat - y)^2 / 2
    Gradient (dL/dy_hat) = y_hat - y
    """

    name = "mse"

    def loss(self, y, y_hat):
        error = np.asarray(y_hat, dtype=float) - y
        return _as_output(error * error / 2.0)

    def derivative(self, y, y_hat):
        return _as_output(np.asarray(y_hat, dtype=float) - y)


class BinaryCrossEntropy(Loss):
    """
    Binary cross-entropy for labels in {0, 1}.

    Probability mode (`from_logits=False`), y_hat is a sigmoid output:
        Loss = -log(y_hat)                  if y == 1
               -log(1 - y_hat)              if y == 0
        Gradient = -1 / y_hat               if y == 1
                   1 / (1 - y_hat)          if y == 0
    y_hat is clipped to [eps, 1 - eps] to avoid log(0) and division by zero.

    Logit mode (`from_logits=True`), y_hat is an unbounded logit z:
        Loss = max(z, 0) - y * z + log(1 + exp(-|z|))
        Gradient = sigmoid(z) - y
    Use logit mode with a Linear output layer so the sigmoid is not applied
    twice.
    """

    name = "binary_cross_entropy"
    epsilon = 1e-15

    def __init__(self, from_logits: bool = False):
        self.from_logits = bool(from_logits)

    def _check_label(self, y: float) -> None:
        if y != 0.0 and y != 1.0:
            raise InvalidLabelError(f"Binary cross-entropy label must be 0 or 1, got {y!r}.")

    def loss(self, y, y_hat):
        self._check_label(y)
        y_hat = np.asarray(y_hat, dtype=float)
        if self.from_logits:
            z = y_hat
            return _as_output(np.maximum(z, 0.0) - y * z + np.log1p(np.exp(-np.abs(z))))

        p = np.clip(y_hat, self.epsilon, 1.0 - self.epsilon)
        if y == 1.0:
            return _as_output(-np.log(p))
        return _as_output(-np.log(1.0 - p))

    def derivative(self, y, y_hat):
        self._check_label(y)
        y_hat = np.asarray(y_hat, dtype=float)
        if self.from_logits:
            return _as_output(np.asarray(sigmoid(y_hat)) - y)

        p = np.clip(y_hat, self.epsilon, 1.0 - self.epsilon)
        if y == 1.0:
            return _as_output(-1.0 / p)
        return _as_output(1.0 / (1.0 - p))

    def __repr__(self) -> str:
        return f"BinaryCrossEntropy(from_logits={self.from_logits})"


def _as_output(values: np.ndarray) -> ArrayLike:
    # Scalars in, scalars out
    return float(values) if values.ndim == 0 else values


# Dictionary mapping loss_type strings to loss classes
LOSS_FUNCTIONS: Dict[str, Type[Loss]] = {
    "mse": MeanSquaredError,
    "mean_squared_error": MeanSquaredError,
    "binary_cross_entropy": BinaryCrossEntropy,
}


def get_loss(loss: Union[str, Loss], **kwargs) -> Loss:
    """
    Returns a Loss instance for a name or passes an instance through.

    Args:
        loss: Loss identifier ('mse', 'binary_cross_entropy') or a Loss instance.
        **kwargs: Constructor arguments, e.g. from_logits=True.

    Raises:
        ValueError: If the loss name is not recognized.
    """
    if isinstance(loss, Loss):
        return loss
    key = str(loss).lower()
    if key not in LOSS_FUNCTIONS:
        raise ValueError(f"Unsupported loss_type '{loss}'. "
                         f"Valid options: {list(LOSS_FUNCTIONS.keys())}")
    return LOSS_FUNCTIONS[key](**kwargs)
