import numpy as np
from typing import Dict, Optional, Tuple, Type
import logging

from .errors import UnsupportedActivationError

logger = logging.getLogger(__name__)

# Gradient triple produced by a backward call: (dw, db, dx)
Derivatives = Tuple[np.ndarray, np.ndarray, np.ndarray]


# --- Linear building blocks shared by every activation ---

def linear_forward(x: np.ndarray, weights: np.ndarray, biases: np.ndarray,
                   out: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Computes out = biases + x @ weights, writing into `out` when given.

    Args:
        x: Input vector of shape (input_size,).
        weights: Weight matrix of shape (input_size, units).
        biases: Bias vector of shape (units,).
        out: Optional pre-allocated buffer of shape (units,).

    Returns:
        The buffer holding the pre-activation values.
    """
    if out is None:
        out = np.empty(weights.shape[1], dtype=float)
    # Seed with the biases, then accumulate the matrix-vector product on top
    out[:] = biases
    out += x @ weights
    return out


def linear_derivative(x: np.ndarray, weights: np.ndarray, dw: np.ndarray,
                      db: np.ndarray, dx: np.ndarray) -> Derivatives:
    """
    Populates the local derivatives of z = b + x @ W.

    dz[u]/dW[i][u] = x[i], dz[u]/db[u] = 1 and dz[u]/dx[i] = W[i][u].
    Every buffer is overwritten; nothing is allocated.
    """
    dw[:, :] = x[:, np.newaxis]
    db.fill(1.0)
    dx[:, :] = weights
    return dw, db, dx


def apply_derivative_chain_rule(dchain: np.ndarray, dw: np.ndarray,
                                db: np.ndarray, dx: np.ndarray) -> Derivatives:
    """Scales dw, db and dx column-wise (per unit) by `dchain`, in place."""
    dw *= dchain
    db *= dchain
    dx *= dchain
    return dw, db, dx


# --- Activation strategies ---

class Activation:
    """
    Base class for all activation functions.

    Subclasses provide `apply` (in-place activation of the pre-activation
    buffer) and `derivative` (local derivative evaluated at the already
    activated output). `forward` and `backward` combine them with the linear
    part of a dense layer.
    """

    name = "activation"

    def apply(self, z: np.ndarray) -> np.ndarray:
        """Activates `z` in place and returns it."""
        raise NotImplementedError

    def derivative(self, o: np.ndarray) -> np.ndarray:
        """Local derivative dA/dZ evaluated at the activated output `o`."""
        raise NotImplementedError

    def forward(self, x: np.ndarray, weights: np.ndarray, biases: np.ndarray,
                out: Optional[np.ndarray] = None) -> np.ndarray:
        """Computes activation(biases + x @ weights) into `out`."""
        return self.apply(linear_forward(x, weights, biases, out))

    def backward(self, x: np.ndarray, weights: np.ndarray, biases: np.ndarray,
                 o: np.ndarray, dw: np.ndarray, db: np.ndarray, dx: np.ndarray) -> Derivatives:
        """
        Computes the local Jacobians of the activated output.

        The linear derivative is written first, then scaled exactly once by
        the activation derivative at `o`.

        Args:
            x: Input vector of shape (input_size,).
            weights: Weight matrix of shape (input_size, units).
            biases: Bias vector of shape (units,). Only its shape matters here.
            o: Activated output of the forward pass, shape (units,).
            dw: Buffer of shape (input_size, units) for dA/dW.
            db: Buffer of shape (units,) for dA/db.
            dx: Buffer of shape (input_size, units) for dA/dx.

        Returns:
            The (dw, db, dx) buffers.
        """
        linear_derivative(x, weights, dw, db, dx)
        return apply_derivative_chain_rule(self.derivative(o), dw, db, dx)

    def __call__(self, z: np.ndarray) -> np.ndarray:
        return self.apply(np.array(z, dtype=float))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Linear(Activation):
    """Linear activation function (identity).

    Mathematical form:
        forward: f(x) = x
        backward: f'(x) = 1
    """

    name = "linear"

    def apply(self, z: np.ndarray) -> np.ndarray:
        return z

    def derivative(self, o: np.ndarray) -> np.ndarray:
        return np.ones_like(o)

    def backward(self, x, weights, biases, o, dw, db, dx):
        # Multiplying by ones is a no-op, so the chain rule step is skipped
        return linear_derivative(x, weights, dw, db, dx)


class Sigmoid(Activation):
    """Sigmoid activation function.

    Mathematical form:
        forward: f(x) = 1 / (1 + e^-x)
        backward: f'(x) = f(x) * (1 - f(x))

    `saturation` optionally clamps the pre-activation to [-T, T] so the
    output never saturates to exactly 0 or 1. Without it the input is only
    clipped to +-500 to keep exp() finite.
    """

    name = "sigmoid"
    overflow_limit = 500.0

    def __init__(self, saturation: Optional[float] = None):
        if saturation is not None and saturation <= 0:
            raise ValueError(f"Sigmoid saturation must be positive, got {saturation}")
        self.saturation = saturation

    def apply(self, z: np.ndarray) -> np.ndarray:
        limit = self.saturation if self.saturation is not None else self.overflow_limit
        np.clip(z, -limit, limit, out=z)
        np.negative(z, out=z)
        np.exp(z, out=z)
        z += 1.0
        np.reciprocal(z, out=z)
        return z

    def derivative(self, o: np.ndarray) -> np.ndarray:
        return o * (1.0 - o)

    def __repr__(self) -> str:
        if self.saturation is None:
            return "Sigmoid()"
        return f"Sigmoid(saturation={self.saturation})"


class ReLU(Activation):
    """Rectified Linear Unit activation function.

    Mathematical form:
        forward: f(x) = max(0, x)
        backward: f'(x) = 1 if x > 0 else 0
    """

    name = "relu"

    def apply(self, z: np.ndarray) -> np.ndarray:
        np.maximum(z, 0.0, out=z)
        return z

    def derivative(self, o: np.ndarray) -> np.ndarray:
        return np.where(o > 0, 1.0, 0.0)


class LeakyReLU(Activation):
    """Leaky ReLU activation function.

    Mathematical form:
        forward: f(x) = x if x > 0 else alpha * x
        backward: f'(x) = 1 if x > 0 else alpha

    The sign of the output matches the sign of the input for any positive
    alpha, so the derivative can be read off the activated output.
    """

    name = "leaky_relu"

    def __init__(self, alpha: float = 0.01):
        if alpha <= 0:
            raise ValueError(f"LeakyReLU alpha must be positive, got {alpha}")
        self.alpha = alpha

    def apply(self, z: np.ndarray) -> np.ndarray:
        np.multiply(z, self.alpha, out=z, where=z <= 0)
        return z

    def derivative(self, o: np.ndarray) -> np.ndarray:
        return np.where(o > 0, 1.0, self.alpha)

    def __repr__(self) -> str:
        return f"LeakyReLU(alpha={self.alpha})"


class Softmax(Activation):
    """Softmax placeholder.

    Softmax couples every unit of the layer, which the per-unit derivative
    scheme used here cannot express. It can be named when building a layer,
    but any forward or backward call fails.
    """

    name = "softmax"

    def apply(self, z: np.ndarray) -> np.ndarray:
        raise UnsupportedActivationError("Softmax activation is not supported.")

    def derivative(self, o: np.ndarray) -> np.ndarray:
        raise UnsupportedActivationError("Softmax activation is not supported.")

    def forward(self, x, weights, biases, out=None):
        raise UnsupportedActivationError("Softmax activation is not supported.")

    def backward(self, x, weights, biases, o, dw, db, dx):
        raise UnsupportedActivationError("Softmax activation is not supported.")


# Dictionary mapping activation function names to their classes
ACTIVATION_FUNCTIONS: Dict[str, Type[Activation]] = {
    'linear': Linear,
    'sigmoid': Sigmoid,
    'relu': ReLU,
    'leaky_relu': LeakyReLU,
    'softmax': Softmax,
}


def get_activation(name: str, **kwargs) -> Activation:
    """Factory function to get an activation function instance by name.

    Args:
        name: Name of the activation function (case-insensitive).
        **kwargs: Additional arguments for the activation's constructor
                  (e.g. 'alpha' for LeakyReLU, 'saturation' for Sigmoid).

    Returns:
        An instance of the requested Activation class.

    Raises:
        ValueError: If the activation function name is not recognized.
    """
    name_lower = name.lower().replace('leakyrelu', 'leaky_relu')
    if name_lower not in ACTIVATION_FUNCTIONS:
        raise ValueError(
            f"Unknown activation function '{name}'. "
            f"Available functions: {list(ACTIVATION_FUNCTIONS.keys())}"
        )
    logger.debug(f"Creating activation '{name_lower}' with {kwargs}")
    return ACTIVATION_FUNCTIONS[name_lower](**kwargs)
