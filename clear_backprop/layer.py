import numpy as np
from typing import Optional, Tuple, Union
import logging

from .activations import Activation, Sigmoid, get_activation
from .cache import LayerCache
from .errors import ConstructionError, ShapeMismatchError
from .regularizers import KernelRegularizer, get_regularizer

logger = logging.getLogger(__name__)


class Dense:
    """
    A fully connected layer processing one example at a time.

    Each unit computes a weighted sum of the inputs, adds its bias and applies
    the activation function. Intermediate values are not stored on the layer:
    forward writes into a caller-supplied buffer and backward writes into a
    LayerCache, so one layer can serve many examples concurrently.

    Key Attributes:
        weights (np.ndarray): Weight matrix of shape (input_size, units). Row i
                              holds the weights from input feature i to every unit.
        biases (np.ndarray): Bias vector of shape (units,).
        activation_fn (Activation): Activation applied to the weighted sum plus bias.
        kernel_regularizer (KernelRegularizer | None): Optional weight penalty.
    """

    def __init__(
        self,
        input_size: int,
        units: int,
        activation: Union[str, Activation, None] = 'linear',
        weights: Optional[np.ndarray] = None,  # Expected shape (input_size, units)
        biases: Optional[np.ndarray] = None,   # Expected shape (units,)
        kernel_regularizer: Union[None, float, KernelRegularizer] = None,
        id: Optional[int] = None,
    ):
        """
        Initializes the layer with zero weights and biases.

        Args:
            input_size: Number of input features (size of the previous layer).
            units: Number of units (outputs) of this layer.
            activation: Activation function identifier (e.g. 'relu', 'sigmoid')
                        or an Activation instance. Defaults to 'linear'.
            weights: Optional initial weight matrix, shape (input_size, units).
            biases: Optional initial bias vector, shape (units,).
            kernel_regularizer: Optional regularizer, or a float taken as an L2 strength.
            id: An identifier for the layer (for logging/debugging). When None,
                the owning Model assigns the layer's position.
        """
        if input_size <= 0 or units <= 0:
            raise ConstructionError(
                f"Layer {id}: input_size and units must be positive, got ({input_size}, {units})."
            )
        self.input_size = int(input_size)
        self.units = int(units)
        self.id = id

        if isinstance(activation, Activation):
            self.activation_fn = activation
        elif activation is None:
            self.activation_fn = get_activation('linear')
        else:
            self.activation_fn = get_activation(activation)

        self.kernel_regularizer = get_regularizer(kernel_regularizer)

        self.weights = np.zeros((self.input_size, self.units), dtype=float)
        self.biases = np.zeros(self.units, dtype=float)
        if weights is not None:
            self.set_weights(weights)
        if biases is not None:
            self.set_biases(biases)

        logger.debug(
            f"Layer #{self.id} created: input_size={self.input_size}, units={self.units}, "
            f"activation={self.activation_fn.__class__.__name__}, "
            f"regularizer={self.kernel_regularizer!r}"
        )

    # --- Parameter access ---

    def set_weights(self, weights) -> None:
        """Copies `weights` in; the shape must be (input_size, units)."""
        weights = np.asarray(weights, dtype=float)
        if weights.shape != self.weights.shape:
            raise ShapeMismatchError(
                f"Layer {self.id}: weights shape {weights.shape} does not match "
                f"expected shape {self.weights.shape} (input_size, units)."
            )
        self.weights[...] = weights

    def set_biases(self, biases) -> None:
        """Copies `biases` in; the shape must be (units,)."""
        biases = np.asarray(biases, dtype=float)
        if biases.shape != self.biases.shape:
            raise ShapeMismatchError(
                f"Layer {self.id}: biases shape {biases.shape} does not match "
                f"expected shape {self.biases.shape} (units,)."
            )
        self.biases[...] = biases

    def set_weights_and_biases(self, weights, biases) -> None:
        # Validate both before mutating either
        weights = np.asarray(weights, dtype=float)
        biases = np.asarray(biases, dtype=float)
        if weights.shape != self.weights.shape or biases.shape != self.biases.shape:
            raise ShapeMismatchError(
                f"Layer {self.id}: got weights {weights.shape} and biases {biases.shape}, "
                f"expected {self.weights.shape} and {self.biases.shape}."
            )
        self.weights[...] = weights
        self.biases[...] = biases

    def get_weights(self) -> Tuple[np.ndarray, np.ndarray]:
        """Returns copies of the current weights and biases."""
        return self.weights.copy(), self.biases.copy()

    def initialize_weights_for_training(self, rng: Optional[np.random.Generator] = None) -> None:
        """
        Draws fresh weights from a bounded uniform distribution.

        The bound is sqrt(1 / input_size) (Xavier) for sigmoid layers and
        sqrt(2 / input_size) (He) otherwise. Biases are reset to zero.

        Args:
            rng: Source of randomness; a seeded Generator makes this deterministic.
        """
        rng = rng if rng is not None else np.random.default_rng()
        if isinstance(self.activation_fn, Sigmoid):
            limit = np.sqrt(1.0 / self.input_size)
            scheme = "Xavier"
        else:
            limit = np.sqrt(2.0 / self.input_size)
            scheme = "He"
        self.weights[...] = rng.uniform(-limit, limit, size=self.weights.shape)
        self.biases.fill(0.0)
        logger.debug(f"Layer #{self.id}: Initializing weights with {scheme} uniform ({limit:.4f}).")

    # --- Computation ---

    def regularization_loss(self) -> float:
        if self.kernel_regularizer is None:
            return 0.0
        return self.kernel_regularizer.loss(self.weights)

    def forward(self, x: np.ndarray, out: Optional[np.ndarray] = None) -> Tuple[float, np.ndarray]:
        """
        Performs the forward pass for a single example.

        Args:
            x: Input vector of shape (input_size,).
            out: Optional buffer of shape (units,) receiving the activations.
                 A new array is allocated when omitted.

        Returns:
            Tuple of (regularization loss of the current weights, activations).

        Raises:
            ShapeMismatchError: If x or out have the wrong shape.
        """
        x = np.asarray(x, dtype=float)
        if x.shape != (self.input_size,):
            raise ShapeMismatchError(f"Layer {self.id}: Expected input shape ({self.input_size},), got {x.shape}")
        if out is not None and out.shape != (self.units,):
            raise ShapeMismatchError(f"Layer {self.id}: Expected output buffer shape ({self.units},), got {out.shape}")

        a = self.activation_fn.forward(x, self.weights, self.biases, out)
        return self.regularization_loss(), a

    def backward(self, x: np.ndarray, o: np.ndarray, cache: LayerCache) -> None:
        """
        Fills `cache` with the local derivatives of this layer's output.

        After the call cache.dw, cache.db and cache.dx hold dA/dW, dA/db and
        dA/dx (activation derivative already applied), and cache.dw_regularized
        holds the penalty gradient when the layer is regularized. The upstream
        derivative is not applied here; the model does that.

        Args:
            x: Input vector the forward pass used, shape (input_size,).
            o: Activated output of that forward pass, shape (units,).
            cache: Buffers sized for this layer.
        """
        cache.check_shape(self.input_size, self.units)
        self.activation_fn.backward(x, self.weights, self.biases, o, cache.dw, cache.db, cache.dx)
        if self.kernel_regularizer is not None:
            if cache.dw_regularized is None:
                raise ShapeMismatchError(f"Layer {self.id}: cache has no regularization buffer.")
            self.kernel_regularizer.regularize(cache.dw_regularized, self.weights)

    def create_cache(self) -> LayerCache:
        """Allocates a LayerCache sized to this layer."""
        return LayerCache(self.input_size, self.units,
                          with_regularization=self.kernel_regularizer is not None)

    def update(self, learning_rate: float, avg_dw: np.ndarray, avg_db: np.ndarray) -> None:
        """Gradient-descent step: W -= lr * dW, b -= lr * db."""
        self.weights -= learning_rate * avg_dw
        self.biases -= learning_rate * avg_db

    # --- Reporting ---

    def summary(self) -> str:
        """Returns a string summary of the layer's configuration."""
        params = self.weights.size + self.biases.size
        return (
            f"Layer Summary (id={self.id}):\n"
            f"  Type: Dense\n"
            f"  Input size: {self.input_size}\n"
            f"  Units: {self.units}\n"
            f"  Activation: {self.activation_fn.__class__.__name__}\n"
            f"  Regularizer: {self.kernel_regularizer!r}\n"
            f"  Weights shape: {self.weights.shape}\n"
            f"  Parameters: {params:,} parameters\n"
        )

    def dump_weights(self) -> str:
        """Human-readable listing of weights (one row per input) and biases."""
        rows = "\n".join(f"    [{', '.join(f'{w:.6g}' for w in row)}]" for row in self.weights)
        biases = ", ".join(f"{b:.6g}" for b in self.biases)
        return (f"Layer {self.id} ({self.activation_fn.__class__.__name__}, "
                f"{self.input_size} -> {self.units})\n"
                f"  weights:\n{rows}\n"
                f"  biases: [{biases}]")

    def __repr__(self):
        return (f"Dense(id={self.id}, input_size={self.input_size}, "
                f"units={self.units}, "
                f"activation={self.activation_fn.__class__.__name__})")
