import numpy as np
from concurrent.futures import ThreadPoolExecutor
from itertools import repeat
from typing import Callable, Dict, List, Optional, Sequence, Union
import logging
import time

from .activations import Activation, Linear
from .cache import CacheArena
from .config import TrainingConfig, TrainingProgress
from .data import binary_accuracy
from .errors import ConstructionError, ShapeMismatchError
from .layer import Dense
from .losses import BinaryCrossEntropy, Loss, get_loss, sigmoid

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[TrainingProgress], None]
RandomSource = Union[None, int, np.random.Generator]


def log_progress(progress: TrainingProgress) -> None:
    """Default progress callback: one INFO line per signal."""
    logger.info(f"Epoch {progress.epoch}/{progress.epochs} - loss: {progress.loss:.5f} "
                f"- time: {progress.epoch_time:.2f}s")


class Model:
    """
    A feed-forward network made of a linear stack of Dense layers.

    Manages the forward pass, the per-example backward pass (chain rule
    across layers), mini-batch gradient averaging with parallel per-example
    workers, parameter updates, prediction and evaluation.
    """

    def __init__(self, layers: Sequence[Dense], rng: RandomSource = None,
                 max_workers: Optional[int] = None):
        """
        Initializes the model and verifies the topology.

        Args:
            layers: Dense layers in forward order. layers[i + 1].input_size must
                    equal layers[i].units.
            rng: Randomness for weight initialization: a seed, a numpy Generator,
                 or None for fresh entropy.
            max_workers: Default number of worker threads used by fit.

        Layers built without an explicit id are numbered by their position.

        Raises:
            ConstructionError: If the list is empty or adjacent layers do not chain.
        """
        layers = list(layers)
        self._verify_layers(layers)
        self._layers: List[Dense] = layers
        for i, layer in enumerate(self._layers):
            if layer.id is None:
                layer.id = i
        self.rng = np.random.default_rng(rng)
        self.max_workers = max_workers
        self._arena: Optional[CacheArena] = None

        # Training history tracking
        self.training_history: Dict[str, List] = {
            'epoch': [],
            'loss': [],
            'learning_rate': [],
            'batch_size': [],
            'time_per_epoch': []
        }

        sizes = [self._layers[0].input_size] + [layer.units for layer in self._layers]
        logger.info(f"Created model with architecture: {sizes}")
        logger.info(f"Layer activations: {[l.activation_fn.__class__.__name__ for l in self._layers]}")

    @classmethod
    def from_sizes(cls, layer_sizes: Sequence[int],
                   activations: Optional[Sequence[Union[str, Activation]]] = None,
                   **kwargs) -> 'Model':
        """
        Builds a model from a list of sizes, input dimension first.

        Example: [2, 3, 1] with ['sigmoid', 'sigmoid'] gives a 2-3-1 network.
        Activations default to 'linear' for every layer.
        """
        if len(layer_sizes) < 2:
            raise ConstructionError("Model must have at least an input and an output layer size.")
        num_layers = len(layer_sizes) - 1
        if activations is None:
            activations = ['linear'] * num_layers
        elif len(activations) != num_layers:
            raise ConstructionError(f"Number of activation functions ({len(activations)}) must match "
                                    f"number of layers ({num_layers}).")
        layers = [Dense(layer_sizes[i], layer_sizes[i + 1], activations[i], id=i)
                  for i in range(num_layers)]
        return cls(layers, **kwargs)

    @staticmethod
    def _verify_layers(layers: Sequence[Dense]) -> None:
        if not layers:
            raise ConstructionError("Model needs at least one layer.")
        previous_units = None
        for i, layer in enumerate(layers):
            if previous_units is not None and layer.input_size != previous_units:
                raise ConstructionError(
                    f"The input size of layer {i} ({layer.input_size}) does not match "
                    f"the previous layer's output size ({previous_units})."
                )
            previous_units = layer.units

    # --- Structure access ---

    @property
    def layers(self) -> List[Dense]:
        return list(self._layers)

    def get_layer(self, index: int) -> Dense:
        return self._layers[index]

    def __len__(self):
        return len(self._layers)

    @property
    def input_size(self) -> int:
        return self._layers[0].input_size

    @property
    def output_size(self) -> int:
        return self._layers[-1].units

    # --- Inference ---

    def predict(self, X) -> np.ndarray:
        """
        Generates predictions.

        Args:
            X: A single example of shape (input_size,) or a batch of shape
               (num_samples, input_size).

        Returns:
            Shape (output_size,) for a single example, (num_samples, output_size)
            for a batch. Every example is computed independently with freshly
            allocated buffers, so repeated calls give identical results.
        """
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            return self._predict_one(X)
        if X.ndim != 2:
            raise ShapeMismatchError(f"Input X must be a 1D or 2D array, got {X.ndim}D.")
        if X.shape[0] == 0:
            return np.zeros((0, self.output_size), dtype=float)
        return np.stack([self._predict_one(x) for x in X])

    def _predict_one(self, x: np.ndarray) -> np.ndarray:
        a = x
        for layer in self._layers:
            _, a = layer.forward(a)
        return a

    # --- Training ---

    def _check_loss_compatibility(self, loss_fn: Loss) -> None:
        last = self._layers[-1]
        if (isinstance(loss_fn, BinaryCrossEntropy) and loss_fn.from_logits
                and not isinstance(last.activation_fn, Linear)):
            raise ConstructionError(
                f"BinaryCrossEntropy(from_logits=True) needs a Linear output layer, "
                f"got {last.activation_fn.__class__.__name__}; the output would be "
                f"squashed twice."
            )

    def _compute_example(self, slot: int, x: np.ndarray, y: float, loss_fn: Loss) -> float:
        """
        Forward and backward pass for one example using its own arena slot.

        On return every layer cache of the slot holds dL/dW in dw and dL/db in
        db for this example. Only shared state read here: weights and biases.

        Returns:
            The example's loss, regularization penalties included.
        """
        caches = self._arena.slot(slot)

        # Forward: each layer writes its activation into its cache
        regularization_loss = 0.0
        a = x
        for layer, cache in zip(self._layers, caches):
            reg, a = layer.forward(a, cache.forward_output)
            regularization_loss += reg

        example_loss = float(np.sum(loss_fn.loss(y, a))) + regularization_loss

        # Loss derivative broadcast to the width of the output layer
        downstream = np.array(np.broadcast_to(loss_fn.derivative(y, a), (self.output_size,)), dtype=float)

        # Backward: local Jacobians times the incoming derivative, last layer first
        for i in range(len(self._layers) - 1, -1, -1):
            layer, cache = self._layers[i], caches[i]
            layer_input = x if i == 0 else caches[i - 1].forward_output
            layer.backward(layer_input, cache.forward_output, cache)
            cache.dw *= downstream
            cache.db *= downstream
            if cache.dw_regularized is not None:
                cache.dw += cache.dw_regularized
            downstream = cache.dx @ downstream

        return example_loss

    def _apply_gradients(self, batch_size: int, learning_rate: float) -> None:
        """Averages the slot gradients of a batch and updates every layer."""
        for i, layer in enumerate(self._layers):
            caches = self._arena.layer(i)[:batch_size]
            avg_dw = np.zeros_like(layer.weights)
            avg_db = np.zeros_like(layer.biases)
            for cache in caches:
                avg_dw += cache.dw
                avg_db += cache.db
            avg_dw /= batch_size
            avg_db /= batch_size
            layer.update(learning_rate, avg_dw, avg_db)

    def train_batch(self, X_batch: np.ndarray, Y_batch: np.ndarray, loss_fn: Loss,
                    learning_rate: float, executor: Optional[ThreadPoolExecutor] = None) -> float:
        """
        Trains the model on a single mini-batch.

        Per-example forward/backward passes run on `executor` (or inline when
        None); the gradients are then averaged and applied once.

        Returns:
            The summed loss of the batch.
        """
        n = len(X_batch)
        if self._arena is None or self._arena.batch_size < n:
            self._arena = CacheArena(self._layers, n)
        else:
            self._arena.ensure(self._layers, self._arena.batch_size)

        mapper = executor.map if executor is not None else map
        # Any exception from an example (e.g. InvalidLabelError) aborts the batch before the update
        losses = list(mapper(self._compute_example, range(n), X_batch, Y_batch, repeat(loss_fn)))

        self._apply_gradients(n, learning_rate)
        return float(sum(losses))

    def fit(
        self,
        X,
        Y,
        loss: Union[str, Loss] = "mse",
        epochs: int = 1,
        learning_rate: float = 0.01,
        batch_size: int = 32,
        report_every: int = 0,
        initialize_weights: bool = True,
        progress_callback: Optional[ProgressCallback] = None,
        config: Optional[TrainingConfig] = None,
    ) -> Dict[str, List]:
        """
        Trains the model with mini-batch gradient descent.

        Args:
            X: Training inputs (num_samples, input_size).
            Y: Scalar labels (num_samples,) or (num_samples, 1).
            loss: Loss identifier or Loss instance.
            epochs: Number of passes over the training set.
            learning_rate: Step size of the gradient-descent update.
            batch_size: Examples per mini-batch; the last batch may be shorter.
            report_every: How many progress signals to emit over the run (0 = none).
            initialize_weights: Re-draw weights from `self.rng` before training.
            progress_callback: Receives a TrainingProgress at each signal.
                               Defaults to logging an INFO line.
            config: A TrainingConfig; overrides the individual keyword arguments.

        Returns:
            The training history dictionary. It accumulates across calls; epoch
            numbers continue from the previous run.

        Raises:
            ShapeMismatchError: If X and Y sizes do not fit the model.
            ConstructionError: If the loss cannot be used with the output layer.
            InvalidLabelError: If a label is outside the loss function's domain.
        """
        if config is None:
            config = TrainingConfig(
                epochs=epochs,
                learning_rate=learning_rate,
                batch_size=batch_size,
                report_every=report_every,
                initialize_weights=initialize_weights,
                max_workers=self.max_workers,
            )
        loss_fn = get_loss(loss)
        self._check_loss_compatibility(loss_fn)

        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        if Y.ndim == 2 and Y.shape[1] == 1:
            Y = Y[:, 0]
        if X.ndim != 2 or X.shape[1] != self.input_size:
            raise ShapeMismatchError(f"X must have shape (num_samples, {self.input_size}), got {X.shape}.")
        if Y.ndim != 1 or Y.shape[0] != X.shape[0]:
            raise ShapeMismatchError(f"Number of samples in X ({X.shape[0]}) and Y ({Y.shape}) must match.")
        num_samples = X.shape[0]
        if num_samples == 0:
            raise ShapeMismatchError("Cannot fit on an empty training set.")

        batch_size = config.batch_size
        if batch_size > num_samples:
            logger.warning(f"Batch size ({batch_size}) is larger than training set size ({num_samples}). "
                           f"Setting batch size to {num_samples}.")
            batch_size = num_samples

        if config.initialize_weights:
            for layer in self._layers:
                layer.initialize_weights_for_training(self.rng)

        self._arena = CacheArena(self._layers, batch_size)
        report_epochs = config.report_epochs()
        callback = progress_callback if progress_callback is not None else log_progress

        logger.info(f"Training on {num_samples} samples for {config.epochs} epochs "
                    f"(batch_size={batch_size}, learning_rate={config.learning_rate}, loss={loss_fn!r}).")
        start_time = time.time()
        epoch_offset = len(self.training_history['epoch'])

        executor = None
        if config.max_workers != 1:
            executor = ThreadPoolExecutor(max_workers=config.max_workers, thread_name_prefix="clear_backprop")
        try:
            for epoch in range(config.epochs):
                epoch_start_time = time.time()
                epoch_loss = 0.0

                for start_idx in range(0, num_samples, batch_size):
                    end_idx = min(start_idx + batch_size, num_samples)
                    epoch_loss += self.train_batch(X[start_idx:end_idx], Y[start_idx:end_idx],
                                                   loss_fn, config.learning_rate, executor)

                epoch_loss /= num_samples
                epoch_time = time.time() - epoch_start_time

                self.training_history['epoch'].append(epoch_offset + epoch)
                self.training_history['loss'].append(epoch_loss)
                self.training_history['learning_rate'].append(config.learning_rate)
                self.training_history['batch_size'].append(batch_size)
                self.training_history['time_per_epoch'].append(epoch_time)

                if epoch in report_epochs:
                    callback(TrainingProgress(
                        epoch=epoch + 1,
                        epochs=config.epochs,
                        loss=epoch_loss,
                        elapsed=time.time() - start_time,
                        epoch_time=epoch_time,
                    ))
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        logger.info(f"Training finished in {time.time() - start_time:.2f}s.")
        return self.training_history

    # --- Evaluation and reporting ---

    def evaluate(self, X, Y, loss: Union[str, Loss] = "mse") -> Dict[str, float]:
        """
        Evaluates the model on the given data.

        Returns:
            {'loss': mean loss without regularization} plus 'accuracy' for
            binary cross-entropy (logit outputs go through the sigmoid first).

        Raises:
            ConstructionError: If the loss cannot be used with the output layer.
        """
        loss_fn = get_loss(loss)
        self._check_loss_compatibility(loss_fn)
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float).reshape(-1)
        predictions = self.predict(X)
        if len(Y) != len(predictions):
            raise ShapeMismatchError(f"Number of samples in X ({len(predictions)}) and Y ({len(Y)}) must match.")

        losses = [float(np.sum(loss_fn.loss(y, y_hat))) for y, y_hat in zip(Y, predictions)]
        metrics = {'loss': float(np.mean(losses)) if losses else 0.0}

        if isinstance(loss_fn, BinaryCrossEntropy):
            probabilities = predictions[:, 0]
            if loss_fn.from_logits:
                probabilities = sigmoid(probabilities)
            metrics['accuracy'] = binary_accuracy(Y, probabilities)
        return metrics

    def summary(self) -> str:
        """
        Generates a text summary of the model architecture and parameters.
        """
        summary_str = "\n" + "=" * 50 + "\n"
        summary_str += "Model Summary\n"
        summary_str += "=" * 50 + "\n"
        total_params = 0
        for layer in self._layers:
            layer_params = layer.weights.size + layer.biases.size
            total_params += layer_params
            summary_str += f"Layer {layer.id}: Dense\n"
            summary_str += f"  Input Shape: ({layer.input_size},)\n"
            summary_str += f"  Output Shape: ({layer.units},)\n"
            summary_str += f"  Activation: {layer.activation_fn.__class__.__name__}\n"
            summary_str += f"  Regularizer: {layer.kernel_regularizer!r}\n"
            summary_str += f"  Parameters: {layer_params}\n"
            summary_str += "-" * 50 + "\n"
        summary_str += f"Total Parameters: {total_params}\n"
        summary_str += "=" * 50 + "\n"
        return summary_str

    def dump_weights(self) -> str:
        """Current weights and biases of every layer, for diagnostics."""
        return "\n".join(layer.dump_weights() for layer in self._layers)

    def __str__(self):
        return self.dump_weights()

    def __repr__(self):
        inner = ",\n  ".join(repr(layer) for layer in self._layers)
        return f"Model(\n  {inner}\n)"
