"""
Data helpers around the core engine: feature normalization, the small
synthetic data sets used by the examples and tests, and accuracy scoring.
"""

import numpy as np
from typing import Optional, Tuple
import logging

from .errors import ShapeMismatchError

logger = logging.getLogger(__name__)


class Normalization:
    """
    Per-feature standardization: (x - mean) / std.

    Call `adapt` on the training inputs first, then `forward` (or call the
    instance) on single vectors or batches.
    """

    def __init__(self, units: int, mean: Optional[np.ndarray] = None, std: Optional[np.ndarray] = None):
        self.units = int(units)
        self.mean = np.zeros(self.units) if mean is None else np.asarray(mean, dtype=float)
        self.std = np.ones(self.units) if std is None else np.asarray(std, dtype=float)
        if self.mean.shape != (self.units,) or self.std.shape != (self.units,):
            raise ShapeMismatchError(f"mean and std must have shape ({self.units},), "
                                     f"got {self.mean.shape} and {self.std.shape}")

    def adapt(self, X) -> 'Normalization':
        """Computes mean and population standard deviation of every feature."""
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[1] != self.units:
            raise ShapeMismatchError(f"Expected data of shape (num_samples, {self.units}), got {X.shape}")
        self.mean = X.mean(axis=0)
        std = X.std(axis=0)
        if np.any(std == 0):
            logger.warning(f"Zero variance in features {np.flatnonzero(std == 0).tolist()}; using std=1 there.")
            std = np.where(std == 0, 1.0, std)
        self.std = std
        return self

    def forward(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        if x.shape[-1] != self.units:
            raise ShapeMismatchError(f"Expected {self.units} features, got {x.shape[-1]}")
        return (x - self.mean) / self.std

    def __call__(self, x) -> np.ndarray:
        return self.forward(x)

    def __repr__(self):
        return f"Normalization(units={self.units})"


def load_coffee_data(examples: int = 400, seed: int = 2) -> Tuple[np.ndarray, np.ndarray]:
    """
    Synthetic coffee-roasting data set.

    Features are [temperature, duration] with temperature in [150, 285) and
    duration in [11.5, 15.5). A roast is good (label 1) when
    175 < t < 260, 12 < d < 15 and d <= -3/85 * t + 21.

    Returns:
        X of shape (examples, 2) and Y of shape (examples,).
    """
    rng = np.random.default_rng(seed)
    X = np.zeros((examples, 2))
    Y = np.zeros(examples)
    for i in range(examples):
        d = rng.random() * 4 + 11.5               # roasting duration
        t = rng.random() * (285 - 150) + 150      # temperature
        y_line = -3.0 / (260 - 175) * t + 21
        X[i] = (t, d)
        Y[i] = 1.0 if (175 < t < 260 and 12 < d < 15 and d <= y_line) else 0.0
    return X, Y


def load_linear_data() -> Tuple[np.ndarray, np.ndarray]:
    """Two points on y = 200 x + 100."""
    return np.array([[1.0], [2.0]]), np.array([300.0, 500.0])


def load_logistic_data() -> Tuple[np.ndarray, np.ndarray]:
    """Six points on a line, labelled 1 from x = 3 on."""
    return np.arange(6, dtype=float).reshape(-1, 1), np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0])


def binary_accuracy(Y, Y_hat, threshold: float = 0.5) -> float:
    """Fraction of predictions that match the 0/1 labels after thresholding."""
    Y = np.asarray(Y, dtype=float).reshape(-1)
    Y_hat = np.asarray(Y_hat, dtype=float).reshape(-1)
    if Y.shape != Y_hat.shape:
        raise ShapeMismatchError(f"Labels {Y.shape} and predictions {Y_hat.shape} differ in length.")
    if Y.size == 0:
        return 0.0
    predicted = (Y_hat > threshold).astype(float)
    return float(np.mean(predicted == Y))
