"""Dense feed-forward networks trained with per-example backpropagation on NumPy."""

import logging

from .activations import (
    ACTIVATION_FUNCTIONS,
    Activation,
    LeakyReLU,
    Linear,
    ReLU,
    Sigmoid,
    Softmax,
    get_activation,
)
from .cache import CacheArena, LayerCache
from .config import TrainingConfig, TrainingProgress
from .data import Normalization, binary_accuracy, load_coffee_data, load_linear_data, load_logistic_data
from .errors import (
    ConstructionError,
    InvalidLabelError,
    NeuralNetworkError,
    ShapeMismatchError,
    UnsupportedActivationError,
)
from .layer import Dense
from .losses import BinaryCrossEntropy, Loss, MeanSquaredError, get_loss, sigmoid
from .network import Model
from .regularizers import KernelRegularizer, L2Regularizer

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "ACTIVATION_FUNCTIONS",
    "Activation",
    "BinaryCrossEntropy",
    "CacheArena",
    "ConstructionError",
    "Dense",
    "InvalidLabelError",
    "KernelRegularizer",
    "L2Regularizer",
    "LayerCache",
    "LeakyReLU",
    "Linear",
    "Loss",
    "MeanSquaredError",
    "Model",
    "NeuralNetworkError",
    "Normalization",
    "ReLU",
    "ShapeMismatchError",
    "Sigmoid",
    "Softmax",
    "TrainingConfig",
    "TrainingProgress",
    "UnsupportedActivationError",
    "binary_accuracy",
    "get_activation",
    "get_loss",
    "load_coffee_data",
    "load_linear_data",
    "load_logistic_data",
    "sigmoid",
]
