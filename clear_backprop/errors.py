"""Exception types raised by the network components."""


class NeuralNetworkError(Exception):
    """Base class for all errors raised by clear_backprop."""


class ConstructionError(NeuralNetworkError, ValueError):
    """A model, layer or regularizer was built with an invalid configuration."""


class ShapeMismatchError(NeuralNetworkError, ValueError):
    """An array does not have the shape its owner declared."""


class InvalidLabelError(NeuralNetworkError, ValueError):
    """A label lies outside the domain accepted by a loss function."""


class UnsupportedActivationError(NeuralNetworkError, NotImplementedError):
    """The requested activation exists as a type but has no implementation."""
