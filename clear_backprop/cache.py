"""
Scratch buffers reused across the examples of a mini-batch.

A LayerCache holds everything one layer needs to process one example:
its forward output and its local gradients. A CacheArena owns one cache per
(layer, batch slot) pair so parallel workers never share a buffer, and keeps
them alive across epochs.
"""

import numpy as np
from typing import List, Optional, Sequence
import logging

from .errors import ShapeMismatchError

logger = logging.getLogger(__name__)


class LayerCache:
    """
    Per-example, per-layer buffers.

    Attributes:
        forward_output: Activated output, shape (units,).
        dw: Weight gradient, shape (input_size, units).
        db: Bias gradient, shape (units,).
        dx: Input gradient (local Jacobian), shape (input_size, units).
        dw_regularized: Regularization gradient, shape (input_size, units),
                        or None when the layer has no regularizer.
    """

    def __init__(self, input_size: int, units: int, with_regularization: bool = False):
        self.input_size = input_size
        self.units = units
        self.forward_output = np.zeros(units, dtype=float)
        self.dw = np.zeros((input_size, units), dtype=float)
        self.db = np.zeros(units, dtype=float)
        self.dx = np.zeros((input_size, units), dtype=float)
        self.dw_regularized: Optional[np.ndarray] = (
            np.zeros((input_size, units), dtype=float) if with_regularization else None
        )

    @property
    def shape(self):
        return (self.input_size, self.units)

    def check_shape(self, input_size: int, units: int) -> None:
        """Raises ShapeMismatchError unless the cache fits the given layer shape."""
        if (input_size, units) != self.shape:
            raise ShapeMismatchError(
                f"Layer cache shape {self.shape} does not match layer shape ({input_size}, {units})."
            )

    def __repr__(self):
        return (f"LayerCache(input_size={self.input_size}, units={self.units}, "
                f"regularized={self.dw_regularized is not None})")


class CacheArena:
    """
    Arena of LayerCaches indexed by (layer index, batch slot).

    Created for a fixed batch size; `ensure` rebuilds it only when the batch
    size or the layer shapes change.
    """

    def __init__(self, layers: Sequence, batch_size: int):
        self.batch_size = 0
        self._caches: List[List[LayerCache]] = []
        self._shapes = []
        self.ensure(layers, batch_size)

    def ensure(self, layers: Sequence, batch_size: int) -> bool:
        """
        Makes sure the arena matches `layers` and `batch_size`.

        Returns:
            True if the buffers were (re)allocated.
        """
        if batch_size <= 0:
            raise ValueError(f"Batch size must be positive, got {batch_size}.")
        shapes = [(layer.input_size, layer.units) for layer in layers]
        if batch_size == self.batch_size and shapes == self._shapes:
            return False

        self._caches = [
            [layer.create_cache() for _ in range(batch_size)]
            for layer in layers
        ]
        self._shapes = shapes
        self.batch_size = batch_size
        logger.debug(f"Allocated cache arena: {len(layers)} layers x {batch_size} slots")
        return True

    def get(self, layer_index: int, slot: int) -> LayerCache:
        return self._caches[layer_index][slot]

    def slot(self, slot: int) -> List[LayerCache]:
        """All layer caches of one batch slot, in layer order."""
        return [caches[slot] for caches in self._caches]

    def layer(self, layer_index: int) -> List[LayerCache]:
        """All batch-slot caches of one layer."""
        return self._caches[layer_index]

    @property
    def num_layers(self) -> int:
        return len(self._caches)

    def __repr__(self):
        return f"CacheArena(layers={self.num_layers}, batch_size={self.batch_size})"
