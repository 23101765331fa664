"""Tests for L2 regularization and the cache arena."""

import numpy as np
import pytest

from clear_backprop import CacheArena, ConstructionError, Dense, L2Regularizer, LayerCache, ShapeMismatchError
from clear_backprop.regularizers import get_regularizer


class TestL2Regularizer:
    def test_loss(self):
        w = np.array([[0.5], [-0.5], [2.0]])
        assert L2Regularizer(0.1).loss(w) == pytest.approx(0.5 * 0.1 * (0.25 + 0.25 + 4.0))

    def test_regularize_writes_buffer(self):
        w = np.array([[0.5, 1.0], [-0.5, 0.0]])
        buf = np.full_like(w, 7.0)
        L2Regularizer(0.1).regularize(buf, w)
        assert np.allclose(buf, 0.1 * w)

    @pytest.mark.parametrize("lam", [0.0, -0.1])
    def test_non_positive_strength(self, lam):
        with pytest.raises(ConstructionError):
            L2Regularizer(lam)

    def test_get_regularizer(self):
        assert get_regularizer(None) is None
        assert isinstance(get_regularizer(0.5), L2Regularizer)
        reg = L2Regularizer(1.0)
        assert get_regularizer(reg) is reg
        with pytest.raises(TypeError):
            get_regularizer("l2")


class TestLayerCache:
    def test_buffer_shapes(self):
        cache = LayerCache(3, 2)
        assert cache.forward_output.shape == (2,)
        assert cache.dw.shape == (3, 2)
        assert cache.db.shape == (2,)
        assert cache.dx.shape == (3, 2)
        assert cache.dw_regularized is None

    def test_regularization_buffer(self):
        assert LayerCache(3, 2, with_regularization=True).dw_regularized.shape == (3, 2)

    def test_check_shape(self):
        cache = LayerCache(3, 2)
        cache.check_shape(3, 2)
        with pytest.raises(ShapeMismatchError):
            cache.check_shape(2, 3)

    def test_layer_creates_matching_cache(self):
        layer = Dense(4, 3, 'relu', kernel_regularizer=0.1)
        cache = layer.create_cache()
        assert cache.shape == (4, 3)
        assert cache.dw_regularized is not None


class TestCacheArena:
    @pytest.fixture
    def layers(self):
        return [Dense(2, 3, 'sigmoid'), Dense(3, 1, 'linear')]

    def test_one_cache_per_layer_and_slot(self, layers):
        arena = CacheArena(layers, 4)
        assert arena.num_layers == 2
        assert arena.batch_size == 4
        assert len(arena.slot(0)) == 2
        assert len(arena.layer(1)) == 4
        assert arena.get(0, 0).shape == (2, 3)
        assert arena.get(1, 3).shape == (3, 1)
        ids = {id(arena.get(l, s)) for l in range(2) for s in range(4)}
        assert len(ids) == 8

    def test_reused_when_unchanged(self, layers):
        arena = CacheArena(layers, 4)
        first = arena.get(0, 0)
        assert arena.ensure(layers, 4) is False
        assert arena.get(0, 0) is first

    def test_reallocated_on_batch_size_change(self, layers):
        arena = CacheArena(layers, 4)
        first = arena.get(0, 0)
        assert arena.ensure(layers, 2) is True
        assert arena.batch_size == 2
        assert arena.get(0, 0) is not first

    def test_invalid_batch_size(self, layers):
        with pytest.raises(ValueError):
            CacheArena(layers, 0)
