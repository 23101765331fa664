"""Tests for the Dense layer."""

import numpy as np
import pytest

from clear_backprop import (
    ConstructionError,
    Dense,
    L2Regularizer,
    LayerCache,
    ShapeMismatchError,
    Sigmoid,
    UnsupportedActivationError,
)


class TestDenseConstruction:
    def test_zero_initialized(self):
        layer = Dense(3, 2)
        assert layer.weights.shape == (3, 2)
        assert layer.biases.shape == (2,)
        assert not layer.weights.any()
        assert not layer.biases.any()

    def test_initial_parameters(self, linear_layer):
        assert np.array_equal(linear_layer.weights, [[0.5], [-0.5]])
        assert np.array_equal(linear_layer.biases, [0.1])

    def test_invalid_sizes(self):
        with pytest.raises(ConstructionError):
            Dense(0, 2)

    def test_activation_instance(self):
        sig = Sigmoid(saturation=5.0)
        assert Dense(2, 2, sig).activation_fn is sig

    def test_float_regularizer(self):
        layer = Dense(2, 2, kernel_regularizer=0.3)
        assert isinstance(layer.kernel_regularizer, L2Regularizer)


class TestDenseSetters:
    def test_set_weights_copies(self):
        layer = Dense(2, 1)
        w = np.array([[1.0], [2.0]])
        layer.set_weights(w)
        w[0, 0] = 99.0
        assert layer.weights[0, 0] == 1.0

    @pytest.mark.parametrize("bad", [[[1.0, 2.0]], [[1.0], [2.0], [3.0]], [1.0, 2.0]])
    def test_set_weights_shape_mismatch(self, bad):
        layer = Dense(2, 1)
        with pytest.raises(ShapeMismatchError):
            layer.set_weights(bad)
        assert layer.weights.shape == (2, 1)

    def test_set_biases_shape_mismatch(self):
        layer = Dense(2, 1)
        with pytest.raises(ShapeMismatchError):
            layer.set_biases([1.0, 2.0])
        assert layer.biases.shape == (1,)

    def test_set_weights_and_biases_is_atomic(self):
        layer = Dense(2, 1, weights=[[1.0], [1.0]])
        with pytest.raises(ShapeMismatchError):
            layer.set_weights_and_biases([[2.0], [2.0]], [1.0, 1.0])
        assert np.array_equal(layer.weights, [[1.0], [1.0]])


class TestDenseInitialization:
    def test_deterministic_with_seed(self):
        a, b = Dense(4, 3, 'relu'), Dense(4, 3, 'relu')
        a.initialize_weights_for_training(np.random.default_rng(5))
        b.initialize_weights_for_training(np.random.default_rng(5))
        assert np.array_equal(a.weights, b.weights)

    def test_he_bound(self, rng):
        layer = Dense(8, 50, 'relu')
        layer.initialize_weights_for_training(rng)
        limit = np.sqrt(2.0 / 8)
        assert np.all(np.abs(layer.weights) <= limit)
        assert np.abs(layer.weights).max() > np.sqrt(1.0 / 8)

    def test_xavier_bound_for_sigmoid(self, rng):
        layer = Dense(8, 50, 'sigmoid')
        layer.initialize_weights_for_training(rng)
        assert np.all(np.abs(layer.weights) <= np.sqrt(1.0 / 8))

    def test_biases_reset(self, rng):
        layer = Dense(2, 2, biases=[1.0, 2.0])
        layer.initialize_weights_for_training(rng)
        assert not layer.biases.any()


class TestDenseForward:
    def test_output_length(self):
        for units in (1, 3, 7):
            _, a = Dense(4, units, 'relu').forward(np.ones(4))
            assert a.shape == (units,)

    def test_values(self, linear_layer):
        reg, a = linear_layer.forward([1.0, 2.0])
        assert reg == 0.0
        assert a == pytest.approx([0.1 + 0.5 - 1.0])

    def test_writes_into_buffer(self, linear_layer):
        out = np.empty(1)
        _, a = linear_layer.forward([1.0, 2.0], out)
        assert a is out

    def test_regularization_loss(self):
        layer = Dense(2, 1, weights=[[0.5], [-0.5]], kernel_regularizer=L2Regularizer(0.1))
        reg, _ = layer.forward([1.0, 2.0])
        assert reg == pytest.approx(0.5 * 0.1 * 0.5)

    def test_input_shape_mismatch(self, linear_layer):
        with pytest.raises(ShapeMismatchError):
            linear_layer.forward([1.0, 2.0, 3.0])

    def test_softmax_layer_fails_on_first_forward(self):
        layer = Dense(2, 2, 'softmax')
        with pytest.raises(UnsupportedActivationError):
            layer.forward([1.0, 2.0])


class TestDenseBackward:
    def test_shapes(self, rng):
        layer = Dense(4, 3, 'sigmoid')
        layer.initialize_weights_for_training(rng)
        x = rng.normal(size=4)
        cache = layer.create_cache()
        layer.forward(x, cache.forward_output)
        layer.backward(x, cache.forward_output, cache)
        assert cache.dw.shape == (4, 3)
        assert cache.db.shape == (3,)
        assert cache.dx.shape == (4, 3)

    def test_linear_local_derivatives(self, linear_layer):
        x = np.array([1.0, 2.0])
        cache = linear_layer.create_cache()
        linear_layer.forward(x, cache.forward_output)
        linear_layer.backward(x, cache.forward_output, cache)
        assert np.array_equal(cache.dw, [[1.0], [2.0]])
        assert np.array_equal(cache.db, [1.0])
        assert np.array_equal(cache.dx, linear_layer.weights)

    def test_regularization_gradient(self):
        layer = Dense(2, 1, weights=[[0.5], [-0.5]], kernel_regularizer=L2Regularizer(0.1))
        x = np.array([1.0, 2.0])
        cache = layer.create_cache()
        layer.forward(x, cache.forward_output)
        layer.backward(x, cache.forward_output, cache)
        assert np.allclose(cache.dw_regularized, [[0.05], [-0.05]])
        # The penalty stays out of the local derivative
        assert np.array_equal(cache.dw, [[1.0], [2.0]])

    def test_cache_shape_mismatch(self, linear_layer):
        with pytest.raises(ShapeMismatchError):
            linear_layer.backward(np.ones(2), np.ones(1), LayerCache(3, 1))


class TestDenseReporting:
    def test_dump_weights(self, linear_layer):
        text = linear_layer.dump_weights()
        assert "0.5" in text and "-0.5" in text and "0.1" in text

    def test_summary(self, linear_layer):
        assert "Parameters: 3" in linear_layer.summary()
