"""Tests for loss functions."""

import numpy as np
import pytest

from clear_backprop.errors import InvalidLabelError
from clear_backprop.losses import BinaryCrossEntropy, MeanSquaredError, get_loss, sigmoid


class TestMeanSquaredError:
    def test_known_values(self):
        mse = MeanSquaredError()
        assert mse.loss(3.0, 5.0) == pytest.approx(2.0)
        assert mse.derivative(3.0, 5.0) == pytest.approx(2.0)

    def test_sign_of_derivative(self):
        assert MeanSquaredError().derivative(5.0, 3.0) == pytest.approx(-2.0)

    def test_vector_prediction(self):
        out = MeanSquaredError().loss(1.0, np.array([1.0, 3.0]))
        assert np.allclose(out, [0.0, 2.0])


class TestBinaryCrossEntropy:
    @pytest.mark.parametrize("y_hat", [0.0, 0.1, 0.5, 0.9, 1.0])
    def test_rejects_labels_outside_domain(self, y_hat):
        bce = BinaryCrossEntropy()
        with pytest.raises(InvalidLabelError):
            bce.loss(2.0, y_hat)
        with pytest.raises(InvalidLabelError):
            bce.derivative(2.0, y_hat)

    def test_rejects_labels_in_logit_mode(self):
        with pytest.raises(InvalidLabelError):
            BinaryCrossEntropy(from_logits=True).loss(0.5, 1.0)

    def test_probability_mode_values(self):
        bce = BinaryCrossEntropy()
        assert bce.loss(1.0, 0.8) == pytest.approx(-np.log(0.8))
        assert bce.loss(0.0, 0.8) == pytest.approx(-np.log(0.2))
        assert bce.derivative(1.0, 0.8) == pytest.approx(-1.0 / 0.8)
        assert bce.derivative(0.0, 0.8) == pytest.approx(1.0 / 0.2)

    def test_probability_mode_clips(self):
        bce = BinaryCrossEntropy()
        assert np.isfinite(bce.loss(1.0, 0.0))
        assert np.isfinite(bce.loss(0.0, 1.0))
        assert np.isfinite(bce.derivative(1.0, 0.0))
        assert np.isfinite(bce.derivative(0.0, 1.0))

    def test_logit_derivative(self):
        bce = BinaryCrossEntropy(from_logits=True)
        assert bce.derivative(1.0, 0.0) == pytest.approx(-0.5)
        assert bce.derivative(0.0, 2.0) == pytest.approx(1.0 / (1.0 + np.exp(-2.0)))

    @pytest.mark.parametrize("y", [0.0, 1.0])
    def test_logits_match_probabilities(self, y):
        prob_mode = BinaryCrossEntropy()
        logit_mode = BinaryCrossEntropy(from_logits=True)
        for z in np.linspace(-10.0, 10.0, 41):
            assert abs(prob_mode.loss(y, sigmoid(z)) - logit_mode.loss(y, z)) < 1e-9

    def test_logits_stable_at_extremes(self):
        logit_mode = BinaryCrossEntropy(from_logits=True)
        with np.errstate(over="raise"):
            assert logit_mode.loss(0.0, 1000.0) == pytest.approx(1000.0)
            assert logit_mode.loss(1.0, -1000.0) == pytest.approx(1000.0)
            assert logit_mode.loss(1.0, 1000.0) == pytest.approx(0.0)
        # The naive formula overflows where the stable one does not
        with np.errstate(over="ignore"):
            naive = np.log(1.0 + np.exp(np.float64(1000.0)))
        assert np.isinf(naive)


class TestSigmoidHelper:
    def test_scalar_and_array(self):
        assert sigmoid(0.0) == 0.5
        assert np.allclose(sigmoid(np.array([-1.0, 1.0])), 1.0 / (1.0 + np.exp([1.0, -1.0])))

    def test_extremes(self):
        with np.errstate(over="raise"):
            assert sigmoid(-1000.0) == pytest.approx(0.0)
            assert sigmoid(1000.0) == pytest.approx(1.0)


class TestGetLoss:
    def test_names(self):
        assert isinstance(get_loss("mse"), MeanSquaredError)
        assert get_loss("binary_cross_entropy", from_logits=True).from_logits

    def test_instance_passthrough(self):
        bce = BinaryCrossEntropy()
        assert get_loss(bce) is bce

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_loss("hinge")
