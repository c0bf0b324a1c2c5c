"""Tests for SmoothQuad, cross-checked against torch autograd."""

import numpy as np
import pytest
import torch
import torch.nn.functional as F

from dsf.dvector import DVector, ShapeMismatchError
from dsf.smooth.quad import SmoothQuad
from dsf.smooth.value import BOTH, GRADIENT, VALUE


def test_hand_computed_value_and_gradient():
    fn = SmoothQuad(DVector.from_array([0.0, 0.0], num_partitions=2))
    result = fn.evaluate(DVector.from_array([3.0, 4.0], num_partitions=2), BOTH)
    assert result.value() == pytest.approx(12.5)
    np.testing.assert_allclose(result.gradient().to_array(), [3.0, 4.0])


def test_zero_at_reference(rng):
    x0 = DVector.from_array(rng.normal(size=50), num_partitions=4)
    fn = SmoothQuad(x0)
    assert fn.evaluate(x0, VALUE).value() == 0.0
    np.testing.assert_array_equal(fn.evaluate(x0, GRADIENT).gradient().to_array(), 0.0)


def test_value_shorthand(rng):
    x0_values, x_values = rng.normal(size=(2, 30))
    fn = SmoothQuad(DVector.from_array(x0_values, num_partitions=3))
    x = DVector.from_array(x_values, num_partitions=3)
    assert fn(x) == pytest.approx(0.5 * np.sum((x_values - x0_values) ** 2))


def test_matches_torch(rng):
    x0_values, x_values = rng.normal(size=(2, 40))
    fn = SmoothQuad(DVector.from_array(x0_values, num_partitions=5))
    result = fn.evaluate(DVector.from_array(x_values, num_partitions=5), BOTH)

    x0_t = torch.tensor(x0_values, dtype=torch.float64)

    def loss(x_t):
        return 0.5 * F.mse_loss(x_t, x0_t, reduction="sum")

    x_t = torch.tensor(x_values, dtype=torch.float64)
    assert result.value() == pytest.approx(loss(x_t).item())
    np.testing.assert_allclose(
        result.gradient().to_array(), torch.func.grad(loss)(x_t).numpy()
    )


def test_reference_is_cached_on_construction(counting_source):
    source = counting_source(np.arange(6.0), 3)
    fn = SmoothQuad(source.dvector())
    x = DVector.from_array(np.zeros(6), num_partitions=3)
    for _ in range(3):
        fn.evaluate(x, BOTH)
    assert source.calls == [1, 1, 1]


def test_residual_computed_once_when_both_requested(counting_source):
    fn = SmoothQuad(DVector.from_array(np.zeros(6), num_partitions=3))
    source = counting_source(np.arange(6.0), 3)
    result = fn.evaluate(source.dvector(), BOTH)
    result.gradient().to_array()
    assert result.gradient().is_cached
    assert source.calls == [1, 1, 1]


def test_residual_not_cached_for_single_output():
    fn = SmoothQuad(DVector.from_array(np.zeros(6), num_partitions=3))
    result = fn.evaluate(DVector.from_array(np.ones(6), num_partitions=3), GRADIENT)
    assert not result.gradient().is_cached


def test_inputs_are_not_mutated(rng):
    x0_values, x_values = rng.normal(size=(2, 12))
    x0 = DVector.from_array(x0_values, num_partitions=2)
    x = DVector.from_array(x_values, num_partitions=2)
    SmoothQuad(x0).evaluate(x, BOTH).gradient().to_array()
    np.testing.assert_array_equal(x0.to_array(), x0_values)
    np.testing.assert_array_equal(x.to_array(), x_values)


def test_shape_mismatch():
    fn = SmoothQuad(DVector.from_array(np.zeros(4), num_partitions=2))
    with pytest.raises(ShapeMismatchError):
        fn.evaluate(DVector.from_array(np.zeros(5), num_partitions=2), VALUE)
