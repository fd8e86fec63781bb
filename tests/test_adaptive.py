"""Tests for the error norm and step-size controller."""

import math

import jax.numpy as jnp
import pytest

from stiffjax.integrators import compute_error_norm, compute_next_step_size


class TestErrorNorm:
    def test_rms_of_scaled_components(self):
        err = jnp.array([1e-6, 2e-6])
        y_new = jnp.array([1.0, 0.0])
        y_old = jnp.array([0.5, 0.0])
        atol, rtol = 1e-6, 1e-3
        # scales: 1e-6 + 1e-3 * 1.0 and 1e-6
        expected = math.sqrt(((1e-6 / (1e-6 + 1e-3)) ** 2 + (2e-6 / 1e-6) ** 2) / 2)
        result = compute_error_norm(err, y_new, y_old, atol, rtol)
        assert float(result) == pytest.approx(expected, rel=1e-12)

    def test_uses_larger_of_old_and_new(self):
        err = jnp.array([1e-3])
        a = compute_error_norm(err, jnp.array([10.0]), jnp.array([1.0]), 0.0 + 1e-12, 1e-3)
        b = compute_error_norm(err, jnp.array([1.0]), jnp.array([10.0]), 0.0 + 1e-12, 1e-3)
        assert float(a) == pytest.approx(float(b))
        assert float(a) == pytest.approx(0.1, rel=1e-6)

    def test_zero_error(self):
        result = compute_error_norm(jnp.zeros(3), jnp.ones(3), jnp.ones(3), 1e-6, 1e-6)
        assert float(result) == 0.0

    def test_nan_error_is_not_accepted(self):
        result = compute_error_norm(jnp.array([jnp.nan]), jnp.ones(1), jnp.ones(1), 1e-6, 1e-6)
        assert not float(result) <= 1.0


class TestNextStepSize:
    def test_error_at_target(self):
        """err = 0.9**4 keeps the step size unchanged."""
        h_new = compute_next_step_size(0.9**4, 0.1, 5.0, 1.0 / 6.0)
        assert h_new == pytest.approx(0.1)

    def test_growth_bounded_by_fac2(self):
        h_new = compute_next_step_size(1e-20, 0.1, 5.0, 1.0 / 6.0)
        assert h_new == pytest.approx(0.6)

    def test_reduction_bounded_by_fac1(self):
        h_new = compute_next_step_size(1e20, 0.1, 5.0, 1.0 / 6.0)
        assert h_new == pytest.approx(0.02)

    def test_fourth_root_law(self):
        err = 16.0
        h_new = compute_next_step_size(err, 1.0, 5.0, 1.0 / 6.0)
        assert h_new == pytest.approx(0.9 / 2.0)

    def test_sign_preserved(self):
        h_new = compute_next_step_size(0.5, -0.2, 5.0, 1.0 / 6.0)
        assert h_new < 0.0

    def test_nan_error_shrinks(self):
        h_new = compute_next_step_size(float("nan"), 0.1, 5.0, 1.0 / 6.0)
        assert h_new == pytest.approx(0.02)

    def test_unbounded_growth_with_zero_fac2(self):
        h_new = compute_next_step_size(0.0, -0.1, 5.0, 0.0)
        assert h_new == -math.inf
