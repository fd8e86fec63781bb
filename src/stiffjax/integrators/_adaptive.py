"""Adaptive step-size control utilities for the embedded Rosenbrock methods.

Provides the error-norm computation and the step-size update used by
:class:`~stiffjax.integrators.StiffIntegrator`:

1. Compute a root-mean-square error using mixed absolute/relative
   tolerances.
2. Accept the step if the normalized error is <= 1.0.
3. Predict the next step size from the error and the 4th-order law,
   bounded by the ``fac1`` / ``fac2`` growth limits.
"""

from __future__ import annotations

import math

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from stiffjax.config import get_dtype

SAFETY = 0.9
REJECT_SHRINK = 0.1


@jax.jit
def _rms_norm(error_vec, state_new, state_old, abs_tol, rel_tol):
    scale = abs_tol + rel_tol * jnp.maximum(jnp.abs(state_new), jnp.abs(state_old))
    return jnp.sqrt(jnp.mean(jnp.square(error_vec / scale)))


def compute_error_norm(
    error_vec: ArrayLike,
    state_new: ArrayLike,
    state_old: ArrayLike,
    abs_tol: float,
    rel_tol: float,
) -> Array:
    """Compute the RMS scaled error norm for step-size control.

    The per-component tolerance is:

    .. math::

        \\text{tol}_i = \\text{abs\\_tol} + \\text{rel\\_tol}
            \\cdot \\max(|y^{\\text{new}}_i|, |y^{\\text{old}}_i|)

    and the result is :math:`\\sqrt{\\frac{1}{n}\\sum_i (e_i / \\text{tol}_i)^2}`.

    Args:
        error_vec: Embedded error estimate ``E1*k1 + ... + E4*k4``.
        state_new: Candidate state at the end of the step.
        state_old: State at the beginning of the step.
        abs_tol: Absolute error tolerance.
        rel_tol: Relative error tolerance.

    Returns:
        jax.Array: Scalar normalized error. Step is accepted if <= 1.0.
    """
    dtype = get_dtype()
    return _rms_norm(
        jnp.asarray(error_vec, dtype=dtype),
        jnp.asarray(state_new, dtype=dtype),
        jnp.asarray(state_old, dtype=dtype),
        abs_tol,
        rel_tol,
    )


def compute_next_step_size(error: float, h: float, fac1: float, fac2: float) -> float:
    """Compute the step size proposed after an error test.

    .. math::

        h_{\\text{new}} = h \\,/\\, \\min\\left(f_1, \\max\\left(f_2,
            \\frac{\\text{error}^{1/4}}{0.9}\\right)\\right)

    The sign of ``h`` is preserved for backward integration. Acceptance
    specific limits (``hmax``, no growth after a rejection) are applied by
    the caller.

    Args:
        error: Normalized error from :func:`compute_error_norm`.
        h: Step size of the attempt.
        fac1: Maximum ratio ``h / h_new`` (strongest reduction).
        fac2: Minimum ratio ``h / h_new`` (strongest growth).

    Returns:
        float: Proposed step size with the sign of ``h``.
    """
    quot = max(fac2, min(fac1, error**0.25 / SAFETY))
    if quot == 0.0:
        # fac2 = 0 with a zero error: unbounded growth, capped by hmax later
        return math.copysign(math.inf, h)
    return h / quot
