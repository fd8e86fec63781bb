"""Factorization of the shifted iteration matrix and the linear solves.

Every Rosenbrock step factors ``M = shift * I - J`` once with partial
pivoting and reuses the factors for all four stage solves.  The
sensitivity phase factors a second, midpoint-shifted matrix the same way.

JAX's LU does not raise on singular input; :func:`factor_shifted` flags
a non-finite factorization, or a pivot at the rounding level of the
matrix entries, so the caller can shrink the step.
"""

from __future__ import annotations

from typing import NamedTuple

import jax
import jax.numpy as jnp
import jax.scipy.linalg as jsl
from jax import Array
from jax.typing import ArrayLike

from stiffjax.config import get_unit_roundoff


class LUFactors(NamedTuple):
    """LU factors of a shifted iteration matrix.

    Attributes:
        lu: Combined ``L`` and ``U`` factors of shape ``(n, n)``.
        piv: Pivot indices of shape ``(n,)``.
    """

    lu: Array
    piv: Array


@jax.jit
def _factor(jac, shift, uround):
    n = jac.shape[0]
    mat = shift * jnp.eye(n, dtype=jac.dtype) - jac
    lu, piv = jsl.lu_factor(mat)
    # bound on the rounding error of each entry of shift*I - J
    tol = n * uround * (jnp.abs(shift) + jnp.max(jnp.abs(jac)))
    pivots = jnp.abs(jnp.diag(lu))
    singular = jnp.any(pivots <= tol) | ~jnp.all(jnp.isfinite(lu))
    return lu, piv, singular


@jax.jit
def _solve(lu, piv, rhs):
    return jsl.lu_solve((lu, piv), rhs)


def factor_shifted(
    jac: ArrayLike, shift: float, uround: float | None = None
) -> LUFactors | None:
    """Factor ``shift * I - jac`` with partial pivoting.

    The matrix counts as singular when a pivot does not exceed
    ``n * uround * (|shift| + max|jac|)``, the rounding error made when
    forming it.

    Args:
        jac: Jacobian ``df/dx`` of shape ``(n, n)``.
        shift: Diagonal shift, ``1 / (h * gamma)`` for a Rosenbrock step
            or ``2 / dt`` for the sensitivity midpoint rule.
        uround: Unit roundoff. ``None`` uses the machine epsilon of the
            active dtype.

    Returns:
        LUFactors | None: The factors, or ``None`` if the matrix is
        singular or contains non-finite entries.
    """
    jac = jnp.asarray(jac)
    if uround is None:
        uround = get_unit_roundoff()
    lu, piv, singular = _factor(
        jac,
        jnp.asarray(shift, dtype=jac.dtype),
        jnp.asarray(uround, dtype=jac.dtype),
    )
    if bool(singular):
        return None
    return LUFactors(lu=lu, piv=piv)


def lu_solve(factors: LUFactors, rhs: ArrayLike) -> Array:
    """Solve ``M x = rhs`` by forward and back substitution.

    Args:
        factors: Factors from :func:`factor_shifted`.
        rhs: Right-hand side of shape ``(n,)`` or ``(n, p)``.

    Returns:
        jax.Array: Solution with the shape of *rhs*.
    """
    return _solve(factors.lu, factors.piv, jnp.asarray(rhs, dtype=factors.lu.dtype))
