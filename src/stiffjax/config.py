"""Module-wide floating-point precision configuration.

Provides ``set_dtype`` and ``get_dtype`` to control the float dtype used
throughout stiffjax.  The default is ``jnp.float64``: the step-size
controller compares against the unit roundoff, and tolerances of stiff
problems routinely approach it.  Selecting ``jnp.float64`` enables JAX's
64-bit mode (``jax_enable_x64``).

Call ``set_dtype`` **before** the first solve, just like JAX's own
``jax.config.update("jax_enable_x64", True)``.  The jitted linear-algebra
kernels are traced per dtype, so switching precision afterwards triggers
a retrace rather than a wrong result.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_VALID_DTYPES = (jnp.float32, jnp.float64)

_dtype = jnp.float64
jax.config.update("jax_enable_x64", True)


def set_dtype(dtype) -> None:
    """Set the module-wide float dtype for stiffjax.

    If *dtype* is ``jnp.float64``, JAX's 64-bit mode is automatically
    enabled via ``jax.config.update("jax_enable_x64", True)``.

    Args:
        dtype: One of ``jnp.float32`` or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: "
            f"jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the current module-wide float dtype.

    Returns:
        The active float dtype (default ``jnp.float64``).
    """
    return _dtype


def get_unit_roundoff() -> float:
    """Return the unit roundoff of the active float dtype.

    Used as the default ``uround`` of
    :class:`~stiffjax.integrators.IntegratorConfig`.

    Returns:
        float: Machine epsilon, ``2.22e-16`` for float64 and ``1.19e-07``
        for float32.
    """
    return float(jnp.finfo(_dtype).eps)
