"""Model oracles: the integrator's view of the right-hand side.

The integrator never evaluates a model directly.  It talks to an object
implementing :class:`ModelOracle`, which returns the residual
``f(t, x)`` and, on request, its Jacobians with respect to the state and
the sensitivity parameters.  Whether those come from hand-written
derivatives, automatic differentiation or an external simulation engine
is up to the oracle.

:class:`AutodiffModel` is the stock oracle for JAX-traceable right-hand
sides.  It computes the Jacobians with ``jax.jacfwd``, the same way the
EKF building blocks compute state transition matrices.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from stiffjax.config import get_dtype


@runtime_checkable
class ModelOracle(Protocol):
    """Interface between the integrator and a model.

    Both methods receive the segment index ``k`` and the parameter vector
    ``q`` given to :meth:`~stiffjax.integrators.StiffIntegrator.solve`.
    They must be deterministic for identical arguments within one solve.
    """

    def residual(self, k: int, t: float, x: Array, q: Array | None) -> Array:
        """Evaluate the right-hand side ``f(t, x)``, shape ``(n,)``."""
        ...

    def residual_and_jacobian(
        self,
        k: int,
        t: float,
        x: Array,
        q: Array | None,
        with_parameters: bool = False,
    ) -> tuple[Array, Array, Array | None]:
        """Evaluate ``f``, ``df/dx`` and optionally ``df/dq`` in one call.

        Returns:
            tuple: ``(f, f_x, f_q)`` with ``f_x`` of shape ``(n, n)``.
            ``f_q`` has the column layout of the sensitivity matrix,
            shape ``(n, p)``, and is ``None`` unless *with_parameters*.
        """
        ...


class AutodiffModel:
    """Model oracle for a JAX-traceable right-hand side.

    Wraps ``fn(t, x, q) -> dx/dt`` and derives the Jacobians with
    ``jax.jacfwd``.  The parameter Jacobian is laid out to match a
    sensitivity matrix whose columns are the initial conditions followed
    by the parameters, ``[0 | df/dq]``.  With
    ``initial_condition_sensitivities=False`` only the parameter columns
    are returned.

    Args:
        fn: Right-hand side ``fn(t, x, q)``. ``q`` is ``None`` when the
            solve is called without parameters.
        initial_condition_sensitivities: Prepend ``n`` zero columns for the
            initial-condition sensitivities to ``df/dq``.

    Examples:
        ```python
        import jax.numpy as jnp
        from stiffjax.model import AutodiffModel

        def decay(t, x, q):
            return -q[0] * x

        model = AutodiffModel(decay)
        f, fx, fq = model.residual_and_jacobian(0, 0.0, jnp.array([1.0]),
                                                jnp.array([2.0]), True)
        ```
    """

    def __init__(
        self,
        fn: Callable[[ArrayLike, Array, Array | None], Array],
        initial_condition_sensitivities: bool = True,
    ) -> None:
        self.initial_condition_sensitivities = initial_condition_sensitivities
        self._residual = jax.jit(fn)
        self._jac_x = jax.jit(jax.jacfwd(fn, argnums=1))
        self._jac_q = jax.jit(jax.jacfwd(fn, argnums=2))

    def residual(self, k: int, t: float, x: Array, q: Array | None) -> Array:
        dtype = get_dtype()
        return self._residual(jnp.asarray(t, dtype=dtype), x, q)

    def residual_and_jacobian(
        self,
        k: int,
        t: float,
        x: Array,
        q: Array | None,
        with_parameters: bool = False,
    ) -> tuple[Array, Array, Array | None]:
        dtype = get_dtype()
        t = jnp.asarray(t, dtype=dtype)
        f = self._residual(t, x, q)
        f_x = self._jac_x(t, x, q)
        f_q = None
        if with_parameters:
            n = x.shape[0]
            blocks = []
            if self.initial_condition_sensitivities:
                blocks.append(jnp.zeros((n, n), dtype=dtype))
            if q is not None:
                blocks.append(jnp.reshape(self._jac_q(t, x, q), (n, -1)))
            f_q = jnp.concatenate(blocks, axis=1) if blocks else jnp.zeros((n, 0), dtype=dtype)
        return f, f_x, f_q

    def initial_sensitivities(self, n_states: int, q: ArrayLike | None = None) -> Array:
        """Return the sensitivity matrix at the start of a trajectory.

        Args:
            n_states: State dimension ``n``.
            q: Parameter vector, determines the number of parameter columns.

        Returns:
            jax.Array: ``[I | 0]`` of shape ``(n, n + n_q)``, or ``0`` of
            shape ``(n, n_q)`` without initial-condition columns.
        """
        dtype = get_dtype()
        n_q = 0 if q is None else int(jnp.size(jnp.asarray(q)))
        blocks = []
        if self.initial_condition_sensitivities:
            blocks.append(jnp.eye(n_states, dtype=dtype))
        blocks.append(jnp.zeros((n_states, n_q), dtype=dtype))
        return jnp.concatenate(blocks, axis=1)
