"""Type definitions for the stiff integrators.

Provides the data types exchanged with callers of
:class:`~stiffjax.integrators.StiffIntegrator`:

- :class:`IntegratorConfig`: Tolerances, step-size limits and method
  selection, set before a solve and read-only during integration.
- :class:`SegmentState`: Mutable state container handed to ``solve``.  The
  state vector and optional sensitivity matrix are copied in at entry and
  written back only when the interval end is reached.
- :class:`StepReport`: Outcome of one step attempt, passed to observers.
- :class:`IntegratorStats`: Counters of one solve call.
- :class:`SolveResult`: Return value of ``solve``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from jax import Array

from stiffjax.errors import ConfigurationError
from stiffjax.integrators._tableaus import RosenbrockMethod, resolve_method


@dataclass(frozen=True)
class IntegratorConfig:
    """Configuration of the GRK4 Rosenbrock integrator.

    Static checks run at construction; the checks depending on the unit
    roundoff run again at solve entry via :meth:`validate`, since the
    default ``uround`` follows the active dtype.

    Args:
        rtol: Relative error tolerance. Must exceed ``10 * uround``.
        atol: Absolute error tolerance. Must be positive.
        hinit: Initial step size. ``0`` selects ``|t_end - t_start| / 10``.
        hmax: Maximum step size. ``0`` selects ``|t_end - t_start|`` for
            each solve.
        nmax: Maximum number of steps per solve.
        uround: Unit roundoff. ``None`` uses the machine epsilon of the
            active dtype (see :func:`stiffjax.config.get_unit_roundoff`).
        fac1: Upper bound of ``h / h_new``, limits step-size reduction.
            Must be ``>= 1``.
        fac2: Lower bound of ``h / h_new``, limits step-size growth.
            Must lie in ``[0, 1]``.
        method: Coefficient tableau, an id in ``1..6`` or a
            :class:`RosenbrockMethod`.
        max_singular: Number of consecutive singular factorizations
            tolerated before the solve is aborted.
        reuse_jacobian: Reuse the Jacobian snapshot of the current base
            point across rejected attempts. ``False`` re-evaluates it on
            every attempt.

    Examples:
        ```python
        from stiffjax.integrators import IntegratorConfig
        config = IntegratorConfig(rtol=1e-8, atol=1e-10, method=6)
        config.method
        ```
    """

    rtol: float = 1e-6
    atol: float = 1e-8
    hinit: float = 0.0
    hmax: float = 0.0
    nmax: int = 100000
    uround: float | None = None
    fac1: float = 5.0
    fac2: float = 1.0 / 6.0
    method: RosenbrockMethod = RosenbrockMethod.VELDHUIZEN_D
    max_singular: int = 5
    reuse_jacobian: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", resolve_method(self.method))
        if self.rtol <= 0.0 or self.atol <= 0.0:
            raise ConfigurationError(
                f"Tolerances are too small: rtol = {self.rtol:g}, atol = {self.atol:g}"
            )
        if self.nmax < 0:
            raise ConfigurationError(f"Wrong input for nmax = {self.nmax}")
        if self.uround is not None and not 1e-35 < self.uround < 1.0:
            raise ConfigurationError(f"Wrong input for uround = {self.uround:g}")
        if self.fac2 < 0.0 or self.fac1 < 1.0 or self.fac2 > 1.0:
            raise ConfigurationError(
                f"Wrong input for step size parameters fac1 = {self.fac1:g}, "
                f"fac2 = {self.fac2:g}"
            )
        if self.max_singular < 1:
            raise ConfigurationError(f"Wrong input for max_singular = {self.max_singular}")
        if self.hinit < 0.0 or self.hmax < 0.0:
            raise ConfigurationError(
                f"Step sizes must be non-negative: hinit = {self.hinit:g}, hmax = {self.hmax:g}"
            )

    def validate(self, uround: float) -> None:
        """Check the tolerances against the effective unit roundoff.

        Args:
            uround: Unit roundoff used by the solve.

        Raises:
            ConfigurationError: If ``rtol <= 10 * uround`` or *uround* is
                outside ``(1e-35, 1)``.
        """
        if not 1e-35 < uround < 1.0:
            raise ConfigurationError(f"Wrong input for uround = {uround:g}")
        if self.rtol <= 10.0 * uround:
            raise ConfigurationError(
                f"Tolerances are too small: rtol = {self.rtol:g}, atol = {self.atol:g}"
            )


@dataclass
class SegmentState:
    """Caller-owned state of one integration interval.

    Attributes:
        x: State vector of shape ``(n,)``.
        sensitivities: Optional sensitivity matrix of shape ``(n, p)``.
            Its columns are derivatives of ``x`` with respect to initial
            conditions and parameters. ``None`` disables sensitivity
            propagation.
    """

    x: Array
    sensitivities: Array | None = None


class StepReport(NamedTuple):
    """Outcome of one step attempt that reached the error test.

    Attributes:
        t: Time at the start of the attempt.
        h: Step size of the attempt.
        error: RMS scaled error estimate. ``<= 1`` iff accepted.
        accepted: Whether the attempt was accepted.
        h_next: Step size proposed for the following attempt.
    """

    t: float
    h: float
    error: float
    accepted: bool
    h_next: float


class IntegratorStats(NamedTuple):
    """Counters of a single solve call.

    Attributes:
        n_steps: Step attempts, including rejected and singular ones.
        n_accepted: Accepted steps.
        n_rejected: Attempts rejected by the error test.
        n_singular: Singular factorizations encountered.
        n_residual_evals: Residual-only model evaluations.
        n_jacobian_evals: Model evaluations including the state Jacobian.
        n_sensitivity_evals: Model evaluations including the parameter
            Jacobian.
    """

    n_steps: int = 0
    n_accepted: int = 0
    n_rejected: int = 0
    n_singular: int = 0
    n_residual_evals: int = 0
    n_jacobian_evals: int = 0
    n_sensitivity_evals: int = 0


class SolveResult(NamedTuple):
    """Result of integrating one interval.

    Attributes:
        t: Final time, equal to ``t_end``.
        state: State vector at ``t``.
        sensitivities: Sensitivity matrix at ``t``, or ``None``.
        stats: Counters of the solve.
    """

    t: float
    state: Array
    sensitivities: Array | None
    stats: IntegratorStats
