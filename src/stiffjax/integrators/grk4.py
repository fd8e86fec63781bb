"""Linearly-implicit Runge-Kutta (Rosenbrock) integrator GRK4 for stiff ODEs.

Implements the embedded Rosenbrock method of order 4(3) from Hairer &
Wanner, *Solving Ordinary Differential Equations II* (section IV.7), with
automatic step-size control and optional forward sensitivity propagation.

Each step attempt cycles through the phases

``ComputeJacobian -> FactorMatrix -> ComputeStages -> FormErrorEstimate
-> {Accept, Reject}``

One LU factorization of ``I/(h*gamma) - J`` serves all four stage solves.
The Jacobian snapshot of the current base point stays warm across
rejected attempts.  After an accepted step the sensitivity matrix is
advanced with an implicit midpoint rule whose midpoint state comes from
Hermite interpolation between the two ends of the step, so the
sensitivity update always observes exactly the step that was just
accepted.

The integrator is not traceable by ``jax.jit``: the accept/reject logic,
the fatal checks and the model oracle calls run in Python, while the
linear algebra kernels are jitted.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from stiffjax.config import get_dtype, get_unit_roundoff
from stiffjax.errors import (
    ConfigurationError,
    SingularJacobianError,
    StepLimitError,
    StepSizeUnderflowError,
)
from stiffjax.integrators._adaptive import (
    REJECT_SHRINK,
    compute_error_norm,
    compute_next_step_size,
)
from stiffjax.integrators._linalg import LUFactors, factor_shifted, lu_solve
from stiffjax.integrators._tableaus import RosenbrockTableau, get_tableau
from stiffjax.integrators._types import (
    IntegratorConfig,
    IntegratorStats,
    SegmentState,
    SolveResult,
    StepReport,
)
from stiffjax.model import ModelOracle

logger = logging.getLogger(__name__)


@dataclass
class _Control:
    """Integration control state of one solve call."""

    x: float
    xold: float
    xend: float
    h: float
    hmax: float
    posneg: float
    nstep: int = 0
    naccpt: int = 0
    nrejct: int = 0
    nsing: int = 0
    nsing_total: int = 0


@dataclass
class _JacobianSnapshot:
    """Residual, Jacobian and time derivative at one base point."""

    f0: Array
    jac: Array
    ft: Array | None = None


class StiffIntegrator:
    """Adaptive GRK4 Rosenbrock integrator for one interval at a time.

    An instance owns its working state and is reused across the segments
    of a trajectory.  It is not safe to share an instance between
    concurrently integrated segments.

    Args:
        model: Model oracle providing residuals and Jacobians.
        config: Integrator configuration. Uses the default
            :class:`IntegratorConfig` if ``None``.
        observer: Optional callable receiving a :class:`StepReport` for
            every attempt that reached the error test.

    Examples:
        ```python
        import jax.numpy as jnp
        from stiffjax.integrators import SegmentState, StiffIntegrator
        from stiffjax.model import AutodiffModel

        model = AutodiffModel(lambda t, x, q: -1000.0 * (x - jnp.cos(t)))
        integrator = StiffIntegrator(model)
        state = SegmentState(x=jnp.array([0.0]))
        result = integrator.solve(0, 0.0, 1.0, state)
        state.x  # ~cos(1)
        ```
    """

    def __init__(
        self,
        model: ModelOracle,
        config: IntegratorConfig | None = None,
        observer: Callable[[StepReport], None] | None = None,
    ) -> None:
        self.model = model
        self.config = IntegratorConfig() if config is None else config
        self.observer = observer
        self._tableau: RosenbrockTableau = get_tableau(self.config.method)
        self._res_evals = 0
        self._jac_evals = 0
        self._sen_evals = 0
        self._k = 0
        self._q: Array | None = None

    # ---- instrumentation ---------------------------------------------------

    @property
    def res_evals(self) -> int:
        """Residual-only model evaluations over the instance lifetime."""
        return self._res_evals

    @property
    def jac_evals(self) -> int:
        """Model evaluations including ``df/dx`` over the instance lifetime."""
        return self._jac_evals

    @property
    def sen_evals(self) -> int:
        """Model evaluations including ``df/dq`` over the instance lifetime."""
        return self._sen_evals

    @property
    def tableau(self) -> RosenbrockTableau:
        """Coefficient tableau selected by the configuration."""
        return self._tableau

    # ---- model access ------------------------------------------------------

    def _residual(self, t: float, y: Array) -> Array:
        self._res_evals += 1
        f = self.model.residual(self._k, t, y, self._q)
        return jnp.asarray(f, dtype=y.dtype)

    def _residual_and_jacobian(
        self, t: float, y: Array, with_parameters: bool = False
    ) -> tuple[Array, Array, Array | None]:
        self._jac_evals += 1
        if with_parameters:
            self._sen_evals += 1
        f, f_x, f_q = self.model.residual_and_jacobian(
            self._k, t, y, self._q, with_parameters
        )
        f = jnp.asarray(f, dtype=y.dtype)
        f_x = jnp.asarray(f_x, dtype=y.dtype)
        if f_q is not None:
            f_q = jnp.asarray(f_q, dtype=y.dtype)
        return f, f_x, f_q

    # ---- public API --------------------------------------------------------

    def solve(
        self,
        k: int,
        t_start: float,
        t_end: float,
        state: SegmentState,
        q: ArrayLike | None = None,
    ) -> SolveResult:
        """Integrate one interval from ``t_start`` to ``t_end``.

        The state vector (and sensitivity matrix, if present) is copied out
        of *state*, integrated, and written back only after ``t_end`` has
        been reached. A fatal error leaves *state* untouched.

        Args:
            k: Segment index, forwarded to the model oracle.
            t_start: Start of the interval.
            t_end: End of the interval. May be smaller than ``t_start``
                for backward integration.
            state: Caller-owned state container, updated in place.
            q: Parameter vector forwarded to the model oracle.

        Returns:
            SolveResult: Final time, state, sensitivities and counters.

        Raises:
            ConfigurationError: If the configuration or the state shapes
                are invalid.
            SingularJacobianError: If the iteration matrix stays singular.
            StepLimitError: If more than ``nmax`` steps are needed.
            StepSizeUnderflowError: If the step size becomes too small.
        """
        config = self.config
        uround = get_unit_roundoff() if config.uround is None else config.uround
        config.validate(uround)

        dtype = get_dtype()
        y = jnp.asarray(state.x, dtype=dtype)
        if y.ndim != 1:
            raise ConfigurationError(f"State must be a vector, got shape {y.shape}")
        sens = None
        if state.sensitivities is not None:
            sens = jnp.asarray(state.sensitivities, dtype=dtype)
            if sens.ndim != 2 or sens.shape[0] != y.shape[0]:
                raise ConfigurationError(
                    f"Sensitivity matrix must have shape ({y.shape[0]}, p), got {sens.shape}"
                )

        self._k = k
        self._q = None if q is None else jnp.asarray(q, dtype=dtype)
        evals_before = (self._res_evals, self._jac_evals, self._sen_evals)

        t_start = float(t_start)
        t_end = float(t_end)
        if t_start == t_end:
            return SolveResult(t=t_end, state=y, sensitivities=sens, stats=IntegratorStats())

        span = abs(t_end - t_start)
        h = abs(config.hinit) if config.hinit != 0.0 else span / 10.0
        posneg = math.copysign(1.0, t_end - t_start)
        ctl = _Control(
            x=t_start,
            xold=t_start,
            xend=t_end,
            h=posneg * h,
            hmax=abs(config.hmax) if config.hmax != 0.0 else span,
            posneg=posneg,
        )

        y, sens = self._integrate(ctl, y, sens, uround, evals_before)

        stats = self._stats(ctl, evals_before)
        logger.debug(
            "segment %d: [%g, %g] in %d steps (%d accepted, %d rejected, %d singular)",
            k, t_start, t_end, stats.n_steps, stats.n_accepted, stats.n_rejected,
            stats.n_singular,
        )
        state.x = y
        if sens is not None:
            state.sensitivities = sens
        return SolveResult(t=ctl.x, state=y, sensitivities=sens, stats=stats)

    # ---- stepping ----------------------------------------------------------

    def _stats(self, ctl: _Control, evals_before: tuple[int, int, int]) -> IntegratorStats:
        return IntegratorStats(
            n_steps=ctl.nstep,
            n_accepted=ctl.naccpt,
            n_rejected=ctl.nrejct,
            n_singular=ctl.nsing_total,
            n_residual_evals=self._res_evals - evals_before[0],
            n_jacobian_evals=self._jac_evals - evals_before[1],
            n_sensitivity_evals=self._sen_evals - evals_before[2],
        )

    def _integrate(
        self,
        ctl: _Control,
        y: Array,
        sens: Array | None,
        uround: float,
        evals_before: tuple[int, int, int],
    ) -> tuple[Array, Array | None]:
        config = self.config
        tab = self._tableau
        snapshot: _JacobianSnapshot | None = None
        reject = False
        reject2 = False

        while True:
            h = ctl.h
            if ctl.nstep > config.nmax:
                raise StepLimitError(
                    f"More than nmax = {config.nmax} steps are needed",
                    t=ctl.x, stats=self._stats(ctl, evals_before),
                )
            if ctl.x + 0.1 * h == ctl.x or abs(h) <= uround:
                raise StepSizeUnderflowError(
                    f"Step size too small, h = {h:g} at t = {ctl.x:g}",
                    t=ctl.x, stats=self._stats(ctl, evals_before),
                )
            last = (ctl.x + 1.01 * h - ctl.xend) * ctl.posneg > 0.0
            if last:
                h = ctl.xend - ctl.x
            ctl.nstep += 1

            # ComputeJacobian
            if snapshot is None or not config.reuse_jacobian:
                f0, jac, _ = self._residual_and_jacobian(ctl.x, y)
                snapshot = _JacobianSnapshot(f0=f0, jac=jac)

            # FactorMatrix
            factors = factor_shifted(snapshot.jac, 1.0 / (h * tab.GAMMA), uround)
            if factors is None:
                ctl.nsing += 1
                ctl.nsing_total += 1
                if ctl.nsing >= config.max_singular:
                    raise SingularJacobianError(
                        f"Singular Jacobian at t = {ctl.x:g} after "
                        f"{ctl.nsing} consecutive factorizations",
                        t=ctl.x, stats=self._stats(ctl, evals_before),
                    )
                ctl.h = 0.5 * h
                snapshot = None
                logger.warning(
                    "Singular iteration matrix at t = %g, retrying with h = %g",
                    ctl.x, ctl.h,
                )
                continue
            ctl.nsing = 0

            if snapshot.ft is None:
                xdelt = math.sqrt(uround * max(1.0e-5, abs(ctl.x)))
                f_shift = self._residual(ctl.x + xdelt, y)
                snapshot.ft = (f_shift - snapshot.f0) / xdelt

            # ComputeStages / FormErrorEstimate
            y_new, err_vec = self._stages(ctl.x, y, h, factors, snapshot)
            err = float(compute_error_norm(err_vec, y_new, y, config.atol, config.rtol))
            hnew = compute_next_step_size(err, h, config.fac1, config.fac2)

            if err <= 1.0:
                # Accept
                hnew = ctl.posneg * min(abs(hnew), ctl.hmax)
                if reject:
                    hnew = ctl.posneg * min(abs(hnew), abs(h))
                reject = reject2 = False
                ctl.naccpt += 1
                self._report(ctl.x, h, err, True, hnew)

                y_old, f_old = y, snapshot.f0
                ctl.xold = ctl.x
                ctl.x = ctl.xend if last else ctl.x + h
                y = y_new
                ctl.h = hnew
                snapshot = None
                if sens is not None:
                    sens, snapshot = self._propagate_sensitivities(
                        ctl, y_old, y, f_old, sens, uround, evals_before, keep_warm=not last
                    )
                if last:
                    return y, sens
            else:
                # Reject
                # the 0.1 cut starts with the third consecutive rejection
                if reject2:
                    hnew = h * REJECT_SHRINK
                if reject:
                    reject2 = True
                reject = True
                ctl.nrejct += 1
                self._report(ctl.x, h, err, False, hnew)
                logger.debug(
                    "Step rejected at t = %g: h = %g, err = %g, retrying with h = %g",
                    ctl.x, h, err, hnew,
                )
                ctl.h = hnew

    def _stages(
        self,
        x: float,
        y: Array,
        h: float,
        factors: LUFactors,
        snapshot: _JacobianSnapshot,
    ) -> tuple[Array, Array]:
        """Four linear solves with one factorization; returns ``(y_new, err_vec)``."""
        tab = self._tableau
        ft = snapshot.ft

        k1 = lu_solve(factors, snapshot.f0 + (h * tab.D1) * ft)

        dy = self._residual(x + tab.C2 * h, y + tab.A21 * k1)
        k2 = lu_solve(factors, dy + (h * tab.D2) * ft + (tab.C21 / h) * k1)

        dy = self._residual(x + tab.C3 * h, y + tab.A31 * k1 + tab.A32 * k2)
        k3 = lu_solve(
            factors,
            dy + (h * tab.D3) * ft + (tab.C31 / h) * k1 + (tab.C32 / h) * k2,
        )

        # the fourth stage reuses the residual of the third
        k4 = lu_solve(
            factors,
            dy + (h * tab.D4) * ft + (tab.C41 / h) * k1 + (tab.C42 / h) * k2
            + (tab.C43 / h) * k3,
        )

        y_new = y + tab.B1 * k1 + tab.B2 * k2 + tab.B3 * k3 + tab.B4 * k4
        err_vec = tab.E1 * k1 + tab.E2 * k2 + tab.E3 * k3 + tab.E4 * k4
        return y_new, err_vec

    def _report(self, t: float, h: float, err: float, accepted: bool, h_next: float) -> None:
        if self.observer is not None:
            self.observer(StepReport(t=t, h=h, error=err, accepted=accepted, h_next=h_next))

    # ---- sensitivities -----------------------------------------------------

    def _propagate_sensitivities(
        self,
        ctl: _Control,
        y_old: Array,
        y: Array,
        f_old: Array,
        sens: Array,
        uround: float,
        evals_before: tuple[int, int, int],
        keep_warm: bool = True,
    ) -> tuple[Array, _JacobianSnapshot | None]:
        """Advance ``S`` over the accepted step ``[xold, x]``.

        Returns the new sensitivity matrix and, when Jacobian reuse is
        enabled and *keep_warm* is set, the snapshot taken at the new base
        point.
        """
        dt = ctl.x - ctl.xold
        snapshot = None
        if self.config.reuse_jacobian and keep_warm:
            f1, jac1, _ = self._residual_and_jacobian(ctl.x, y)
            snapshot = _JacobianSnapshot(f0=f1, jac=jac1)
        else:
            f1 = self._residual(ctl.x, y)

        # Hermite interpolation: y(t+dt/2) = (y(t)+y(t+dt))/2 + dt/8*(f(t)-f(t+dt))
        y_mid = 0.5 * (y_old + y) + (dt / 8.0) * (f_old - f1)
        _, jac_mid, fq_mid = self._residual_and_jacobian(
            0.5 * (ctl.xold + ctl.x), y_mid, with_parameters=True
        )
        if fq_mid is None:
            fq_mid = jnp.zeros_like(sens)
        elif fq_mid.shape != sens.shape:
            raise ConfigurationError(
                f"Model returned df/dq of shape {fq_mid.shape}, "
                f"expected {sens.shape} to match the sensitivity matrix"
            )

        factors = factor_shifted(jac_mid, 2.0 / dt, uround)
        if factors is None:
            ctl.nsing_total += 1
            raise SingularJacobianError(
                f"Singular sensitivity matrix on [{ctl.xold:g}, {ctl.x:g}]",
                t=ctl.xold, stats=self._stats(ctl, evals_before),
            )
        sens = sens + 2.0 * lu_solve(factors, jac_mid @ sens + fq_mid)
        return sens, snapshot
