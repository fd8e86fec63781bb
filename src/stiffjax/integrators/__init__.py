"""Stiff ODE integrators with forward sensitivity propagation.

Provides the GRK4 linearly-implicit Runge-Kutta (Rosenbrock) integrator,
an embedded 4(3) method with six selectable coefficient tableaus,
automatic step-size control, Jacobian reuse across rejected steps, and
implicit-midpoint propagation of the sensitivity matrix.

Available components:

- :class:`StiffIntegrator` -- Integrates one interval per ``solve`` call
- :class:`IntegratorConfig` -- Tolerances, limits and method selection
- :class:`SegmentState` -- Caller-owned state and sensitivity container
- :class:`SolveResult` / :class:`IntegratorStats` -- Results and counters
- :class:`StepReport` -- Per-attempt report passed to observers
- :class:`RosenbrockMethod` / :func:`get_tableau` -- Tableau selection

Typical use::

    integrator = StiffIntegrator(model, IntegratorConfig(rtol=1e-8, atol=1e-10))
    result = integrator.solve(k, t0, t1, SegmentState(x=x0, sensitivities=S0), q)
"""

from stiffjax.integrators._adaptive import compute_error_norm, compute_next_step_size
from stiffjax.integrators._tableaus import (
    RosenbrockMethod,
    RosenbrockTableau,
    get_tableau,
)
from stiffjax.integrators._types import (
    IntegratorConfig,
    IntegratorStats,
    SegmentState,
    SolveResult,
    StepReport,
)
from stiffjax.integrators.grk4 import StiffIntegrator

__all__ = [
    "IntegratorConfig",
    "IntegratorStats",
    "RosenbrockMethod",
    "RosenbrockTableau",
    "SegmentState",
    "SolveResult",
    "StepReport",
    "StiffIntegrator",
    "compute_error_norm",
    "compute_next_step_size",
    "get_tableau",
]
