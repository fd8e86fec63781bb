"""Exception types raised by the stiff integrators.

Every fatal condition of a solve maps to one subclass of
:class:`IntegratorError`:

- :class:`ConfigurationError` -- invalid tolerances, limits or method id,
  detected before any stepping occurs.
- :class:`SingularJacobianError` -- the shifted iteration matrix stayed
  singular for ``max_singular`` consecutive factorizations.
- :class:`StepLimitError` -- more than ``nmax`` steps were needed.
- :class:`StepSizeUnderflowError` -- the step size became too small to
  make progress.

Plain error-norm rejections are not errors; they only show up in the
rejection counters.
"""

from __future__ import annotations

from typing import Any


class IntegratorError(RuntimeError):
    """Base class for fatal integration failures.

    Args:
        message: Human readable description.
        t: Integration time reached when the failure occurred, if any.
        stats: Counters of the aborted solve, if any.
    """

    def __init__(self, message: str, *, t: float | None = None, stats: Any = None) -> None:
        super().__init__(message)
        self.t = t
        self.stats = stats


class ConfigurationError(IntegratorError, ValueError):
    """Invalid integrator configuration."""


class SingularJacobianError(IntegratorError):
    """The iteration matrix ``I/(h*gamma) - J`` could not be factorized."""


class StepLimitError(IntegratorError):
    """The integration needed more than ``nmax`` steps."""


class StepSizeUnderflowError(IntegratorError):
    """The step size fell below the unit roundoff of the current time."""
