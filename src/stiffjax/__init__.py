"""
stiffjax is a stiff ODE integrator with forward sensitivities implemented in JAX.
"""

from .config import set_dtype, get_dtype, get_unit_roundoff

from .errors import (
    IntegratorError,
    ConfigurationError,
    SingularJacobianError,
    StepLimitError,
    StepSizeUnderflowError,
)

from .model import ModelOracle, AutodiffModel

from .integrators import (
    IntegratorConfig,
    IntegratorStats,
    RosenbrockMethod,
    RosenbrockTableau,
    SegmentState,
    SolveResult,
    StepReport,
    StiffIntegrator,
    get_tableau,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "set_dtype",
    "get_dtype",
    "get_unit_roundoff",
    # Errors
    "IntegratorError",
    "ConfigurationError",
    "SingularJacobianError",
    "StepLimitError",
    "StepSizeUnderflowError",
    # Models
    "ModelOracle",
    "AutodiffModel",
    # Integrators
    "IntegratorConfig",
    "IntegratorStats",
    "RosenbrockMethod",
    "RosenbrockTableau",
    "SegmentState",
    "SolveResult",
    "StepReport",
    "StiffIntegrator",
    "get_tableau",
]
