# /// script
# requires-python = ">=3.11"
# dependencies = ["typer>=0.9.0", "stiffjax"]
#
# [tool.uv.sources]
# stiffjax = { path = ".." }
# ///
"""Propagate sensitivities of logistic growth and compare with the analytic values.

Integrates ``dy/dt = r y (1 - y)`` together with the sensitivity matrix
``[dy/dy0 | dy/dr]`` and prints both columns next to the closed-form
derivatives at a set of output times.

Requires stiffjax to be installed (``uv pip install -e .`` from the repo root).

Usage:
    uv run examples/sensitivities.py [OPTIONS]

Examples:
    uv run examples/sensitivities.py --rate 2.0 --y0 0.1
    uv run examples/sensitivities.py --hmax 0.001
"""

import math
from typing import Annotated

import jax.numpy as jnp
import typer

from stiffjax import (
    AutodiffModel,
    IntegratorConfig,
    SegmentState,
    StiffIntegrator,
    set_dtype,
)

set_dtype(jnp.float64)  # Must be before any JIT compilation


def logistic(t, x, q):
    return q[0] * x * (1.0 - x)


def main(
    rate: Annotated[float, typer.Option(help="Growth rate r")] = 2.0,
    y0: Annotated[float, typer.Option(help="Initial value")] = 0.1,
    t_final: Annotated[float, typer.Option(help="Final time")] = 5.0,
    outputs: Annotated[int, typer.Option(help="Number of output times")] = 5,
    hmax: Annotated[
        float, typer.Option(help="Maximum step size (controls sensitivity accuracy)")
    ] = 0.01,
) -> None:
    """Compare propagated and analytic sensitivities of the logistic equation."""
    model = AutodiffModel(logistic)
    integrator = StiffIntegrator(model, IntegratorConfig(rtol=1e-8, atol=1e-10, hmax=hmax))
    q = jnp.array([rate])
    state = SegmentState(x=jnp.array([y0]), sensitivities=model.initial_sensitivities(1, q))

    print(f"{'t':>6} {'dy/dy0':>12} {'exact':>12} {'dy/dr':>12} {'exact':>12}")
    t_prev = 0.0
    for k in range(outputs):
        t = t_final * (k + 1) / outputs
        integrator.solve(k, t_prev, t, state, q=q)
        t_prev = t

        decay = math.exp(-rate * t)
        y = 1.0 / (1.0 + (1.0 / y0 - 1.0) * decay)
        dy_dy0 = decay * y**2 / y0**2
        dy_dr = t * (1.0 / y0 - 1.0) * decay * y**2
        s = state.sensitivities
        print(
            f"{t:6.2f} {float(s[0, 0]):12.6e} {dy_dy0:12.6e} "
            f"{float(s[0, 1]):12.6e} {dy_dr:12.6e}"
        )

    print(f"\nSensitivity evaluations: {integrator.sen_evals}")
    print("\nDone.")


if __name__ == "__main__":
    typer.run(main)
