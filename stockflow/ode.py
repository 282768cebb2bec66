"""
Fixed-step integrators for initial value problems
Implements explicit Euler and classic 4th-order Runge-Kutta on numpy vectors
"""

from typing import Dict
import logging

import numpy as np

from stockflow.constants import EULER, RK4, VALID_INTEGRATION_METHODS
from stockflow.exceptions import SimulationError
from stockflow.types import ElementArray, FlowEvaluator, IVPIntegrator

logger = logging.getLogger(__name__)


def euler(
    y: ElementArray, x: float, h: float, derivatives: FlowEvaluator
) -> ElementArray:
    """
    Advance y by one explicit Euler step

    The Euler method is a first-order method:
    y_{n+1} = y_n + h * f(x_n, y_n)

    Local truncation error is O(h^2). One derivative evaluation per step.

    Args:
        y: State vector at x (not modified)
        x: Independent variable (simulated time)
        h: Step size
        derivatives: Callback returning dy/dx at (y, x)

    Returns:
        New state vector at x + h
    """
    y = np.asarray(y, dtype=float)
    dydx = np.asarray(derivatives(y, x), dtype=float)
    return y + h * dydx


def rk4(
    y: ElementArray, x: float, h: float, derivatives: FlowEvaluator
) -> ElementArray:
    """
    Advance y by one classic Runge-Kutta (RK4) step

    k1 = f(x_n, y_n)
    k2 = f(x_n + h/2, y_n + h*k1/2)
    k3 = f(x_n + h/2, y_n + h*k2/2)
    k4 = f(x_n + h, y_n + h*k3)
    y_{n+1} = y_n + (h/6) * (k1 + 2*k2 + 2*k3 + k4)

    Local truncation error is O(h^5). Four derivative evaluations per step,
    the first one always at exactly (y, x).

    Args:
        y: State vector at x (not modified)
        x: Independent variable (simulated time)
        h: Step size
        derivatives: Callback returning dy/dx at (y, x)

    Returns:
        New state vector at x + h
    """
    y = np.asarray(y, dtype=float)
    h2 = h / 2.0
    h6 = h / 6.0
    xhh = x + h2

    k1 = np.asarray(derivatives(y, x), dtype=float)
    k2 = np.asarray(derivatives(y + h2 * k1, xhh), dtype=float)
    k3 = np.asarray(derivatives(y + h2 * k2, xhh), dtype=float)
    k4 = np.asarray(derivatives(y + h * k3, x + h), dtype=float)

    return y + h6 * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


INTEGRATORS: Dict[str, IVPIntegrator] = {
    EULER: euler,
    RK4: rk4,
}


def get_integrator(method: str) -> IVPIntegrator:
    """
    Look up an integrator by method name

    Args:
        method: Integration method name ('euler' or 'rk4')

    Returns:
        The integrator function

    Raises:
        SimulationError: If the method is unknown
    """
    key = method.lower() if isinstance(method, str) else method
    if key not in INTEGRATORS:
        raise SimulationError(
            code="invalid_integration_method",
            message=f"Unknown integration method '{method}'",
            details={"valid_methods": sorted(VALID_INTEGRATION_METHODS)},
        )
    return INTEGRATORS[key]
