"""
Box-model driver
Runs single integration steps or a convergence loop on top of an integrator
"""

from typing import Any, Optional
import logging

import numpy as np

from stockflow.ode import rk4
from stockflow.types import (
    ConvergenceCriterion,
    ElementArray,
    FlowEvaluator,
    IVPIntegrator,
)

logger = logging.getLogger(__name__)


def with_known_flows(
    flows_at_t: ElementArray, t: float, compute_flows: FlowEvaluator
) -> FlowEvaluator:
    """
    Wrap a flow evaluator so that the derivative at t is served from flows_at_t

    Every request for x == t returns a copy of flows_at_t; any other x
    (the interior RK4 stages) is delegated to compute_flows.

    Args:
        flows_at_t: Derivative vector already known at t
        t: Time at which flows_at_t is valid
        compute_flows: Evaluator used for every other time

    Returns:
        Flow evaluator with the same signature as compute_flows
    """
    known = np.array(flows_at_t, dtype=float)

    def get_flows(y: ElementArray, x: float) -> ElementArray:
        if x == t:
            return known.copy()
        return compute_flows(y, x)

    return get_flows


def step(
    stocks_at_t: ElementArray,
    t: float,
    h: float,
    compute_flows: FlowEvaluator,
    integrator: Optional[IVPIntegrator] = None,
    *,
    flows_at_t: Optional[ElementArray] = None,
) -> ElementArray:
    """
    Advance the stock vector from t to t + h

    Args:
        stocks_at_t: Stock vector at t
        t: Current simulated time
        h: Step size
        compute_flows: Flow evaluator (stocks, t) -> net flow per stock
        integrator: Single-step integrator (default: rk4)
        flows_at_t: Optional derivative already known at t, saves one evaluation

    Returns:
        Stock vector at t + h
    """
    if integrator is None:
        integrator = rk4
    if flows_at_t is not None:
        compute_flows = with_known_flows(flows_at_t, t, compute_flows)
    return integrator(stocks_at_t, t, h, compute_flows)


def converge(
    stocks_at_t: ElementArray,
    t: float,
    h: float,
    compute_flows: FlowEvaluator,
    criterion: ConvergenceCriterion,
    integrator: Optional[IVPIntegrator] = None,
    *,
    flows_at_t: Optional[ElementArray] = None,
) -> Any:
    """
    Step the stocks forward until the criterion reports done

    The criterion is first evaluated on the initial state (iteration 0).
    If it is already done, no step is taken. Otherwise the loop steps,
    advances t by h and re-evaluates the criterion with the previous
    userdata until done is True.

    There is no iteration cap: stopping logic (tolerances, maximum
    iteration counts) belongs to the criterion.

    Args:
        stocks_at_t: Stock vector at t
        t: Start time
        h: Step size
        compute_flows: Flow evaluator (stocks, t) -> net flow per stock
        criterion: Callback (stocks, t, previous userdata, i) -> {"userdata", "done"}
        integrator: Single-step integrator (default: rk4)
        flows_at_t: Optional derivative already known at the start time

    Returns:
        The userdata of the last criterion evaluation
    """
    if integrator is None:
        integrator = rk4
    if flows_at_t is not None:
        compute_flows = with_known_flows(flows_at_t, t, compute_flows)

    iterations = 0
    result = criterion(stocks_at_t, t, None, iterations)
    userdata, done = result["userdata"], result["done"]

    new_t = t
    new_stocks = stocks_at_t
    while not done:
        new_stocks = step(new_stocks, new_t, h, compute_flows, integrator)
        new_t += h
        iterations += 1
        result = criterion(new_stocks, new_t, userdata, iterations)
        userdata, done = result["userdata"], result["done"]

    logger.debug(f"Converged after {iterations} iteration(s) at t={new_t:.4f}")
    return userdata
