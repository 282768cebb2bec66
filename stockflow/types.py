"""
Type definitions for the stock-and-flow engine
Callback signatures shared by the integrators, the driver and the simulator
"""

from typing import Any, Callable, Dict, Optional, TypedDict, TypeVar

import numpy as np

C = TypeVar("C")

# Mapping from element id to value, keyed by the ids of one element family
ElementObject = Dict[str, float]

# Flat vector ordered like the ids of one element family
ElementArray = np.ndarray

# Net rate of change per stock at (stocks, t), as a vector
FlowEvaluator = Callable[[ElementArray, float], ElementArray]

# Single-step IVP method: (y, x, h, derivatives) -> y at x + h
IVPIntegrator = Callable[[ElementArray, float, float, FlowEvaluator], ElementArray]


class ConvergenceCriterionResult(TypedDict):
    """
    Typed dictionary returned by a convergence criterion

    userdata is handed back to the criterion on the next iteration and
    returned by converge() once done is True.
    """
    userdata: Any
    done: bool


# (stocks, t, previous userdata or None, iteration index) -> result
ConvergenceCriterion = Callable[
    [ElementArray, float, Optional[Any], int], ConvergenceCriterionResult
]


class CacheStatsDict(TypedDict):
    """
    Typed dictionary for flow-per-stock cache statistics
    """
    cached_t: Optional[float]
    hits: int
    misses: int
    hit_rate: float
