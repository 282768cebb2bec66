"""
Model simulator
Owns the current record of one running model and steps it forward in time
"""

from typing import Dict, Mapping, Optional
import logging

from stockflow.exceptions import SimulationError
from stockflow.model import Model, Record
from stockflow.models import ScenarioConfig
from stockflow.ode import get_integrator
from stockflow.types import CacheStatsDict, ElementArray, FlowEvaluator, IVPIntegrator
from stockflow.utils.cache import CachedFlows, FlowPerStockCache

logger = logging.getLogger(__name__)


class ModelSimulator:
    """
    Stateful driver for one model instance

    The simulator keeps the current Record and a single-slot cache of the
    flow-per-stock vector at record.t. The first derivative evaluation of
    every step happens at the pre-step time, so it is served from the cache
    instead of evaluating the model again.

    Record, cache entry and cache statistics are updated together only after
    the integration step and the evaluation of the new record have both
    succeeded. Every evaluated record is checked against the model's element
    families. If the model raises, the exception propagates and the simulator
    is left as it was.

    Not thread-safe: calls must come from a single driving loop.
    """

    def __init__(
        self,
        model: Model,
        stocks: Mapping[str, float],
        parameters: Mapping[str, float],
        t: float = 0.0,
        step_size: float = 1.0,
        delta_per_second: float = 1.0,
        integrator: Optional[IVPIntegrator] = None,
    ):
        """
        Initialize simulator and evaluate the initial record

        Args:
            model: Model to simulate
            stocks: Initial stock values
            parameters: Parameter values (copied)
            t: Initial simulated time
            step_size: Default and maximum integration step size
            delta_per_second: Simulated time units per wall-clock second for tick()
            integrator: Single-step integrator (default: rk4)
        """
        for name, value in (
            ("step_size", step_size),
            ("delta_per_second", delta_per_second),
        ):
            if not value > 0:
                raise SimulationError(
                    code=f"invalid_{name}",
                    message=f"{name} must be greater than 0, got {value}",
                    details={name: value},
                )

        self.model = model
        self.step_size = step_size
        self.delta_per_second = delta_per_second
        self.integrator = integrator

        self._parameters = dict(parameters)
        self._flow_evaluator = model.create_flow_evaluator(self._parameters)
        self._cache = FlowPerStockCache()

        record = model.validate_record(
            model.evaluate(dict(stocks), dict(self._parameters), t)
        )
        self._cache.put(record.t, self._accumulate(record))
        self.record: Record = record

        logger.info(
            f"Created simulator for {type(model).__name__} at t={t} "
            f"(stocks: {len(model.stocks)}, flows: {len(model.flows)}, "
            f"step_size={step_size})"
        )

    @classmethod
    def from_config(cls, model: Model, scenario: ScenarioConfig) -> "ModelSimulator":
        """
        Create a simulator from a scenario configuration

        Args:
            model: Model to simulate
            scenario: Initial stocks, parameters and simulation settings

        Returns:
            Configured simulator
        """
        simulation = scenario.simulation
        return cls(
            model,
            scenario.initial_stocks,
            scenario.initial_parameters,
            t=simulation.start_time,
            step_size=simulation.step_size,
            delta_per_second=simulation.delta_per_second,
            integrator=get_integrator(simulation.method),
        )

    @property
    def parameters(self) -> dict:
        """Copy of the parameters driving the simulation"""
        return dict(self._parameters)

    @property
    def flow_per_stock_cache(self) -> Optional[CachedFlows]:
        return self._cache.entry

    def _accumulate(self, record: Record) -> ElementArray:
        return self.model.stocks_to_array(
            self.model.accumulate_flows_per_stock(record.flows)
        )

    def evaluate_flow_per_stock_with_cache(
        self, stock_array: ElementArray, t: float
    ) -> ElementArray:
        """
        Flow evaluator that serves the cached vector when t matches

        Args:
            stock_array: Stock vector
            t: Simulated time

        Returns:
            Flow-per-stock vector at (stock_array, t)
        """
        lookups = {"hits": 0, "misses": 0}
        result = self._cached_flow_evaluator(lookups)(stock_array, t)
        self._cache.record_lookups(**lookups)
        return result

    def _cached_flow_evaluator(self, lookups: Dict[str, int]) -> FlowEvaluator:
        # Counts lookups into the given tally; the caller records them on the cache
        def evaluate(stock_array: ElementArray, t: float) -> ElementArray:
            cached = self._cache.get(t, count=False)
            if cached is not None:
                lookups["hits"] += 1
                return cached
            lookups["misses"] += 1
            return self._flow_evaluator(stock_array, t)

        return evaluate

    def step(self, h: Optional[float] = None) -> Record:
        """
        Advance the simulation by one integration step

        Args:
            h: Step size (default: self.step_size)

        Returns:
            The new current record
        """
        if h is None:
            h = self.step_size

        stocks, t = self.record.stocks, self.record.t
        lookups = {"hits": 0, "misses": 0}
        new_stocks = self.model.step(
            stocks,
            t,
            h,
            self._cached_flow_evaluator(lookups),
            self.integrator,
        )
        new_record = self.model.validate_record(
            self.model.evaluate(new_stocks, dict(self._parameters), t + h)
        )
        new_flows = self._accumulate(new_record)

        self._cache.put(new_record.t, new_flows)
        self._cache.record_lookups(**lookups)
        self.record = new_record

        logger.debug(
            f"Stepped from t={t:.4f} to t={new_record.t:.4f}",
            extra={"model": type(self.model).__name__, "t": new_record.t, "h": h},
        )
        return new_record

    def tick(self, seconds: float) -> Record:
        """
        Advance by elapsed wall-clock time

        Simulated time moves by seconds * delta_per_second, split into steps
        no larger than step_size.

        Args:
            seconds: Elapsed wall-clock seconds

        Returns:
            The current record after stepping
        """
        target_t = self.record.t + seconds * self.delta_per_second
        while self.record.t < target_t:
            self.step(min(self.step_size, target_t - self.record.t))
        return self.record

    def set_parameters(self, parameters: Mapping[str, float]) -> Record:
        """
        Replace the parameters and re-evaluate the current record

        The cache is recomputed at the current time, since cached flows
        depend on the old parameters.

        Args:
            parameters: New parameter values (copied)

        Returns:
            The re-evaluated current record
        """
        new_parameters = dict(parameters)
        new_flow_evaluator = self.model.create_flow_evaluator(new_parameters)
        new_record = self.model.validate_record(
            self.model.evaluate(
                dict(self.record.stocks), dict(new_parameters), self.record.t
            )
        )
        new_flows = self._accumulate(new_record)

        self._parameters = new_parameters
        self._flow_evaluator = new_flow_evaluator
        self._cache.put(new_record.t, new_flows)
        self.record = new_record

        logger.info(
            "Parameters replaced",
            extra={"model": type(self.model).__name__, "t": new_record.t},
        )
        return new_record

    def get_cache_stats(self) -> CacheStatsDict:
        """Hit/miss statistics of the flow-per-stock cache"""
        return self._cache.get_stats()
