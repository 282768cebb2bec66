"""
Pydantic models for the stock-and-flow engine
Defines the scenario and simulation configuration consumed by the simulator
"""

from pydantic import BaseModel, Field, field_validator
from typing import Dict

from stockflow.constants import (
    DEFAULT_DELTA_PER_SECOND,
    DEFAULT_INTEGRATION_METHOD,
    DEFAULT_START_TIME,
    DEFAULT_STEP_SIZE,
    VALID_INTEGRATION_METHODS,
)


class SimulationConfig(BaseModel):
    """
    Configuration for driving a simulation

    Attributes:
        start_time: Simulated time of the initial record
        step_size: Maximum integration step size (must be > 0)
        delta_per_second: Simulated time units per wall-clock second (must be > 0)
        method: Integration method ('euler' or 'rk4')
    """

    start_time: float = DEFAULT_START_TIME
    step_size: float = Field(
        DEFAULT_STEP_SIZE, gt=0, description="Step size must be greater than 0"
    )
    delta_per_second: float = Field(
        DEFAULT_DELTA_PER_SECOND,
        gt=0,
        description="Simulated time per wall-clock second must be greater than 0",
    )
    method: str = DEFAULT_INTEGRATION_METHOD

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Validate integration method"""
        if v.lower() not in VALID_INTEGRATION_METHODS:
            raise ValueError(
                f"Method must be one of {sorted(VALID_INTEGRATION_METHODS)}"
            )
        return v.lower()


class ScenarioConfig(BaseModel):
    """
    Initial conditions plus simulation settings for one run

    Attributes:
        initial_stocks: Stock values at start_time
        initial_parameters: Parameter values for the run
        simulation: Simulation driving configuration
    """

    initial_stocks: Dict[str, float]
    initial_parameters: Dict[str, float]
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
