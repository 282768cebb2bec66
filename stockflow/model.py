"""
Generic stock-and-flow model
Maps named element families to flat arrays and defines the domain hooks

A model owns four ordered element-id families (stocks, flows, variables,
parameters). The order of each family is fixed for the lifetime of the
model and defines the index of every id in the arrays handed to the
integrators. All numeric code downstream trusts index alignment, so every
conversion checks the key set or length and raises ElementMismatchError
instead of truncating or padding.
"""

from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple
import logging

import numpy as np
from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from stockflow import box_model
from stockflow.exceptions import ElementMismatchError, ModelStructureError
from stockflow.types import ElementArray, ElementObject, FlowEvaluator, IVPIntegrator

logger = logging.getLogger(__name__)


def _check_keys(ids: Sequence[str], elements: Mapping[str, float], family: str) -> None:
    if len(elements) == len(ids) and all(i in elements for i in ids):
        return
    missing = [i for i in ids if i not in elements]
    id_set = set(ids)
    unknown = sorted(str(k) for k in elements if k not in id_set)
    raise ElementMismatchError(
        f"Element object does not match the '{family}' ids "
        f"(missing: {missing}, unknown: {unknown})",
        family=family,
        missing=missing,
        unknown=unknown,
    )


def elements_to_array(
    ids: Sequence[str], elements: Mapping[str, float], family: str = "elements"
) -> ElementArray:
    """
    Convert an element object to an array ordered like ids

    Args:
        ids: Ordered element ids of one family
        elements: Mapping with exactly the keys in ids
        family: Family name used in error messages

    Returns:
        Float array where entry i is elements[ids[i]]

    Raises:
        ElementMismatchError: If the key set differs from ids
    """
    _check_keys(ids, elements, family)
    return np.array([elements[i] for i in ids], dtype=float)


def array_to_elements(
    ids: Sequence[str], array: Sequence[float], family: str = "elements"
) -> ElementObject:
    """
    Convert an array ordered like ids back to an element object

    Args:
        ids: Ordered element ids of one family
        array: One-dimensional sequence with len(ids) entries
        family: Family name used in error messages

    Returns:
        Dictionary mapping ids[i] to array[i]

    Raises:
        ElementMismatchError: If the array shape does not match ids
    """
    values = np.asarray(array, dtype=float)
    if values.shape != (len(ids),):
        raise ElementMismatchError(
            f"Array of shape {values.shape} does not match the {len(ids)} "
            f"'{family}' ids",
            family=family,
            details={"expected_length": len(ids), "shape": list(values.shape)},
        )
    return {element_id: float(value) for element_id, value in zip(ids, values)}


class ElementFamily:
    """
    Ordered, immutable list of element ids of one kind

    Conversion in both directions is a bijection defined by the id order.
    """

    def __init__(self, name: str, ids: Iterable[str]):
        self.name = name
        self.ids: Tuple[str, ...] = tuple(ids)

        seen = set()
        duplicates = []
        for element_id in self.ids:
            if element_id in seen:
                duplicates.append(element_id)
            seen.add(element_id)
        if duplicates:
            raise ModelStructureError(
                f"Duplicate ids in '{name}': {duplicates}",
                details={"family": name, "duplicates": duplicates},
            )

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self):
        return iter(self.ids)

    def __contains__(self, element_id: object) -> bool:
        return element_id in self.ids

    def __repr__(self) -> str:
        return f"ElementFamily({self.name!r}, {list(self.ids)!r})"

    def index(self, element_id: str) -> int:
        """Position of element_id in every array of this family"""
        try:
            return self.ids.index(element_id)
        except ValueError:
            raise ElementMismatchError(
                f"Unknown id '{element_id}' in '{self.name}'",
                family=self.name,
                unknown=[element_id],
            ) from None

    def to_array(self, elements: Mapping[str, float]) -> ElementArray:
        return elements_to_array(self.ids, elements, self.name)

    def to_elements(self, array: Sequence[float]) -> ElementObject:
        return array_to_elements(self.ids, array, self.name)

    def validate(self, elements: Mapping[str, float]) -> None:
        """Raise ElementMismatchError unless the key set equals the family ids"""
        _check_keys(self.ids, elements, self.name)


class Record(BaseModel):
    """
    Fully evaluated snapshot of a model at simulated time t

    Attributes:
        t: Simulated time (not wall-clock time)
        stocks: Stock values
        parameters: Parameter values used for the evaluation
        variables: Derived, non-accumulating values
        flows: Flow rates

    The four families are stored as read-only mappings; copy them with
    dict() to get a modifiable version.
    """

    model_config = ConfigDict(frozen=True)

    t: float
    stocks: Mapping[str, float]
    parameters: Mapping[str, float]
    variables: Mapping[str, float]
    flows: Mapping[str, float]

    @field_validator("stocks", "parameters", "variables", "flows")
    @classmethod
    def freeze_elements(cls, v: Mapping[str, float]) -> Mapping[str, float]:
        """Store an independent, read-only copy"""
        return MappingProxyType(dict(v))

    @field_serializer("stocks", "parameters", "variables", "flows")
    def serialize_elements(self, v: Mapping[str, float]) -> Dict[str, float]:
        return dict(v)


class Model(ABC):
    """
    Abstract stock-and-flow model

    Concrete models declare their four element-id families and implement
    two pure hooks:

    - evaluate(stocks, parameters, t) -> Record
    - accumulate_flows_per_stock(flows) -> net rate of change per stock

    Both must be free of hidden state and side effects; the simulator's
    caching relies on evaluating the same inputs giving the same output.
    """

    def __init__(
        self,
        stock_ids: Iterable[str],
        flow_ids: Iterable[str],
        variable_ids: Iterable[str],
        parameter_ids: Iterable[str],
    ):
        self.stocks = ElementFamily("stocks", stock_ids)
        self.flows = ElementFamily("flows", flow_ids)
        self.variables = ElementFamily("variables", variable_ids)
        self.parameters = ElementFamily("parameters", parameter_ids)

        if len(self.stocks) == 0:
            raise ModelStructureError("A model needs at least one stock")

    @property
    def stock_ids(self) -> Tuple[str, ...]:
        return self.stocks.ids

    @property
    def flow_ids(self) -> Tuple[str, ...]:
        return self.flows.ids

    @property
    def variable_ids(self) -> Tuple[str, ...]:
        return self.variables.ids

    @property
    def parameter_ids(self) -> Tuple[str, ...]:
        return self.parameters.ids

    # ------------------------------------------------------------------
    # Domain hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def evaluate(
        self, stocks: ElementObject, parameters: ElementObject, t: float
    ) -> Record:
        """Compute all flows and variables for the given stocks and parameters"""

    @abstractmethod
    def accumulate_flows_per_stock(self, flows: Mapping[str, float]) -> ElementObject:
        """Reduce flows to one signed net rate per stock (inflows positive)"""

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def stocks_to_array(self, stocks: Mapping[str, float]) -> ElementArray:
        return self.stocks.to_array(stocks)

    def array_to_stocks(self, array: Sequence[float]) -> ElementObject:
        return self.stocks.to_elements(array)

    def flows_to_array(self, flows: Mapping[str, float]) -> ElementArray:
        return self.flows.to_array(flows)

    def array_to_flows(self, array: Sequence[float]) -> ElementObject:
        return self.flows.to_elements(array)

    def variables_to_array(self, variables: Mapping[str, float]) -> ElementArray:
        return self.variables.to_array(variables)

    def array_to_variables(self, array: Sequence[float]) -> ElementObject:
        return self.variables.to_elements(array)

    def parameters_to_array(self, parameters: Mapping[str, float]) -> ElementArray:
        return self.parameters.to_array(parameters)

    def array_to_parameters(self, array: Sequence[float]) -> ElementObject:
        return self.parameters.to_elements(array)

    # ------------------------------------------------------------------
    # Evaluation helpers
    # ------------------------------------------------------------------

    def create_record(
        self,
        t: float,
        stocks: Mapping[str, float],
        parameters: Mapping[str, float],
        variables: Mapping[str, float],
        flows: Mapping[str, float],
    ) -> Record:
        """
        Build a Record, checking every family's key set

        Raises:
            ElementMismatchError: If any mapping does not match its family
        """
        self._validate_families(stocks, parameters, variables, flows)
        return Record(
            t=t,
            stocks=stocks,
            parameters=parameters,
            variables=variables,
            flows=flows,
        )

    def validate_record(self, record: Record) -> Record:
        """
        Check a record produced by evaluate() against the model's families

        Args:
            record: Record to check

        Returns:
            The same record

        Raises:
            ElementMismatchError: If any family's key set does not match
        """
        self._validate_families(
            record.stocks, record.parameters, record.variables, record.flows
        )
        return record

    def _validate_families(
        self,
        stocks: Mapping[str, float],
        parameters: Mapping[str, float],
        variables: Mapping[str, float],
        flows: Mapping[str, float],
    ) -> None:
        self.stocks.validate(stocks)
        self.parameters.validate(parameters)
        self.variables.validate(variables)
        self.flows.validate(flows)

    def evaluate_flow_per_stock(
        self, stocks: ElementObject, parameters: ElementObject, t: float
    ) -> ElementObject:
        """Net rate of change per stock at (stocks, parameters, t)"""
        record = self.evaluate(stocks, parameters, t)
        return self.accumulate_flows_per_stock(record.flows)

    def create_flow_evaluator(self, parameters: Mapping[str, float]) -> FlowEvaluator:
        """
        Build the array-in/array-out derivative function for fixed parameters

        Args:
            parameters: Parameter values; a copy is captured

        Returns:
            Function (stock_array, t) -> flow-per-stock array
        """
        self.parameters.validate(parameters)
        fixed_parameters = dict(parameters)

        def evaluate_flow_per_stock(stock_array: ElementArray, t: float) -> ElementArray:
            stocks = self.array_to_stocks(stock_array)
            flow_per_stock = self.evaluate_flow_per_stock(stocks, fixed_parameters, t)
            return self.stocks_to_array(flow_per_stock)

        return evaluate_flow_per_stock

    def step(
        self,
        stocks: Mapping[str, float],
        t: float,
        h: float,
        flow_evaluator: FlowEvaluator,
        integrator: Optional[IVPIntegrator] = None,
    ) -> ElementObject:
        """
        Advance named stocks from t to t + h

        Args:
            stocks: Stock values at t
            t: Current simulated time
            h: Step size
            flow_evaluator: Evaluator from create_flow_evaluator() or a wrapper of it
            integrator: Single-step integrator (default: rk4)

        Returns:
            Stock values at t + h
        """
        stock_array = self.stocks_to_array(stocks)
        new_stock_array = box_model.step(stock_array, t, h, flow_evaluator, integrator)
        return self.array_to_stocks(new_stock_array)
