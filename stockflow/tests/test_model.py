"""
Tests for element families, record construction and the abstract model
"""

import math

import numpy as np
import pydantic
import pytest

from stockflow.exceptions import ElementMismatchError, ModelStructureError
from stockflow.model import (
    ElementFamily,
    Model,
    Record,
    array_to_elements,
    elements_to_array,
)
from stockflow.ode import euler


def test_elements_to_array_uses_id_order():
    """Array entries follow the id order, not the mapping's insertion order"""
    ids = ["x", "y", "z"]
    array = elements_to_array(ids, {"z": 3.0, "x": 1.0, "y": 2.0})
    np.testing.assert_array_equal(array, [1.0, 2.0, 3.0])


def test_round_trip_object_array_object():
    """object -> array -> object is lossless"""
    ids = ("p", "q", "r", "s")
    obj = {"s": -0.1, "q": 1e300, "r": 1.0 / 3.0, "p": 0.0}

    assert array_to_elements(ids, elements_to_array(ids, obj)) == obj


def test_round_trip_array_object_array():
    """array -> object -> array is lossless"""
    ids = ("p", "q", "r")
    array = np.array([math.pi, -2.5e-12, 7.0])

    assert np.array_equal(elements_to_array(ids, array_to_elements(ids, array)), array)


def test_elements_to_array_missing_id():
    """Missing ids fail loudly instead of being filled in"""
    with pytest.raises(ElementMismatchError) as exc_info:
        elements_to_array(["a", "b"], {"a": 1.0}, "stocks")

    assert exc_info.value.missing == ["b"]
    assert exc_info.value.family == "stocks"
    assert exc_info.value.code == "element_mismatch"


def test_elements_to_array_unknown_id():
    """Extra ids fail loudly instead of being dropped"""
    with pytest.raises(ElementMismatchError) as exc_info:
        elements_to_array(["a"], {"a": 1.0, "c": 2.0})

    assert exc_info.value.unknown == ["c"]


def test_array_to_elements_length_mismatch():
    """Arrays of the wrong length are never truncated or padded"""
    with pytest.raises(ElementMismatchError):
        array_to_elements(["a", "b"], [1.0, 2.0, 3.0])
    with pytest.raises(ElementMismatchError):
        array_to_elements(["a", "b"], [1.0])
    with pytest.raises(ElementMismatchError):
        array_to_elements(["a", "b"], [[1.0, 2.0]])


def test_element_family_rejects_duplicates():
    """Duplicate ids in a family are a structural error"""
    with pytest.raises(ModelStructureError) as exc_info:
        ElementFamily("stocks", ["a", "b", "a"])

    assert exc_info.value.details["duplicates"] == ["a"]


def test_element_family_basics():
    """Families expose their ids, length and index lookup"""
    family = ElementFamily("flows", ["in", "out"])

    assert len(family) == 2
    assert list(family) == ["in", "out"]
    assert "out" in family
    assert family.index("out") == 1
    with pytest.raises(ElementMismatchError):
        family.index("missing")


def test_model_families(decay_model):
    """The model keeps its four families in declaration order"""
    assert decay_model.stock_ids == ("a", "b")
    assert decay_model.flow_ids == ("transfer", "leak")
    assert decay_model.variable_ids == ("total",)
    assert decay_model.parameter_ids == ("k", "leak_rate")


def test_model_conversions_for_all_families(decay_model):
    """Every family has a matching pair of conversions"""
    pairs = [
        (decay_model.stocks_to_array, decay_model.array_to_stocks, {"b": 2.0, "a": 1.0}),
        (decay_model.flows_to_array, decay_model.array_to_flows, {"leak": 3.0, "transfer": 4.0}),
        (decay_model.variables_to_array, decay_model.array_to_variables, {"total": 5.0}),
        (decay_model.parameters_to_array, decay_model.array_to_parameters, {"k": 6.0, "leak_rate": 7.0}),
    ]
    for to_array, to_elements, obj in pairs:
        assert to_elements(to_array(obj)) == obj

    np.testing.assert_array_equal(decay_model.stocks_to_array({"b": 2.0, "a": 1.0}), [1.0, 2.0])


def test_model_requires_stocks():
    """A model without stocks is rejected"""
    class NoStocks(Model):
        def evaluate(self, stocks, parameters, t):
            raise NotImplementedError

        def accumulate_flows_per_stock(self, flows):
            raise NotImplementedError

    with pytest.raises(ModelStructureError):
        NoStocks([], ["f"], [], [])


def test_evaluate_returns_record(decay_model, decay_stocks, decay_parameters):
    """evaluate produces a complete, immutable record"""
    record = decay_model.evaluate(decay_stocks, decay_parameters, 1.5)

    assert isinstance(record, Record)
    assert record.t == 1.5
    assert record.flows == {"transfer": 50.0, "leak": 0.0}
    assert record.variables == {"total": 100.0}
    with pytest.raises(pydantic.ValidationError):
        record.t = 2.0


def test_create_record_checks_families(decay_model, decay_stocks, decay_parameters):
    """Records with a wrong key set are rejected"""
    with pytest.raises(ElementMismatchError) as exc_info:
        decay_model.create_record(
            0.0, decay_stocks, decay_parameters, {"total": 1.0}, {"transfer": 1.0}
        )
    assert exc_info.value.family == "flows"
    assert exc_info.value.missing == ["leak"]


def test_evaluate_flow_per_stock(decay_model, decay_stocks, decay_parameters):
    """Flows are reduced to one net rate per stock"""
    flow_per_stock = decay_model.evaluate_flow_per_stock(
        {"a": 100.0, "b": 10.0}, decay_parameters, 0.0
    )
    assert flow_per_stock == {"a": -50.0, "b": 49.0}


def test_flow_evaluator(decay_model, decay_parameters):
    """The flow evaluator works on arrays in family order"""
    flow_evaluator = decay_model.create_flow_evaluator(decay_parameters)

    result = flow_evaluator(np.array([100.0, 10.0]), 0.0)

    np.testing.assert_allclose(result, [-50.0, 49.0])


def test_flow_evaluator_captures_parameter_copy(decay_model, decay_parameters):
    """Later changes to the caller's parameters do not affect the evaluator"""
    flow_evaluator = decay_model.create_flow_evaluator(decay_parameters)
    decay_parameters["k"] = 0.0

    result = flow_evaluator(np.array([100.0, 0.0]), 0.0)

    assert result[0] == pytest.approx(-50.0)


def test_flow_evaluator_rejects_bad_parameters(decay_model):
    """Parameters must match the parameter family"""
    with pytest.raises(ElementMismatchError):
        decay_model.create_flow_evaluator({"k": 0.5})


def test_flow_evaluator_is_deterministic(decay_model, decay_parameters):
    """Evaluating twice at the same point gives identical output"""
    flow_evaluator = decay_model.create_flow_evaluator(decay_parameters)
    y = np.array([12.0, 3.0])

    assert np.array_equal(flow_evaluator(y, 0.5), flow_evaluator(y, 0.5))


def test_model_step_default_rk4(decay_model, decay_stocks, decay_parameters):
    """Model.step integrates named stocks; RK4 tracks the analytic solution"""
    flow_evaluator = decay_model.create_flow_evaluator(decay_parameters)

    new_stocks = decay_model.step(decay_stocks, 0.0, 0.1, flow_evaluator)

    assert set(new_stocks) == {"a", "b"}
    assert new_stocks["a"] == pytest.approx(100.0 * math.exp(-0.05), abs=1e-6)


def test_model_step_euler(decay_model, decay_stocks, decay_parameters):
    """Model.step honours an explicit integrator"""
    flow_evaluator = decay_model.create_flow_evaluator(decay_parameters)

    new_stocks = decay_model.step(decay_stocks, 0.0, 0.1, flow_evaluator, euler)

    assert new_stocks == pytest.approx({"a": 95.0, "b": 5.0})


def test_model_step_rejects_bad_stocks(decay_model, decay_parameters):
    """Stock objects must match the stock family"""
    flow_evaluator = decay_model.create_flow_evaluator(decay_parameters)
    with pytest.raises(ElementMismatchError):
        decay_model.step({"a": 1.0}, 0.0, 0.1, flow_evaluator)


def test_record_families_are_read_only(decay_model, decay_stocks, decay_parameters):
    """Record mappings reject writes and are detached from the inputs"""
    record = decay_model.evaluate(decay_stocks, decay_parameters, 0.0)

    with pytest.raises(TypeError):
        record.stocks["a"] = 0.0
    with pytest.raises(TypeError):
        record.flows["extra"] = 1.0

    decay_stocks["a"] = 1.0
    assert record.stocks["a"] == 100.0
    assert record.model_dump()["stocks"] == {"a": 100.0, "b": 0.0}


def test_validate_record(decay_model, decay_stocks, decay_parameters):
    """Records built without create_record() are checked against the families"""
    record = decay_model.evaluate(decay_stocks, decay_parameters, 0.0)
    assert decay_model.validate_record(record) is record

    incomplete = Record(
        t=0.0,
        stocks=decay_stocks,
        parameters=decay_parameters,
        variables={"total": 100.0},
        flows={"transfer": 50.0},
    )
    with pytest.raises(ElementMismatchError) as exc_info:
        decay_model.validate_record(incomplete)

    assert exc_info.value.family == "flows"
    assert exc_info.value.missing == ["leak"]
