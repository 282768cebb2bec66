"""
Tests for parameter transforms and parameter utilities
"""

import pytest

from stockflow.exceptions import ElementMismatchError
from stockflow.parameter_transform import FunctionParameterTransform, ParameterTransform
from stockflow.simulator import ModelSimulator
from stockflow.utils.model_utils import apply_parameter_transforms, apply_parameter_values


def double_k(parameters):
    parameters["k"] *= 2.0


def test_function_transform_modifies_in_place():
    """apply_to() changes and returns the same dictionary"""
    transform = FunctionParameterTransform("double-k", double_k)
    parameters = {"k": 0.5, "leak_rate": 0.1}

    result = transform.apply_to(parameters)

    assert result is parameters
    assert parameters["k"] == 1.0
    assert transform.key == "double-k"
    assert "double-k" in repr(transform)


def test_parameter_transform_is_abstract():
    """The base class cannot be instantiated"""
    with pytest.raises(TypeError):
        ParameterTransform("abstract")


def test_apply_parameter_values(decay_model, decay_parameters):
    """Overrides produce a new dictionary and leave the base untouched"""
    updated = apply_parameter_values(decay_model, decay_parameters, {"k": 2})

    assert updated == {"k": 2.0, "leak_rate": 0.1}
    assert decay_parameters["k"] == 0.5


def test_apply_parameter_values_unknown_id(decay_model, decay_parameters):
    """Overrides for unknown parameters are rejected"""
    with pytest.raises(ElementMismatchError) as exc_info:
        apply_parameter_values(decay_model, decay_parameters, {"speed": 1.0})

    assert exc_info.value.unknown == ["speed"]


def test_apply_parameter_transforms_in_order(decay_model, decay_parameters):
    """Transforms run in order on a copy"""
    transforms = [
        FunctionParameterTransform("double-k", double_k),
        FunctionParameterTransform("add-one", lambda p: p.update(k=p["k"] + 1.0)),
    ]

    result = apply_parameter_transforms(decay_model, decay_parameters, transforms)

    assert result["k"] == 2.0
    assert decay_parameters["k"] == 0.5


def test_apply_parameter_transforms_rejects_new_ids(decay_model, decay_parameters):
    """A transform may not add parameters the model does not know"""
    transform = FunctionParameterTransform("bad", lambda p: p.update(extra=1.0))

    with pytest.raises(ElementMismatchError):
        apply_parameter_transforms(decay_model, decay_parameters, [transform])


def test_transformed_parameters_drive_simulator(decay_model, decay_stocks, decay_parameters):
    """Transformed parameters can be handed to a running simulator"""
    simulator = ModelSimulator(decay_model, decay_stocks, decay_parameters)
    transform = FunctionParameterTransform("stop-transfer", lambda p: p.update(k=0.0))

    simulator.set_parameters(
        apply_parameter_transforms(decay_model, simulator.parameters, [transform])
    )

    assert simulator.record.flows["transfer"] == 0.0
