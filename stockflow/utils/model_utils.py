"""
Utility functions for parameter manipulation
Provides reusable functions for deriving parameter sets from a base set
"""

from typing import Dict, Iterable, Mapping
import logging

from stockflow.model import Model
from stockflow.parameter_transform import ParameterTransform

logger = logging.getLogger(__name__)


def apply_parameter_values(
    model: Model,
    parameters: Mapping[str, float],
    parameter_values: Mapping[str, float],
) -> Dict[str, float]:
    """
    Create a modified copy of a parameter set.

    Used when re-running a model with some parameters changed (scenario
    variants, sensitivity analysis).

    Args:
        model: Model whose parameter ids the overrides must belong to
        parameters: Base parameter values (not modified)
        parameter_values: Dictionary mapping parameter ids to new values

    Returns:
        New parameter dictionary with the overrides applied

    Raises:
        ElementMismatchError: If the base set or an override id does not
            belong to the model's parameters

    Example:
        >>> updated = apply_parameter_values(model, {"rate": 0.1}, {"rate": 0.2})
        >>> updated["rate"]
        0.2
    """
    model.parameters.validate(parameters)
    for parameter_id in parameter_values:
        model.parameters.index(parameter_id)

    modified = dict(parameters)
    for parameter_id, value in parameter_values.items():
        modified[parameter_id] = float(value)
    return modified


def apply_parameter_transforms(
    model: Model,
    parameters: Mapping[str, float],
    transforms: Iterable[ParameterTransform],
) -> Dict[str, float]:
    """
    Apply transforms in order to a copy of a parameter set.

    Args:
        model: Model whose parameter ids the result must match
        parameters: Base parameter values (not modified)
        transforms: Transforms applied one after another

    Returns:
        Transformed parameter dictionary

    Raises:
        ElementMismatchError: If a transform adds or removes parameter ids
    """
    transformed = dict(parameters)
    for transform in transforms:
        logger.debug(f"Applying parameter transform {transform.key!r}")
        transformed = transform.apply_to(transformed)
    model.parameters.validate(transformed)
    return transformed
