"""
Parameter transforms
Named adjustments applied to a parameter object before it reaches a simulator
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict

from stockflow.types import ElementObject


class ParameterTransform(ABC):
    """
    Base class for parameter transforms

    Attributes:
        key: Identifier of the transform (e.g. a label or translation key)
    """

    def __init__(self, key: str):
        self.key = key

    @abstractmethod
    def apply_to(self, parameters: ElementObject) -> ElementObject:
        """Apply the transform in place and return the same object"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r})"


class FunctionParameterTransform(ParameterTransform):
    """
    Transform backed by a plain callable

    The callable receives the parameter dictionary and modifies it in place;
    its return value is ignored.
    """

    def __init__(self, key: str, func: Callable[[Dict[str, float]], object]):
        super().__init__(key)
        self.func = func

    def apply_to(self, parameters: ElementObject) -> ElementObject:
        self.func(parameters)
        return parameters
