"""
Structured exception classes for the stock-and-flow engine
Structural problems fail loudly; domain errors are never wrapped
"""

from typing import Optional, Dict, Any, List


class SimulationError(Exception):
    """
    Exception raised for invalid engine usage

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable error message
        details: Additional error details
    """

    def __init__(
        self, code: str, message: str, details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        """String representation for logging"""
        return f"[{self.code}] {self.message}"


class ModelStructureError(SimulationError):
    """
    Exception for structural issues in a model definition

    Used for duplicate element ids, empty id families and records whose
    key sets do not match the model's element families.
    """

    def __init__(
        self, message: str, details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            code="model_structure_error",
            message=message,
            details=details,
        )


class ElementMismatchError(ModelStructureError):
    """
    Raised when an element object or array does not fit its id family

    Attributes:
        family: Name of the element family (e.g. "stocks")
        missing: Ids expected but not supplied
        unknown: Ids supplied but not part of the family
    """

    def __init__(
        self,
        message: str,
        family: str,
        missing: Optional[List[str]] = None,
        unknown: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.family = family
        self.missing = missing or []
        self.unknown = unknown or []
        super().__init__(
            message=message,
            details={
                **(details or {}),
                "family": family,
                "missing": self.missing,
                "unknown": self.unknown,
            },
        )
        self.code = "element_mismatch"
