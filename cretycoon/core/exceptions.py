"""Custom exceptions for cretycoon.

Domain-specific exception types for better error handling and debugging.
Player-facing failures (insufficient cash, zoning) are not exceptions: they
come back as ``CommandResult`` values. The types below signal programming or
data defects that must stop a run before it is corrupted.
"""

from __future__ import annotations

from typing import Any


class CreTycoonError(Exception):
    """Base exception for all cretycoon errors."""
    pass


# --- Data Errors ---

class DataLoadError(CreTycoonError):
    """Failed to load or parse reference data files."""
    pass


class ReferenceDataError(CreTycoonError):
    """A neighborhood, product type or deal id has no reference record."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"Unknown {kind} '{entity_id}'")


# --- Calculation Errors ---

class SimulationError(CreTycoonError):
    """Error during the yearly simulation."""
    pass


# --- Persistence Errors ---

class PersistenceError(CreTycoonError):
    """Failed to read or write a saved run."""
    pass


class InvalidParameterError(CreTycoonError):
    """Invalid parameter value provided."""

    def __init__(self, param_name: str, value: Any, reason: str = ""):
        self.param_name = param_name
        self.value = value
        self.reason = reason
        msg = f"Invalid parameter '{param_name}': {value}"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg)
