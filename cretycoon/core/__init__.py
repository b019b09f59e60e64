"""Core primitives: RNG, financial formulas, settings, logging, exceptions."""

from .exceptions import (
    CreTycoonError,
    DataLoadError,
    InvalidParameterError,
    PersistenceError,
    ReferenceDataError,
    SimulationError,
)
from .financial import (
    DebtService,
    annual_debt_service,
    clamp,
    compute_noi,
    dscr,
    effective_rent_factor,
    value_from_noi,
)
from .rng import Mulberry32, seed_from_string

__all__ = [
    "clamp",
    "effective_rent_factor",
    "compute_noi",
    "value_from_noi",
    "annual_debt_service",
    "dscr",
    "DebtService",
    "Mulberry32",
    "seed_from_string",
    # Exceptions
    "CreTycoonError",
    "DataLoadError",
    "ReferenceDataError",
    "SimulationError",
    "PersistenceError",
    "InvalidParameterError",
]
