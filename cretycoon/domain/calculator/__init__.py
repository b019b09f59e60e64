"""Pure calculators: market evolution, property lifecycle, portfolio
aggregation and deal underwriting."""

from .portfolio import compute_portfolio, property_snapshot
from .underwriting import solve_irr, underwrite_deal

__all__ = [
    "compute_portfolio",
    "property_snapshot",
    "solve_irr",
    "underwrite_deal",
]
