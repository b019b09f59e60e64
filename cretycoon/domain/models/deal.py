"""Deal underwriting data models.

A deal is a static acquisition scenario; underwriting it never touches the
running portfolio.
"""

from __future__ import annotations

import math
from typing import Any

import pandas as pd
from pydantic import Field, computed_field

from .base import CamelModel


class DealDebt(CamelModel):
    ltv: float = Field(..., ge=0.0, le=1.0)
    rate: float = Field(..., ge=0.0)
    amort_years: int = Field(default=30, ge=1)


class Deal(CamelModel):
    """One-off acquisition scenario from the deal book."""

    id: str
    name: str
    neighborhood: str
    product_type: str
    purchase_price: float = Field(..., gt=0)
    in_place_noi: float = Field(..., ge=0, alias="inPlaceNOI")
    market_noi_lift_pct: float = Field(default=0.0, alias="marketNOILiftPct")
    debt: DealDebt
    notes: str = ""

    @property
    def loan_amount(self) -> float:
        return self.purchase_price * self.debt.ltv


class UnderwritingInputs(CamelModel):
    """User scenario inputs. Out-of-range values are clamped by the
    underwriter rather than rejected here."""

    rent_growth: float = 0.02
    exit_cap: float = 0.06
    capex: float = 0.0
    hold_years: float = 5


class YearCashFlow(CamelModel):
    """Single projected year."""

    year: int
    noi: float
    debt_service: float
    dscr: float
    cash_flow: float
    loan_balance: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "Year": self.year,
            "NOI": self.noi,
            "Debt Service": self.debt_service,
            "DSCR": self.dscr,
            "Cash Flow": self.cash_flow,
            "Loan Balance": self.loan_balance,
        }


class UnderwritingResult(CamelModel):
    """Projection, exit and return metrics for a deal."""

    cash_flows: list[YearCashFlow] = Field(default_factory=list)
    exit_value: float = 0.0
    sale_net: float = 0.0
    equity: float = 0.0
    irr: float = Field(default=math.nan, description="NaN when no IRR is bracketed")
    equity_multiple: float = 0.0

    @computed_field
    @property
    def has_irr(self) -> bool:
        """False when the solver found no root (distinct from an IRR of 0)."""
        return math.isfinite(self.irr)

    def to_frame(self) -> pd.DataFrame:
        """Year-by-year table."""
        return pd.DataFrame([cf.to_dict() for cf in self.cash_flows])
