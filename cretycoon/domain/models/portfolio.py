"""Read-side snapshot models produced by the portfolio aggregator."""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import Field, field_serializer, field_validator

from .base import CamelModel
from .property import LifecycleStage


class _CoverageModel(CamelModel):
    """Stores an infinite DSCR (no debt) as ``null`` in JSON."""

    dscr: float = Field(default=math.inf, description="NOI / debt service")

    @field_validator("dscr", mode="before")
    @classmethod
    def _null_is_infinite(cls, v: Any) -> Any:
        return math.inf if v is None else v

    @field_serializer("dscr", when_used="json")
    def _infinite_is_null(self, v: float) -> Optional[float]:
        return v if math.isfinite(v) else None


class PropertySnapshot(_CoverageModel):
    """Valuation and cash flow of one property at current conditions."""

    property_id: str
    name: str
    stage: LifecycleStage
    noi: float
    vacancy: float
    cap_rate: float
    value: float
    loan_balance: float
    debt_service: float
    interest: float
    principal: float
    cash_flow: float

    @property
    def equity(self) -> float:
        return self.value - self.loan_balance


class PortfolioSnapshot(_CoverageModel):
    """Portfolio totals for one point in time."""

    year: int = 1
    cash: float = 0.0
    property_count: int = 0
    total_value: float = 0.0
    total_debt: float = 0.0
    total_noi: float = 0.0
    total_debt_service: float = 0.0
    total_cash_flow: float = 0.0
    equity: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "Year": self.year,
            "Cash": self.cash,
            "Properties": self.property_count,
            "Value": self.total_value,
            "Debt": self.total_debt,
            "NOI": self.total_noi,
            "Debt Service": self.total_debt_service,
            "Cash Flow": self.total_cash_flow,
            "Equity": self.equity,
            "DSCR": self.dscr,
        }
