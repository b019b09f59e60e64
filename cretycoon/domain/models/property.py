"""Property and listing data models.

A property references its neighborhood and product type by id only; the
records themselves live in the run state and the reference data.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from .base import CamelModel

MAX_RENO_LEVEL = 3
DEFAULT_TARGET_LTV = 0.65


class LifecycleStage(str, Enum):
    CONSTRUCTION = "construction"
    LEASE_UP = "leaseup"
    STABILIZED = "stabilized"


class BuildState(CamelModel):
    """Development sub-state; removed once the property stabilizes."""

    phase: LifecycleStage = LifecycleStage.CONSTRUCTION
    years_remaining: int = Field(default=0, description="Construction years left")
    stabilize_years_remaining: int = Field(default=0, description="Lease-up years left")
    lease_up_vacancy: float = Field(default=0.2, description="Vacancy floor while leasing up")
    cost: Optional[float] = Field(default=None, ge=0, description="Total project cost")

    @field_validator("phase")
    @classmethod
    def _not_stabilized(cls, v: LifecycleStage) -> LifecycleStage:
        if v is LifecycleStage.STABILIZED:
            raise ValueError("a stabilized property has no build record")
        return v


class LeaseState(CamelModel):
    """In-place lease position of a stabilized property."""

    years_remaining: int = Field(..., description="Years until full rollover")
    roll_pct: float = Field(..., ge=0.0, le=1.0, description="Share marked to market each year")
    lease_rent_index: float = Field(..., description="In-place rent index")


class LoanTerms(CamelModel):
    ltv: float = Field(default=DEFAULT_TARGET_LTV, ge=0.0, le=1.0)
    rate: float = Field(..., ge=0.0)
    amort_years: int = Field(default=30, ge=1)
    interest_only: bool = False


class Listing(CamelModel):
    """Acquisition offer, valid for the current year only."""

    id: str
    name: str
    neighborhood: str
    product_type: str
    price: float = Field(..., ge=0)
    base_noi: float = Field(..., alias="baseNOI")
    loan_terms: LoanTerms

    @property
    def down_payment(self) -> float:
        return self.price * (1.0 - self.loan_terms.ltv)

    @property
    def loan_amount(self) -> float:
        return self.price * self.loan_terms.ltv


class Property(CamelModel):
    """Owned property with operating modifiers and debt terms.

    ``lease`` and ``maturity_year`` are ``None`` until initialized; runs saved
    before those features existed are backfilled on load.
    """

    id: str
    name: str
    neighborhood: str = Field(..., description="Neighborhood id")
    product_type: str = Field(..., description="Product type id")

    base_noi: float = Field(..., alias="baseNOI", description="Anchor NOI before market factors")
    rent_index_mult: float = 1.0
    vacancy_delta: float = 0.0
    cap_rate_delta: float = 0.0
    reno_level: int = Field(default=0, ge=0, le=MAX_RENO_LEVEL)

    # Debt
    loan_balance: float = Field(default=0.0, ge=0)
    loan_rate: float = 0.0
    amort_years: int = 30
    interest_only: bool = False
    ltv: float = Field(default=DEFAULT_TARGET_LTV, description="Target LTV on refinance")
    maturity_year: Optional[int] = None

    build: Optional[BuildState] = None
    lease: Optional[LeaseState] = None

    @property
    def stage(self) -> LifecycleStage:
        if self.build is None:
            return LifecycleStage.STABILIZED
        return self.build.phase

    @property
    def is_stabilized(self) -> bool:
        return self.build is None
