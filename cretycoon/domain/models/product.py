"""Product type reference model."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator

from .base import CamelModel


class BuildParams(CamelModel):
    """Development timeline for a product type."""

    years_to_build: int = Field(default=2, ge=1)
    years_to_stabilize: int = Field(default=1, ge=1)
    lease_up_vacancy: float = Field(default=0.20, ge=0.0, le=0.5)


class LeaseParams(CamelModel):
    """Lease rollover behaviour: share of rents marked to market each year
    and the range of lease terms signed on rollover."""

    roll_pct: float = Field(default=0.25, ge=0.0, le=1.0)
    min_term: int = Field(default=2, ge=1)
    max_term: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def _ordered_terms(self) -> LeaseParams:
        if self.max_term < self.min_term:
            raise ValueError("maxTerm must be >= minTerm")
        return self


# Short, high-turnover leases for apartments and hotels; long, sticky
# leases for office and retail.
DEFAULT_LEASE_PARAMS: dict[str, LeaseParams] = {
    "multifamily": LeaseParams(roll_pct=0.45, min_term=1, max_term=2),
    "hotel": LeaseParams(roll_pct=1.0, min_term=1, max_term=1),
    "office": LeaseParams(roll_pct=0.12, min_term=5, max_term=10),
    "retail": LeaseParams(roll_pct=0.10, min_term=5, max_term=12),
    "industrial": LeaseParams(roll_pct=0.18, min_term=3, max_term=7),
}


class ProductType(CamelModel):
    """Static product type (multifamily, office, ...)."""

    id: str
    name: str
    base_expense_ratio: float = Field(..., ge=0.0, lt=1.0)
    build: BuildParams = Field(default_factory=BuildParams)
    lease: Optional[LeaseParams] = None

    @model_validator(mode="after")
    def _default_lease(self) -> ProductType:
        if self.lease is None:
            self.lease = DEFAULT_LEASE_PARAMS.get(self.id, LeaseParams()).model_copy()
        return self
