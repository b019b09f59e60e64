"""Market and neighborhood data models.

The market holds the macro variables shared by every neighborhood; each
neighborhood carries its own demand, rents, vacancy and cap rate.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from .base import CamelModel

# Clamp domains (lo, hi)
BASE_RATE_BOUNDS = (0.0, 0.12)
SPREAD_BOUNDS = (0.0, 0.08)
LIQUIDITY_BOUNDS = (0.2, 1.0)
DEMAND_BOUNDS = (0.2, 1.2)
RENT_INDEX_BOUNDS = (0.6, 1.8)
VACANCY_BOUNDS = (0.01, 0.35)
CAP_RATE_BOUNDS = (0.03, 0.12)


class Market(CamelModel):
    """Macro credit and capital market state."""

    base_rate: float = Field(default=0.045, ge=0.0, le=0.12, description="Base interest rate")
    spread: float = Field(default=0.020, ge=0.0, le=0.08, description="Lending spread over base")
    liquidity: float = Field(default=0.70, ge=0.2, le=1.0, description="Capital market liquidity")


class Neighborhood(CamelModel):
    """Submarket with its own rent, vacancy and pricing dynamics."""

    id: str = Field(..., description="Neighborhood identifier")
    name: str = Field(..., description="Display name")
    zoning: list[str] = Field(default_factory=list, description="Allowed product type ids")

    base_demand: float = Field(..., ge=0.2, le=1.2, description="Long-run demand anchor")
    demand: Optional[float] = Field(default=None, ge=0.2, le=1.2, description="Current demand")
    rent_index: float = Field(default=1.0, ge=0.6, le=1.8, description="Market rent index")
    vacancy: float = Field(default=0.08, ge=0.01, le=0.35, description="Market vacancy")
    cap_rate: float = Field(default=0.06, ge=0.03, le=0.12, description="Market cap rate")
    scarcity: float = Field(default=0.0, ge=0.0, description="Land scarcity, raises build costs")

    rent_growth: float = Field(default=0.0, description="Rent growth applied last year")

    @model_validator(mode="after")
    def _default_demand(self) -> Neighborhood:
        if self.demand is None:
            self.demand = self.base_demand
        return self

    def allows(self, product_type_id: str) -> bool:
        """Whether zoning permits the product type."""
        return product_type_id in self.zoning


class EventScope(str, Enum):
    GLOBAL = "global"
    NEIGHBORHOOD = "neighborhood"


class EventEffects(CamelModel):
    """Additive one-time deltas; absent fields leave the target untouched."""

    base_rate_delta: Optional[float] = None
    spread_delta: Optional[float] = None
    liquidity_delta: Optional[float] = None
    demand_delta: Optional[float] = None
    rent_index_delta: Optional[float] = None
    vacancy_delta: Optional[float] = None
    cap_rate_delta: Optional[float] = None


class MarketEvent(CamelModel):
    """Headline event card drawn at most once per year."""

    id: str
    name: str
    blurb: str = ""
    scope: EventScope = EventScope.GLOBAL
    target_neighborhood: Optional[str] = None
    effects: EventEffects = Field(default_factory=EventEffects)
