"""Run state models.

``RunState`` is the whole serializable state of one simulation run. The
runtime pieces (reference data, RNG instance) live in ``RunContext``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import pandas as pd
from pydantic import Field

from .base import CamelModel
from .market import Market, Neighborhood
from .portfolio import PortfolioSnapshot
from .property import Listing, Property


class JournalAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    BUILD = "BUILD"
    RENOVATE = "RENOVATE"
    REFINANCE = "REFINANCE"
    FORCED_SALE = "FORCED_SALE"
    IMPORT_BUY = "IMPORT_BUY"


class JournalEntry(CamelModel):
    year: int
    action: JournalAction
    target: str
    amount: float = 0.0


class RunState(CamelModel):
    """Serializable run snapshot."""

    year: int = Field(default=1, ge=1)
    cash: float = 3_000_000.0
    market: Market = Field(default_factory=Market)
    neighborhoods: list[Neighborhood] = Field(default_factory=list)
    properties: list[Property] = Field(default_factory=list)
    listings: list[Listing] = Field(default_factory=list)
    journal: list[JournalEntry] = Field(default_factory=list)
    history: list[PortfolioSnapshot] = Field(default_factory=list)

    difficulty: str = "normal"
    seed: Optional[int] = None
    rng_state: Optional[int] = None

    def find_neighborhood(self, neighborhood_id: str) -> Optional[Neighborhood]:
        return next((n for n in self.neighborhoods if n.id == neighborhood_id), None)

    def find_property(self, property_id: str) -> Optional[Property]:
        return next((p for p in self.properties if p.id == property_id), None)

    def find_listing(self, listing_id: str) -> Optional[Listing]:
        return next((x for x in self.listings if x.id == listing_id), None)

    def history_frame(self) -> pd.DataFrame:
        """Portfolio totals by year."""
        return pd.DataFrame([h.to_dict() for h in self.history])
