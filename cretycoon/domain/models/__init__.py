"""Data models for cretycoon."""

from .deal import Deal, DealDebt, UnderwritingInputs, UnderwritingResult, YearCashFlow
from .market import EventEffects, EventScope, Market, MarketEvent, Neighborhood
from .portfolio import PortfolioSnapshot, PropertySnapshot
from .product import BuildParams, LeaseParams, ProductType
from .property import BuildState, LeaseState, LifecycleStage, Listing, LoanTerms, Property
from .run import JournalAction, JournalEntry, RunState

__all__ = [
    "Market",
    "Neighborhood",
    "MarketEvent",
    "EventEffects",
    "EventScope",
    "ProductType",
    "BuildParams",
    "LeaseParams",
    "Property",
    "BuildState",
    "LeaseState",
    "LifecycleStage",
    "Listing",
    "LoanTerms",
    "Deal",
    "DealDebt",
    "UnderwritingInputs",
    "UnderwritingResult",
    "YearCashFlow",
    "PortfolioSnapshot",
    "PropertySnapshot",
    "RunState",
    "JournalEntry",
    "JournalAction",
]
