"""Application services."""

from .commands import (
    CommandResult,
    buy_listing,
    import_deal,
    renovate_property,
    sell_property,
    start_build,
)
from .listing_factory import generate_listings
from .persistence import JsonRunStore, backfill_run, restore_run, save_run
from .reference_data import ReferenceData, load_reference_data
from .simulation import (
    RunContext,
    YearReport,
    advance_year,
    create_run,
    portfolio_snapshot,
    property_snapshots,
)

__all__ = [
    "ReferenceData",
    "load_reference_data",
    "RunContext",
    "YearReport",
    "create_run",
    "advance_year",
    "portfolio_snapshot",
    "property_snapshots",
    "generate_listings",
    "CommandResult",
    "buy_listing",
    "sell_property",
    "renovate_property",
    "start_build",
    "import_deal",
    "JsonRunStore",
    "save_run",
    "restore_run",
    "backfill_run",
]
