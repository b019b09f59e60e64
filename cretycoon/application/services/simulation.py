"""Run orchestration.

A run is an explicit ``RunContext`` (serializable state, reference data and
its own RNG) advanced one year at a time. The order of the yearly steps is
load-bearing for seeded reproducibility:

    market -> event -> neighborhoods -> leases -> build phases
    -> maturities -> operating cash flow -> listings -> portfolio totals
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from cretycoon.core.logging import get_logger
from cretycoon.core.rng import Mulberry32, random_seed, seed_from_string
from cretycoon.core.settings import AppSettings, get_settings
from cretycoon.domain.calculator.lifecycle import (
    MaturityOutcome,
    advance_build,
    advance_lease,
    ensure_initialized,
    is_maturing,
    resolve_maturity,
)
from cretycoon.domain.calculator.market import (
    apply_event,
    pick_event,
    update_market_year,
    update_neighborhood_year,
)
from cretycoon.domain.calculator.portfolio import (
    compute_portfolio,
    property_snapshot,
    resolve_refs,
    snapshot_properties,
)
from cretycoon.domain.models.market import MarketEvent
from cretycoon.domain.models.portfolio import PortfolioSnapshot, PropertySnapshot
from cretycoon.domain.models.property import LifecycleStage
from cretycoon.domain.models.run import JournalAction, JournalEntry, RunState

from .listing_factory import generate_listings
from .reference_data import ReferenceData

log = get_logger(__name__)


@dataclass
class RunContext:
    """Everything one simulation run owns."""

    state: RunState
    reference: ReferenceData
    rng: Mulberry32

    def snapshot(self) -> RunState:
        """Deep copy of the state with the current RNG position, for saving."""
        return self.state.model_copy(deep=True, update={"rng_state": self.rng.state})

    def record(self, action: JournalAction, target: str, amount: float = 0.0) -> None:
        self.state.journal.append(
            JournalEntry(year=self.state.year, action=action, target=target, amount=amount)
        )


@dataclass
class YearReport:
    """What happened during one ``advance_year`` call."""

    year: int
    event: Optional[str] = None
    operating_cash_flow: float = 0.0
    lease_rollovers: list[str] = field(default_factory=list)
    stage_changes: dict[str, LifecycleStage] = field(default_factory=dict)
    maturities: list[MaturityOutcome] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    portfolio: Optional[PortfolioSnapshot] = None

    @property
    def forced_sales(self) -> list[str]:
        return [m.property_id for m in self.maturities if m.forced_sale]

    def to_dict(self) -> dict[str, Any]:
        return {
            "Year": self.year,
            "Event": self.event,
            "Operating Cash Flow": self.operating_cash_flow,
            "Lease Rollovers": len(self.lease_rollovers),
            "Refinances": sum(1 for m in self.maturities if m.refinanced),
            "Forced Sales": len(self.forced_sales),
        }


def resolve_seed(settings: AppSettings) -> int:
    if settings.seed:
        return seed_from_string(settings.seed)
    return random_seed()


def create_run(
    reference: ReferenceData,
    settings: Optional[AppSettings] = None,
) -> RunContext:
    """Start a new run from reference data.

    Args:
        reference: Loaded reference data
        settings: Seed and difficulty; application settings by default

    Returns:
        RunContext at year 1 with the first listings generated
    """
    settings = settings or get_settings()
    seed = resolve_seed(settings)

    state = RunState(
        cash=settings.starting_cash,
        difficulty=settings.difficulty,
        seed=seed,
        neighborhoods=[
            n.model_copy(deep=True, update={"demand": n.base_demand})
            for n in reference.neighborhoods
        ],
    )
    ctx = RunContext(state=state, reference=reference, rng=Mulberry32(seed))

    state.listings = generate_listings(state, reference, ctx.rng)
    state.history.append(portfolio_snapshot(ctx))

    log.info(
        "run_created",
        seed=seed,
        seeded=bool(settings.seed),
        difficulty=settings.difficulty,
        cash=state.cash,
    )
    return ctx


# --- Queries ---

def portfolio_snapshot(ctx: RunContext) -> PortfolioSnapshot:
    return compute_portfolio(ctx.state, ctx.reference.products_by_id)


def property_snapshots(ctx: RunContext) -> list[PropertySnapshot]:
    return snapshot_properties(ctx.state, ctx.reference.products_by_id)


# --- Yearly steps ---

def _advance_leases(ctx: RunContext, report: YearReport) -> None:
    state, products = ctx.state, ctx.reference.products_by_id
    for prop in state.properties:
        if not prop.is_stabilized:
            continue
        neighborhood, product = resolve_refs(state, products, prop)
        if ensure_initialized(prop, neighborhood, product, ctx.rng, state.year):
            log.debug("property_backfilled", property=prop.id)
            continue
        if advance_lease(prop, neighborhood, product, ctx.rng):
            report.lease_rollovers.append(prop.id)


def _advance_builds(ctx: RunContext, report: YearReport) -> None:
    state, products = ctx.state, ctx.reference.products_by_id
    for prop in state.properties:
        if prop.build is None:
            continue
        neighborhood, product = resolve_refs(state, products, prop)
        entered = advance_build(prop, neighborhood, product, state.market, ctx.rng, state.year)

        if entered is LifecycleStage.LEASE_UP:
            report.messages.append(f"Delivered: {prop.name}. Now leasing up.")
        elif entered is LifecycleStage.STABILIZED:
            report.messages.append(f"Stabilized: {prop.name}. Loan converted to amortizing.")
        elif prop.build.phase is LifecycleStage.CONSTRUCTION:
            report.messages.append(
                f"Construction progress: {prop.name} ({prop.build.years_remaining} year(s) remaining)."
            )
        else:
            report.messages.append(
                f"Lease-up: {prop.name} ({prop.build.stabilize_years_remaining} year(s) to stabilize)."
            )

        if entered is not None:
            report.stage_changes[prop.id] = entered
            log.info("stage_changed", property=prop.id, stage=entered.value)


def _resolve_maturities(ctx: RunContext, report: YearReport) -> None:
    """Refinance or force-sell every matured loan, one property at a time so
    proceeds from an earlier forced sale can fund a later shortfall."""
    state, products = ctx.state, ctx.reference.products_by_id
    maturing = [p for p in state.properties if is_maturing(p, state.year)]

    for prop in maturing:
        neighborhood, product = resolve_refs(state, products, prop)
        value = property_snapshot(prop, neighborhood, product).value
        outcome = resolve_maturity(prop, value, state.cash, state.market, ctx.rng, state.year)
        report.maturities.append(outcome)

        state.cash += outcome.cash_delta
        if outcome.forced_sale:
            state.properties.remove(prop)
            if state.cash < 0:
                log.warning("cash_floored_after_forced_sale", property=prop.id, cash=state.cash)
                state.cash = 0.0
            ctx.record(JournalAction.FORCED_SALE, prop.id, outcome.sale.price)
            report.messages.append(
                f"Refi failed: {prop.name} force-sold for {outcome.sale.price:,.0f} "
                f"(net {outcome.sale.net:,.0f})."
            )
            log.warning(
                "forced_sale",
                property=prop.id,
                price=outcome.sale.price,
                net=outcome.sale.net,
                cash=state.cash,
            )
        else:
            ctx.record(JournalAction.REFINANCE, prop.id, outcome.new_loan)
            kind = "cash-out" if outcome.cash_delta >= 0 else "cash-in"
            report.messages.append(
                f"Refinanced {prop.name} ({kind} {abs(outcome.cash_delta):,.0f}) "
                f"at {outcome.rate:.2%}, matures {prop.maturity_year}."
            )
            log.info(
                "refinanced",
                property=prop.id,
                new_loan=outcome.new_loan,
                old_balance=outcome.old_balance,
                rate=outcome.rate,
                maturity_year=prop.maturity_year,
            )


def _apply_operating_cash_flow(ctx: RunContext, report: YearReport) -> None:
    state, products = ctx.state, ctx.reference.products_by_id
    total_cf = 0.0
    for prop in state.properties:
        neighborhood, product = resolve_refs(state, products, prop)
        snap = property_snapshot(prop, neighborhood, product)
        prop.loan_balance = max(0.0, prop.loan_balance - snap.principal)
        total_cf += snap.cash_flow

    state.cash += total_cf
    report.operating_cash_flow = total_cf
    report.messages.append(f"Operating cash flow this year: {total_cf:,.0f}.")


def advance_year(ctx: RunContext, event: Optional[MarketEvent] = None) -> YearReport:
    """Advance the run one year.

    Args:
        ctx: Run to advance (mutated in place)
        event: Scripted event; when None an event is drawn at random

    Returns:
        YearReport describing the year

    Raises:
        ReferenceDataError: If a property references a missing neighborhood
            or product type. Checked before anything is mutated.
    """
    state = ctx.state
    for prop in state.properties:
        resolve_refs(state, ctx.reference.products_by_id, prop)

    state.year += 1
    report = YearReport(year=state.year)

    # 1) Macro
    update_market_year(state.market, ctx.rng)

    # 2) Event card
    if event is None:
        event = pick_event(ctx.reference.events, ctx.rng)
    if event is not None:
        applied = apply_event(event, state.market, state.neighborhoods)
        report.event = event.name
        report.messages.append(f"EVENT: {event.name}. {event.blurb}".strip())
        log.info("event_applied", event_id=event.id, scope=event.scope.value, applied=applied)
    else:
        report.messages.append("No major headline event this year.")

    # 3) Neighborhoods, on the updated market
    for n in state.neighborhoods:
        update_neighborhood_year(n, state.market, ctx.rng)

    # 4) Properties
    _advance_leases(ctx, report)
    _advance_builds(ctx, report)
    _resolve_maturities(ctx, report)
    _apply_operating_cash_flow(ctx, report)

    # 5) New listings
    state.listings = generate_listings(state, ctx.reference, ctx.rng)

    report.portfolio = portfolio_snapshot(ctx)
    state.history.append(report.portfolio)

    log.info(
        "year_advanced",
        year=state.year,
        cash=round(state.cash, 2),
        properties=len(state.properties),
        equity=round(report.portfolio.equity, 2),
        forced_sales=len(report.forced_sales),
    )
    return report
