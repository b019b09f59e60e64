"""Player commands.

Each command validates against the current run, mutates it only on success
and returns a ``CommandResult``. Insufficient funds and invalid actions are
ordinary failures; unknown reference ids raise ``ReferenceDataError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cretycoon.core.exceptions import ReferenceDataError
from cretycoon.core.financial import construction_loan_rate, round_to_thousand
from cretycoon.core.logging import get_logger
from cretycoon.domain.calculator.lifecycle import (
    apply_renovation,
    can_renovate,
    draw_maturity_term,
    init_lease,
    renovation_cost,
    sale_proceeds,
)
from cretycoon.domain.calculator.portfolio import (
    CONSTRUCTION_LTC,
    property_snapshot,
    resolve_refs,
)
from cretycoon.domain.models.deal import Deal
from cretycoon.domain.models.property import MAX_RENO_LEVEL, BuildState, LifecycleStage, Property
from cretycoon.domain.models.run import JournalAction

from .simulation import RunContext

log = get_logger(__name__)

BUILD_COST_MIN = 9_000_000.0
BUILD_COST_RANGE = 9_000_000.0
BUILD_SCARCITY_PREMIUM = 0.35
BUILD_EQUITY_PCT = 1.0 - CONSTRUCTION_LTC
BUILD_BASE_NOI = 650_000.0
IMPORT_LIFT_SHARE = 0.5


@dataclass
class CommandResult:
    ok: bool
    message: str
    amount: float = 0.0
    target: Optional[str] = None


def _fail(message: str, **kw) -> CommandResult:
    log.info("command_rejected", reason=message, **kw)
    return CommandResult(ok=False, message=message)


def _stabilize_new_purchase(ctx: RunContext, prop: Property) -> None:
    """Acquired properties are stabilized: draw the balloon, then sign the lease."""
    state = ctx.state
    neighborhood, product = resolve_refs(state, ctx.reference.products_by_id, prop)
    prop.maturity_year = state.year + draw_maturity_term(ctx.rng)
    init_lease(prop, neighborhood, product, ctx.rng)


def buy_listing(ctx: RunContext, listing_id: str) -> CommandResult:
    """Buy one of this year's listings with its offered financing.

    Args:
        ctx: Run context
        listing_id: Id of a current listing

    Returns:
        CommandResult with the down payment as ``amount``
    """
    state = ctx.state
    listing = state.find_listing(listing_id)
    if listing is None:
        return _fail(f"Listing {listing_id} is no longer available.", listing=listing_id)

    # Fail on dangling references before touching cash
    if state.find_neighborhood(listing.neighborhood) is None:
        raise ReferenceDataError("neighborhood", listing.neighborhood)
    ctx.reference.product(listing.product_type)

    down = listing.down_payment
    if state.cash < down:
        return _fail(f"Not enough cash for the {down:,.0f} down payment.", listing=listing_id)

    terms = listing.loan_terms
    prop = Property(
        id=f"P{listing.id}",
        name=listing.name,
        neighborhood=listing.neighborhood,
        product_type=listing.product_type,
        base_noi=listing.base_noi,
        loan_balance=listing.loan_amount,
        loan_rate=terms.rate,
        amort_years=terms.amort_years,
        interest_only=terms.interest_only,
        ltv=terms.ltv,
    )
    _stabilize_new_purchase(ctx, prop)

    state.cash -= down
    state.properties.append(prop)
    state.listings.remove(listing)
    ctx.record(JournalAction.BUY, listing.id, listing.price)

    log.info("listing_bought", listing=listing.id, price=listing.price, down=down, cash=state.cash)
    return CommandResult(
        ok=True,
        message=f"Bought {listing.name} for {listing.price:,.0f} (down {down:,.0f}).",
        amount=down,
        target=prop.id,
    )


def sell_property(ctx: RunContext, property_id: str) -> CommandResult:
    """Sell at current value less friction, repaying the loan.

    Rejected when the net proceeds are negative and cash cannot cover the
    shortfall.
    """
    state = ctx.state
    prop = state.find_property(property_id)
    if prop is None:
        return _fail(f"Property {property_id} not found.", property=property_id)

    neighborhood, product = resolve_refs(state, ctx.reference.products_by_id, prop)
    value = property_snapshot(prop, neighborhood, product).value
    sale = sale_proceeds(value, prop.loan_balance)

    if state.cash + sale.net < 0:
        return _fail(
            f"Cannot sell {prop.name}: the loan exceeds the sale price by {-sale.net:,.0f}.",
            property=property_id,
        )

    state.cash += sale.net
    state.properties.remove(prop)
    ctx.record(JournalAction.SELL, prop.id, sale.price)

    log.info("property_sold", property=prop.id, price=sale.price, net=sale.net, cash=state.cash)
    return CommandResult(
        ok=True,
        message=f"Sold {prop.name} for {sale.price:,.0f} (net {sale.net:,.0f}).",
        amount=sale.net,
        target=prop.id,
    )


def renovate_property(ctx: RunContext, property_id: str) -> CommandResult:
    state = ctx.state
    prop = state.find_property(property_id)
    if prop is None:
        return _fail(f"Property {property_id} not found.", property=property_id)

    if not can_renovate(prop):
        if prop.reno_level >= MAX_RENO_LEVEL:
            return _fail(f"{prop.name} is already fully renovated.", property=property_id)
        return _fail(f"{prop.name} must be stabilized before renovating.", property=property_id)

    neighborhood, product = resolve_refs(state, ctx.reference.products_by_id, prop)
    value = property_snapshot(prop, neighborhood, product).value
    cost = renovation_cost(value, prop.reno_level + 1)
    if state.cash < cost:
        return _fail(f"Not enough cash for the {cost:,.0f} renovation.", property=property_id)

    state.cash -= cost
    apply_renovation(prop)
    ctx.record(JournalAction.RENOVATE, prop.id, cost)

    log.info("property_renovated", property=prop.id, level=prop.reno_level, cost=cost)
    return CommandResult(
        ok=True,
        message=f"Renovated {prop.name} to level {prop.reno_level} for {cost:,.0f}.",
        amount=cost,
        target=prop.id,
    )


def quote_build_cost(scarcity: float, rent_index: float, draw: float) -> float:
    """Total project cost; scarce, high-rent areas cost more to build in."""
    raw = (BUILD_COST_MIN + draw * BUILD_COST_RANGE) * (1 + scarcity * BUILD_SCARCITY_PREMIUM) * rent_index
    return round_to_thousand(raw)


def start_build(ctx: RunContext, neighborhood_id: str, product_type_id: str) -> CommandResult:
    """Start ground-up development.

    The sponsor funds 25% of cost in cash; the rest is an interest-only
    construction loan. A rejected build leaves the RNG where it was.

    Raises:
        ReferenceDataError: If either id is unknown
    """
    state = ctx.state
    neighborhood = state.find_neighborhood(neighborhood_id)
    if neighborhood is None:
        raise ReferenceDataError("neighborhood", neighborhood_id)
    product = ctx.reference.product(product_type_id)

    if not neighborhood.allows(product_type_id):
        return _fail(
            f"Build blocked: zoning does not allow {product.name} in {neighborhood.name}.",
            neighborhood=neighborhood_id,
            product_type=product_type_id,
        )

    saved = ctx.rng.state
    cost = quote_build_cost(neighborhood.scarcity, neighborhood.rent_index, ctx.rng())
    equity = cost * BUILD_EQUITY_PCT
    if state.cash < equity:
        ctx.rng.state = saved
        return _fail(
            f"Not enough cash to start build. Need at least 25% of {cost:,.0f}.",
            neighborhood=neighborhood_id,
            product_type=product_type_id,
        )

    timeline = product.build
    prop = Property(
        id=f"B{state.year}-{int(ctx.rng() * 1e6)}",
        name=f"{neighborhood.name} - New {product.name}",
        neighborhood=neighborhood_id,
        product_type=product_type_id,
        base_noi=BUILD_BASE_NOI,
        loan_balance=cost * CONSTRUCTION_LTC,
        loan_rate=construction_loan_rate(state.market),
        amort_years=30,
        interest_only=True,
        build=BuildState(
            phase=LifecycleStage.CONSTRUCTION,
            years_remaining=timeline.years_to_build,
            stabilize_years_remaining=timeline.years_to_stabilize,
            lease_up_vacancy=timeline.lease_up_vacancy,
            cost=cost,
        ),
    )

    state.cash -= equity
    state.properties.append(prop)
    ctx.record(JournalAction.BUILD, prop.id, cost)

    log.info("build_started", property=prop.id, cost=cost, equity=equity, cash=state.cash)
    return CommandResult(
        ok=True,
        message=(
            f"Started build: {product.name} in {neighborhood.name}. "
            f"Total cost {cost:,.0f} (equity {equity:,.0f})."
        ),
        amount=equity,
        target=prop.id,
    )


def import_deal(ctx: RunContext, deal: Deal) -> CommandResult:
    """Buy an underwritten deal into the running portfolio.

    Half of the deal's market NOI lift is credited up front.

    Raises:
        ReferenceDataError: If the deal's neighborhood is not in the run or
            its product type is unknown
    """
    state = ctx.state
    if state.find_neighborhood(deal.neighborhood) is None:
        raise ReferenceDataError("neighborhood", deal.neighborhood)
    ctx.reference.product(deal.product_type)

    down = deal.purchase_price * (1.0 - deal.debt.ltv)
    if state.cash < down:
        return _fail(
            f"Not enough cash for the {down:,.0f} down payment.",
            deal=deal.id,
        )

    prop = Property(
        id=f"IMP-{deal.id}-{state.year}-{int(ctx.rng() * 1e6)}",
        name=deal.name,
        neighborhood=deal.neighborhood,
        product_type=deal.product_type,
        base_noi=deal.in_place_noi * (1.0 + deal.market_noi_lift_pct * IMPORT_LIFT_SHARE),
        loan_balance=deal.loan_amount,
        loan_rate=deal.debt.rate,
        amort_years=deal.debt.amort_years,
        interest_only=False,
        ltv=deal.debt.ltv,
    )
    _stabilize_new_purchase(ctx, prop)

    state.cash -= down
    state.properties.append(prop)
    ctx.record(JournalAction.IMPORT_BUY, deal.id, deal.purchase_price)

    log.info("deal_imported", deal=deal.id, property=prop.id, down=down, cash=state.cash)
    return CommandResult(
        ok=True,
        message=f"Imported {deal.name} into the portfolio (down {down:,.0f}).",
        amount=down,
        target=prop.id,
    )
