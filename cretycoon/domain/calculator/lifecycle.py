"""Property lifecycle state machine.

Construction -> lease-up -> stabilized, lease rollover, renovation,
disposition and the balloon-maturity refinance wall. Functions mutate the
property they are given; cash and portfolio membership are handled by the
run services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cretycoon.core.financial import clamp, draw_loan_rate
from cretycoon.core.rng import Mulberry32
from cretycoon.domain.models.market import RENT_INDEX_BOUNDS, Market, Neighborhood
from cretycoon.domain.models.product import ProductType
from cretycoon.domain.models.property import (
    MAX_RENO_LEVEL,
    LeaseState,
    LifecycleStage,
    Property,
)

STABILIZED_AMORT_YEARS = 30
SALE_FRICTION_PCT = 0.02

# Renovation economics
RENO_COST_PCT = 0.03
RENO_COST_STEP = 0.35
RENO_COST_MIN = 200_000.0
RENO_COST_MAX = 5_000_000.0
RENO_RENT_STEP = 0.03
RENO_RENT_MULT_CAP = 1.35
RENO_VACANCY_STEP = 0.005
RENO_VACANCY_FLOOR = -0.08
RENO_LEASE_NUDGE = 1.01


# --- Debt maturity ---

def draw_maturity_term(rng: Mulberry32) -> int:
    """Balloon term in years: 5 (45%), 7 (30%) or 10 (25%)."""
    r = rng()
    if r < 0.45:
        return 5
    if r < 0.75:
        return 7
    return 10


# --- Leases ---

def init_lease(prop: Property, neighborhood: Neighborhood, product: ProductType, rng: Mulberry32) -> LeaseState:
    """Sign a fresh in-place lease position at today's market rent."""
    params = product.lease
    prop.lease = LeaseState(
        years_remaining=rng.randint(params.min_term, params.max_term),
        roll_pct=params.roll_pct,
        lease_rent_index=neighborhood.rent_index,
    )
    return prop.lease


def advance_lease(prop: Property, neighborhood: Neighborhood, product: ProductType, rng: Mulberry32) -> bool:
    """Roll the in-place lease one year.

    A ``roll_pct`` share of rents marks to market every year; on term
    expiry the whole lease reprices and a new term is drawn.

    Returns:
        True if the lease fully rolled over this year
    """
    lease = prop.lease
    if lease is None:
        return False

    market_index = neighborhood.rent_index
    lease.lease_rent_index = lease.lease_rent_index * (1.0 - lease.roll_pct) + market_index * lease.roll_pct

    lease.years_remaining -= 1
    if lease.years_remaining <= 0:
        lease.years_remaining = rng.randint(product.lease.min_term, product.lease.max_term)
        lease.lease_rent_index = market_index
        return True
    return False


def ensure_initialized(
    prop: Property,
    neighborhood: Neighborhood,
    product: ProductType,
    rng: Mulberry32,
    year: int,
) -> bool:
    """Give a stabilized property a maturity and lease if it lacks them.

    Returns:
        True if anything was initialized
    """
    if not prop.is_stabilized:
        return False

    changed = False
    if prop.maturity_year is None:
        prop.maturity_year = year + draw_maturity_term(rng)
        changed = True
    if prop.lease is None:
        init_lease(prop, neighborhood, product, rng)
        changed = True
    return changed


def effective_rent_index(prop: Property, neighborhood: Neighborhood) -> float:
    """Rent index the property actually collects."""
    base = prop.lease.lease_rent_index if prop.lease is not None else neighborhood.rent_index
    return base * prop.rent_index_mult


# --- Development ---

def advance_build(
    prop: Property,
    neighborhood: Neighborhood,
    product: ProductType,
    market: Market,
    rng: Mulberry32,
    year: int,
) -> Optional[LifecycleStage]:
    """Advance construction / lease-up one year.

    Returns:
        The stage entered this year, or None if the stage did not change
    """
    build = prop.build
    if build is None:
        return None

    if build.phase is LifecycleStage.CONSTRUCTION:
        build.years_remaining -= 1
        if build.years_remaining <= 0:
            build.phase = LifecycleStage.LEASE_UP
            prop.vacancy_delta = max(prop.vacancy_delta, build.lease_up_vacancy)
            return LifecycleStage.LEASE_UP
        return None

    build.stabilize_years_remaining -= 1
    prop.vacancy_delta = max(prop.vacancy_delta, build.lease_up_vacancy)
    if build.stabilize_years_remaining > 0:
        return None

    # Take-out: construction loan converts to an amortizing balloon loan
    prop.build = None
    prop.vacancy_delta = 0.0
    prop.interest_only = False
    prop.amort_years = STABILIZED_AMORT_YEARS
    prop.loan_rate = draw_loan_rate(market, rng)
    prop.maturity_year = year + draw_maturity_term(rng)
    init_lease(prop, neighborhood, product, rng)
    return LifecycleStage.STABILIZED


# --- Renovation ---

def renovation_cost(value: float, next_level: int) -> float:
    """Cost of taking a property to ``next_level``."""
    raw = RENO_COST_PCT * value * (1.0 + RENO_COST_STEP * (next_level - 1))
    return clamp(raw, RENO_COST_MIN, RENO_COST_MAX)


def can_renovate(prop: Property) -> bool:
    return prop.is_stabilized and prop.reno_level < MAX_RENO_LEVEL


def apply_renovation(prop: Property) -> None:
    """Apply one renovation level's operating effects."""
    prop.reno_level = min(MAX_RENO_LEVEL, prop.reno_level + 1)
    prop.rent_index_mult = min(RENO_RENT_MULT_CAP, prop.rent_index_mult + RENO_RENT_STEP)
    prop.vacancy_delta = max(RENO_VACANCY_FLOOR, prop.vacancy_delta - RENO_VACANCY_STEP)
    if prop.lease is not None:
        prop.lease.lease_rent_index = clamp(
            prop.lease.lease_rent_index * RENO_LEASE_NUDGE, *RENT_INDEX_BOUNDS
        )


# --- Disposition ---

@dataclass(frozen=True)
class SaleProceeds:
    price: float
    friction: float
    loan_payoff: float

    @property
    def net(self) -> float:
        """May be negative when the loan exceeds the sale price."""
        return self.price - self.friction - self.loan_payoff


def sale_proceeds(value: float, loan_balance: float) -> SaleProceeds:
    return SaleProceeds(
        price=value,
        friction=value * SALE_FRICTION_PCT,
        loan_payoff=loan_balance,
    )


# --- Refinance wall ---

@dataclass(frozen=True)
class MaturityOutcome:
    """Result of resolving one maturing loan.

    ``cash_delta`` is positive for a cash-out refinance, negative for a
    funded shortfall, and the net sale proceeds for a forced sale.
    """

    property_id: str
    refinanced: bool
    rate: float
    old_balance: float
    new_loan: float
    cash_delta: float
    sale: Optional[SaleProceeds] = None

    @property
    def forced_sale(self) -> bool:
        return self.sale is not None


def is_maturing(prop: Property, year: int) -> bool:
    return prop.is_stabilized and prop.maturity_year is not None and prop.maturity_year <= year


def resolve_maturity(
    prop: Property,
    value: float,
    cash: float,
    market: Market,
    rng: Mulberry32,
    year: int,
) -> MaturityOutcome:
    """Refinance a matured loan at ``value * ltv`` or fail into a forced sale.

    On success the property carries the new loan. On failure the property is
    left untouched; the caller removes it and books the sale.
    """
    rate = draw_loan_rate(market, rng)
    new_loan = max(0.0, value * prop.ltv)
    old_balance = prop.loan_balance
    cash_delta = new_loan - old_balance

    if cash_delta < 0 and cash < -cash_delta:
        sale = sale_proceeds(value, old_balance)
        return MaturityOutcome(
            property_id=prop.id,
            refinanced=False,
            rate=rate,
            old_balance=old_balance,
            new_loan=0.0,
            cash_delta=sale.net,
            sale=sale,
        )

    prop.loan_balance = new_loan
    prop.loan_rate = rate
    prop.interest_only = False
    prop.amort_years = STABILIZED_AMORT_YEARS
    prop.maturity_year = year + draw_maturity_term(rng)
    return MaturityOutcome(
        property_id=prop.id,
        refinanced=True,
        rate=rate,
        old_balance=old_balance,
        new_loan=new_loan,
        cash_delta=cash_delta,
    )
