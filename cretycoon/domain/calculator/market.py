"""Market and neighborhood evolution.

Yearly mean-reverting updates and one-time event shocks. The market must be
advanced before the neighborhoods, which read the updated rates.
"""

from __future__ import annotations

from typing import Optional, Sequence

from cretycoon.core.financial import clamp
from cretycoon.core.logging import get_logger
from cretycoon.core.rng import Mulberry32
from cretycoon.domain.models.market import (
    BASE_RATE_BOUNDS,
    CAP_RATE_BOUNDS,
    DEMAND_BOUNDS,
    LIQUIDITY_BOUNDS,
    RENT_INDEX_BOUNDS,
    SPREAD_BOUNDS,
    VACANCY_BOUNDS,
    EventScope,
    Market,
    MarketEvent,
    Neighborhood,
)

log = get_logger(__name__)

NO_EVENT_PROBABILITY = 0.35

# Market dynamics
BASE_RATE_DRIFT = 0.001
LIQUIDITY_ANCHOR = 0.7
NEUTRAL_LIQUIDITY = 0.6

# Neighborhood dynamics
BASE_RENT_GROWTH = 0.02
TIGHT_VACANCY = 0.10
BASE_CAP_RATE = 0.045


def update_market_year(market: Market, rng: Mulberry32) -> None:
    """Advance macro variables one year (3 draws)."""
    shock = (rng() - 0.5) * 0.01
    market.base_rate = clamp(market.base_rate + BASE_RATE_DRIFT + shock, *BASE_RATE_BOUNDS)

    # Spreads tighten as liquidity rises above neutral
    spread_shock = (rng() - 0.5) * 0.004
    market.spread = clamp(
        market.spread + spread_shock - (market.liquidity - NEUTRAL_LIQUIDITY) * 0.003,
        *SPREAD_BOUNDS,
    )

    liq_shock = (rng() - 0.5) * 0.08
    market.liquidity = clamp(
        market.liquidity + (LIQUIDITY_ANCHOR - market.liquidity) * 0.2 + liq_shock,
        *LIQUIDITY_BOUNDS,
    )


def update_neighborhood_year(n: Neighborhood, market: Market, rng: Mulberry32) -> float:
    """Advance one neighborhood a year against the current market (4 draws).

    Returns:
        Rent growth applied this year
    """
    noise = (rng() - 0.5) * 0.04
    n.demand = clamp(n.demand + (n.base_demand - n.demand) * 0.25 + noise, *DEMAND_BOUNDS)

    # Higher demand pulls vacancy down
    vac_shock = (rng() - 0.5) * 0.02
    target_vac = clamp(0.14 - (n.demand - 0.6) * 0.12, 0.03, 0.28)
    n.vacancy = clamp(n.vacancy + (target_vac - n.vacancy) * 0.35 + vac_shock, *VACANCY_BOUNDS)

    tight_bonus = clamp((TIGHT_VACANCY - n.vacancy) * 0.25, -0.03, 0.04)
    rg_noise = (rng() - 0.5) * 0.02
    rent_growth = clamp(BASE_RENT_GROWTH + tight_bonus + rg_noise, -0.06, 0.10)
    n.rent_index = clamp(n.rent_index * (1.0 + rent_growth), *RENT_INDEX_BOUNDS)
    n.rent_growth = rent_growth

    rate_component = market.base_rate * 0.55 + market.spread * 0.65
    liq_component = (market.liquidity - NEUTRAL_LIQUIDITY) * 0.02
    target_cap = clamp(
        n.cap_rate * 0.5 + (BASE_CAP_RATE + rate_component - liq_component) * 0.5,
        *CAP_RATE_BOUNDS,
    )
    cap_noise = (rng() - 0.5) * 0.004
    n.cap_rate = clamp(n.cap_rate + (target_cap - n.cap_rate) * 0.35 + cap_noise, *CAP_RATE_BOUNDS)

    return rent_growth


def apply_event_to_market(market: Market, event: MarketEvent) -> None:
    e = event.effects
    if e.base_rate_delta is not None:
        market.base_rate += e.base_rate_delta
    if e.spread_delta is not None:
        market.spread += e.spread_delta
    if e.liquidity_delta is not None:
        market.liquidity += e.liquidity_delta

    market.base_rate = clamp(market.base_rate, *BASE_RATE_BOUNDS)
    market.spread = clamp(market.spread, *SPREAD_BOUNDS)
    market.liquidity = clamp(market.liquidity, *LIQUIDITY_BOUNDS)


def apply_event_to_neighborhood(n: Neighborhood, event: MarketEvent) -> None:
    e = event.effects
    if e.demand_delta is not None:
        n.demand = clamp(n.demand + e.demand_delta, *DEMAND_BOUNDS)
    if e.rent_index_delta is not None:
        n.rent_index = clamp(n.rent_index + e.rent_index_delta, *RENT_INDEX_BOUNDS)
    if e.vacancy_delta is not None:
        n.vacancy = clamp(n.vacancy + e.vacancy_delta, *VACANCY_BOUNDS)
    if e.cap_rate_delta is not None:
        n.cap_rate = clamp(n.cap_rate + e.cap_rate_delta, *CAP_RATE_BOUNDS)


def pick_event(events: Sequence[MarketEvent], rng: Mulberry32) -> Optional[MarketEvent]:
    """Draw this year's headline event, or None (35% of the time)."""
    if rng() < NO_EVENT_PROBABILITY or not events:
        return None
    return rng.choice(events)


def apply_event(
    event: MarketEvent,
    market: Market,
    neighborhoods: Sequence[Neighborhood],
) -> bool:
    """Apply an event according to its scope.

    Returns:
        True if the event found its target
    """
    if event.scope is EventScope.GLOBAL:
        apply_event_to_market(market, event)
        return True

    target = next((n for n in neighborhoods if n.id == event.target_neighborhood), None)
    if target is None:
        log.warning("event_target_missing", event_id=event.id, target=event.target_neighborhood)
        return False
    apply_event_to_neighborhood(target, event)
    return True
