"""Listing generation service.

Generates the yearly acquisition offers. Listings are priced off the
neighborhood's current rents, vacancy and cap rate and are discarded at the
next year-end whether or not they were bought.
"""

from __future__ import annotations

from cretycoon.core.financial import clamp, draw_loan_rate, round_to_thousand
from cretycoon.core.rng import Mulberry32
from cretycoon.domain.models.property import DEFAULT_TARGET_LTV, Listing, LoanTerms
from cretycoon.domain.models.run import RunState

from .reference_data import ReferenceData

LISTINGS_PER_YEAR = 3
BASE_NOI_MIN = 350_000.0
BASE_NOI_RANGE = 900_000.0
LISTING_CAP_BOUNDS = (0.04, 0.12)
LISTING_AMORT_YEARS = 30


def generate_listings(
    state: RunState,
    reference: ReferenceData,
    rng: Mulberry32,
) -> list[Listing]:
    """Create this year's listings.

    Each attempt picks a random neighborhood and a product type its zoning
    allows; neighborhoods with no allowed product are skipped, so fewer than
    three listings may come back.

    Args:
        state: Current run state (neighborhoods and market are read)
        reference: Reference data
        rng: Run generator

    Returns:
        New list of listings
    """
    listings: list[Listing] = []
    if not state.neighborhoods:
        return listings

    product_ids = [p.id for p in reference.product_types]

    for i in range(LISTINGS_PER_YEAR):
        n = rng.choice(state.neighborhoods)
        allowed = [pid for pid in product_ids if n.allows(pid)]
        if not allowed:
            continue

        product = reference.product(rng.choice(allowed))

        base_noi = BASE_NOI_MIN + rng() * BASE_NOI_RANGE
        implied_noi = base_noi * n.rent_index * (1.0 - n.vacancy)
        cap = clamp(n.cap_rate + (rng() - 0.5) * 0.01, *LISTING_CAP_BOUNDS)
        price = round_to_thousand(implied_noi / cap)

        rate = draw_loan_rate(state.market, rng)
        suffix = int(rng() * 1e6)

        listings.append(Listing(
            id=f"L{state.year}-{i}-{suffix}",
            name=f"{n.name} - {product.name}",
            neighborhood=n.id,
            product_type=product.id,
            price=float(price),
            base_noi=base_noi,
            loan_terms=LoanTerms(
                ltv=DEFAULT_TARGET_LTV,
                rate=rate,
                amort_years=LISTING_AMORT_YEARS,
                interest_only=False,
            ),
        ))

    return listings
