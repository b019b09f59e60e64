"""Financial calculation functions.

Core NOI, valuation and debt-service calculations for income properties.
All rates are decimals (0.05 for 5%) and all amounts are annual.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import numpy_financial as npf

if TYPE_CHECKING:
    from cretycoon.domain.models.market import Market

# Vacancy above which landlords start giving concessions
CONCESSION_VACANCY_BASELINE = 0.05
CONCESSION_SLOPE = 0.4
MIN_RENT_FACTOR = 0.92


def clamp(x: float, lo: float, hi: float) -> float:
    """Bound ``x`` to ``[lo, hi]``."""
    return max(lo, min(hi, x))


def round_to_thousand(amount: float) -> float:
    """Nearest thousand, halves rounding up."""
    return float(math.floor(amount / 1000 + 0.5) * 1000)


@dataclass(frozen=True)
class DebtService:
    """Annual debt service breakdown."""

    payment: float = 0.0
    interest: float = 0.0
    principal: float = 0.0


def effective_rent_factor(vacancy: float) -> float:
    """Concession haircut on gross rent as vacancy rises above 5%.

    Args:
        vacancy: Vacancy rate as decimal

    Returns:
        Multiplier in [0.92, 1.0]
    """
    excess = max(0.0, vacancy - CONCESSION_VACANCY_BASELINE)
    return clamp(1.0 - excess * CONCESSION_SLOPE, MIN_RENT_FACTOR, 1.0)


def compute_noi(
    base_noi: float,
    rent_index: float,
    vacancy: float,
    expense_ratio: float,
) -> float:
    """Project NOI from an anchor NOI under current market conditions.

    The anchor NOI is grossed up to an implied effective gross income using
    the expense ratio, rescaled by rent index, occupancy and concessions,
    then the expense ratio is applied again.

    Args:
        base_noi: Anchor NOI before market factors
        rent_index: Rent index applied to gross income
        vacancy: Vacancy rate as decimal
        expense_ratio: Operating expenses as share of gross income

    Returns:
        Projected NOI, never negative
    """
    if expense_ratio >= 1.0:
        return 0.0

    egi = base_noi / (1.0 - expense_ratio)
    egi *= rent_index * (1.0 - vacancy) * effective_rent_factor(vacancy)
    noi = egi * (1.0 - expense_ratio)
    return max(0.0, noi)


def value_from_noi(noi: float, cap_rate: float) -> float:
    """Direct capitalization value; 0 when the cap rate is not positive."""
    if cap_rate > 0:
        return noi / cap_rate
    return 0.0


def annual_debt_service(
    balance: float,
    rate: float,
    amort_years: int,
    interest_only: bool = False,
) -> DebtService:
    """Calculate one year of debt service on the current balance.

    Args:
        balance: Outstanding loan balance
        rate: Annual interest rate as decimal
        amort_years: Amortization period in years
        interest_only: If True, no principal is repaid

    Returns:
        DebtService with payment, interest and principal
    """
    if balance <= 0:
        return DebtService()

    interest = balance * rate
    if interest_only:
        return DebtService(payment=interest, interest=interest, principal=0.0)

    n = max(1, int(amort_years))
    if rate <= 0:
        payment = balance / n
    else:
        payment = float(-npf.pmt(rate, n, balance))

    return DebtService(
        payment=payment,
        interest=interest,
        principal=max(0.0, payment - interest),
    )


def dscr(noi: float, debt_service: float) -> float:
    """Debt service coverage ratio; infinite for a debt-free asset."""
    if debt_service <= 0:
        return math.inf
    return noi / debt_service


def draw_loan_rate(market: Market, rng: Callable[[], float]) -> float:
    """Market-indexed rate for acquisition, take-out and refinance loans."""
    return clamp(market.base_rate + market.spread + 0.012 + rng() * 0.01, 0.03, 0.14)


def construction_loan_rate(market: Market) -> float:
    """Interest-only construction loan rate."""
    return clamp(market.base_rate + market.spread + 0.02, 0.04, 0.16)
