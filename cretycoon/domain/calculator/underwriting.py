"""Deal underwriting and IRR solver.

Quick hold-period projection of a single acquisition with an exit at a
chosen cap rate. Pure computation; nothing here touches a running portfolio.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import numpy_financial as npf

from cretycoon.core.financial import (
    annual_debt_service,
    clamp,
    compute_noi,
    dscr,
    value_from_noi,
)
from cretycoon.core.logging import get_logger
from cretycoon.domain.models.deal import (
    Deal,
    UnderwritingInputs,
    UnderwritingResult,
    YearCashFlow,
)
from cretycoon.domain.models.market import Neighborhood
from cretycoon.domain.models.product import ProductType

log = get_logger(__name__)

# Solver bounds and tolerances
IRR_LOW = -0.9
IRR_HIGH = 1.5
IRR_MAX_ITER = 80
IRR_TOLERANCE = 1e-6

# Input domains
RENT_GROWTH_BOUNDS = (-0.10, 0.15)
EXIT_CAP_BOUNDS = (0.03, 0.12)
LIFT_RAMP_YEARS = 2


def solve_irr(cash_flows: Sequence[float]) -> float:
    """Annual IRR by bisection over [-0.9, 1.5].

    Args:
        cash_flows: Period cash flows, first one at t=0

    Returns:
        IRR as decimal, or NaN when no root is bracketed
    """
    values = np.asarray(cash_flows, dtype=float)

    def npv(rate: float) -> float:
        return float(npf.npv(rate, values))

    lo, hi = IRR_LOW, IRR_HIGH
    f_lo, f_hi = npv(lo), npv(hi)
    if not (np.isfinite(f_lo) and np.isfinite(f_hi)):
        return math.nan
    if f_lo * f_hi > 0:
        return math.nan

    for _ in range(IRR_MAX_ITER):
        mid = (lo + hi) / 2.0
        f_mid = npv(mid)
        if abs(f_mid) < IRR_TOLERANCE:
            return mid
        if f_lo * f_mid <= 0:
            hi = mid
        else:
            lo, f_lo = mid, f_mid
    return (lo + hi) / 2.0


def underwrite_deal(
    deal: Deal,
    neighborhood: Neighborhood,
    product: ProductType,
    inputs: UnderwritingInputs,
) -> UnderwritingResult:
    """Project a deal over the hold and compute exit, IRR and multiple.

    Inputs are clamped to their domains rather than rejected. The in-place
    NOI ramps toward market over two years via ``market_noi_lift_pct``; rents
    compound at ``rent_growth`` from the neighborhood's current index. Capex
    is spent entirely in year 1.

    Args:
        deal: Acquisition scenario
        neighborhood: Neighborhood record for the deal
        product: Product type record for the deal
        inputs: Scenario inputs

    Returns:
        UnderwritingResult with yearly cash flows and return metrics
    """
    hold = max(1, math.floor(inputs.hold_years))
    rent_growth = clamp(inputs.rent_growth, *RENT_GROWTH_BOUNDS)
    exit_cap = clamp(inputs.exit_cap, *EXIT_CAP_BOUNDS)
    capex = max(0.0, inputs.capex)

    loan_amount = deal.loan_amount
    loan_balance = loan_amount
    noi = deal.in_place_noi
    years: list[YearCashFlow] = []

    for year in range(1, hold + 1):
        lift = deal.market_noi_lift_pct * min(1.0, year / LIFT_RAMP_YEARS)
        rent_index = neighborhood.rent_index * (1.0 + rent_growth) ** year

        projected_noi = compute_noi(
            base_noi=noi * (1.0 + lift),
            rent_index=rent_index,
            vacancy=neighborhood.vacancy,
            expense_ratio=product.base_expense_ratio,
        )

        ds = annual_debt_service(
            balance=loan_balance,
            rate=deal.debt.rate,
            amort_years=deal.debt.amort_years,
            interest_only=False,
        )
        loan_balance = max(0.0, loan_balance - ds.principal)

        capex_hit = capex if year == 1 else 0.0
        years.append(YearCashFlow(
            year=year,
            noi=projected_noi,
            debt_service=ds.payment,
            dscr=dscr(projected_noi, ds.payment),
            cash_flow=projected_noi - ds.payment - capex_hit,
            loan_balance=loan_balance,
        ))
        noi = projected_noi

    exit_value = value_from_noi(years[-1].noi, exit_cap)
    sale_net = exit_value - loan_balance
    equity = deal.purchase_price - loan_amount + capex

    irr = solve_irr([-equity, *(y.cash_flow for y in years), sale_net])
    distributions = sum(y.cash_flow for y in years) + sale_net
    equity_multiple = distributions / equity if equity > 0 else 0.0

    log.debug(
        "deal_underwritten",
        deal=deal.id,
        hold=hold,
        irr=None if math.isnan(irr) else round(irr, 6),
        equity_multiple=round(equity_multiple, 4),
    )

    return UnderwritingResult(
        cash_flows=years,
        exit_value=exit_value,
        sale_net=sale_net,
        equity=equity,
        irr=irr,
        equity_multiple=equity_multiple,
    )
