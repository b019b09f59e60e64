"""Portfolio aggregation.

Pure read-side computation: per-property valuation snapshots rolled up into
portfolio totals. Safe to call any number of times per year.
"""

from __future__ import annotations

from typing import Mapping

from cretycoon.core.exceptions import ReferenceDataError
from cretycoon.core.financial import (
    annual_debt_service,
    clamp,
    compute_noi,
    dscr,
    value_from_noi,
)
from cretycoon.domain.calculator.lifecycle import effective_rent_index
from cretycoon.domain.models.market import Neighborhood
from cretycoon.domain.models.portfolio import PortfolioSnapshot, PropertySnapshot
from cretycoon.domain.models.product import ProductType
from cretycoon.domain.models.property import LifecycleStage, Property
from cretycoon.domain.models.run import RunState

# Property-level bounds are wider than the market's
PROPERTY_VACANCY_BOUNDS = (0.01, 0.40)
PROPERTY_CAP_RATE_BOUNDS = (0.03, 0.14)
CONSTRUCTION_LTC = 0.75


def construction_carrying_value(prop: Property) -> float:
    """Book value of a project still under construction."""
    if prop.build is not None and prop.build.cost is not None:
        return prop.build.cost
    return prop.loan_balance / CONSTRUCTION_LTC


def property_snapshot(
    prop: Property,
    neighborhood: Neighborhood,
    product: ProductType,
) -> PropertySnapshot:
    """Value and cash flow of one property at current conditions.

    Projects under construction earn nothing and are carried at cost; their
    construction interest still counts as debt service.
    """
    vacancy = clamp(neighborhood.vacancy + prop.vacancy_delta, *PROPERTY_VACANCY_BOUNDS)
    cap_rate = clamp(neighborhood.cap_rate + prop.cap_rate_delta, *PROPERTY_CAP_RATE_BOUNDS)

    if prop.stage is LifecycleStage.CONSTRUCTION:
        noi = 0.0
        value = construction_carrying_value(prop)
    else:
        noi = compute_noi(
            base_noi=prop.base_noi,
            rent_index=effective_rent_index(prop, neighborhood),
            vacancy=vacancy,
            expense_ratio=product.base_expense_ratio,
        )
        value = value_from_noi(noi, cap_rate)

    ds = annual_debt_service(
        balance=prop.loan_balance,
        rate=prop.loan_rate,
        amort_years=prop.amort_years,
        interest_only=prop.interest_only,
    )

    return PropertySnapshot(
        property_id=prop.id,
        name=prop.name,
        stage=prop.stage,
        noi=noi,
        vacancy=vacancy,
        cap_rate=cap_rate,
        value=value,
        loan_balance=prop.loan_balance,
        debt_service=ds.payment,
        interest=ds.interest,
        principal=ds.principal,
        dscr=dscr(noi, ds.payment),
        cash_flow=noi - ds.payment,
    )


def resolve_refs(
    state: RunState,
    products: Mapping[str, ProductType],
    prop: Property,
) -> tuple[Neighborhood, ProductType]:
    """Look up a property's neighborhood and product type records.

    Raises:
        ReferenceDataError: If either id has no record
    """
    neighborhood = state.find_neighborhood(prop.neighborhood)
    if neighborhood is None:
        raise ReferenceDataError("neighborhood", prop.neighborhood)
    product = products.get(prop.product_type)
    if product is None:
        raise ReferenceDataError("product type", prop.product_type)
    return neighborhood, product


def snapshot_properties(
    state: RunState,
    products: Mapping[str, ProductType],
) -> list[PropertySnapshot]:
    snapshots = []
    for prop in state.properties:
        neighborhood, product = resolve_refs(state, products, prop)
        snapshots.append(property_snapshot(prop, neighborhood, product))
    return snapshots


def compute_portfolio(
    state: RunState,
    products: Mapping[str, ProductType],
) -> PortfolioSnapshot:
    """Roll property snapshots into portfolio totals.

    Args:
        state: Current run state
        products: Product types by id

    Returns:
        PortfolioSnapshot for the current year
    """
    total_value = total_debt = total_noi = total_ds = total_cf = 0.0

    snapshots = snapshot_properties(state, products)
    for snap in snapshots:
        total_value += snap.value
        total_debt += snap.loan_balance
        total_noi += snap.noi
        total_ds += snap.debt_service
        total_cf += snap.cash_flow

    return PortfolioSnapshot(
        year=state.year,
        cash=state.cash,
        property_count=len(snapshots),
        total_value=total_value,
        total_debt=total_debt,
        total_noi=total_noi,
        total_debt_service=total_ds,
        total_cash_flow=total_cf,
        equity=total_value - total_debt + state.cash,
        dscr=dscr(total_noi, total_ds),
    )
