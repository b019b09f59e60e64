"""Unit tests for portfolio aggregation."""

import math

import pytest

from cretycoon.core.exceptions import ReferenceDataError
from cretycoon.domain.calculator import compute_portfolio, property_snapshot
from cretycoon.domain.models import BuildState, LifecycleStage, PortfolioSnapshot, Property, RunState


@pytest.fixture
def state(neighborhood, stabilized_property):
    return RunState(cash=1_000_000.0, neighborhoods=[neighborhood], properties=[stabilized_property])


@pytest.fixture
def products(product):
    return {product.id: product}


class TestPropertySnapshot:
    """Tests for property_snapshot function."""

    def test_debt_free(self, stabilized_property, neighborhood, product):
        snap = property_snapshot(stabilized_property, neighborhood, product)

        assert snap.stage is LifecycleStage.STABILIZED
        assert snap.noi == pytest.approx(570_000)
        assert snap.value == pytest.approx(9_500_000)
        assert snap.debt_service == 0.0
        assert snap.dscr == math.inf
        assert snap.cash_flow == pytest.approx(snap.noi)
        assert snap.equity == pytest.approx(9_500_000)

    def test_levered(self, stabilized_property, neighborhood, product):
        stabilized_property.loan_balance = 5_000_000.0
        stabilized_property.loan_rate = 0.05
        snap = property_snapshot(stabilized_property, neighborhood, product)

        assert snap.interest == pytest.approx(250_000)
        assert snap.debt_service > snap.interest
        assert snap.dscr == pytest.approx(snap.noi / snap.debt_service)
        assert snap.cash_flow == pytest.approx(snap.noi - snap.debt_service)

    def test_property_deltas_clamped(self, stabilized_property, neighborhood, product):
        stabilized_property.vacancy_delta = 0.9
        stabilized_property.cap_rate_delta = -0.5
        snap = property_snapshot(stabilized_property, neighborhood, product)

        assert snap.vacancy == pytest.approx(0.40)
        assert snap.cap_rate == pytest.approx(0.03)

    def test_construction_carried_at_cost(self, neighborhood, product):
        project = Property(
            id="B1",
            name="Project",
            neighborhood="testville",
            product_type="multifamily",
            base_noi=650_000.0,
            loan_balance=7_500_000.0,
            loan_rate=0.08,
            interest_only=True,
            build=BuildState(years_remaining=2, stabilize_years_remaining=1, cost=10_000_000.0),
        )
        snap = property_snapshot(project, neighborhood, product)

        assert snap.noi == 0.0
        assert snap.value == pytest.approx(10_000_000)
        assert snap.debt_service == pytest.approx(600_000)
        assert snap.cash_flow == pytest.approx(-600_000)
        assert snap.dscr == 0.0

        project.build.cost = None
        assert property_snapshot(project, neighborhood, product).value == pytest.approx(10_000_000)

    def test_lease_up_earns_income(self, neighborhood, product):
        project = Property(
            id="B2",
            name="Leasing",
            neighborhood="testville",
            product_type="multifamily",
            base_noi=600_000.0,
            vacancy_delta=0.2,
            build=BuildState(phase="leaseup", stabilize_years_remaining=1),
        )
        snap = property_snapshot(project, neighborhood, product)
        assert snap.stage is LifecycleStage.LEASE_UP
        assert 0 < snap.noi < 570_000


class TestComputePortfolio:
    def test_totals(self, state, products):
        port = compute_portfolio(state, products)

        assert port.year == 1
        assert port.property_count == 1
        assert port.total_value == pytest.approx(9_500_000)
        assert port.total_debt == 0.0
        assert port.equity == pytest.approx(9_500_000 + 1_000_000)
        assert port.dscr == math.inf

    def test_empty_portfolio(self, neighborhood, products):
        port = compute_portfolio(RunState(cash=5.0, neighborhoods=[neighborhood]), products)
        assert port.property_count == 0
        assert port.equity == 5.0
        assert port.dscr == math.inf

    def test_idempotent(self, state, products):
        assert compute_portfolio(state, products) == compute_portfolio(state, products)

    def test_unknown_neighborhood(self, state, products):
        state.properties[0].neighborhood = "nowhere"
        with pytest.raises(ReferenceDataError) as exc:
            compute_portfolio(state, products)
        assert exc.value.entity_id == "nowhere"

    def test_unknown_product(self, state):
        with pytest.raises(ReferenceDataError):
            compute_portfolio(state, {})


class TestSnapshotSerialization:
    def test_infinite_dscr_round_trip(self):
        """No-debt coverage is stored as null and read back as infinite."""
        payload = PortfolioSnapshot(cash=1.0).to_json_dict()
        assert payload["dscr"] is None
        assert PortfolioSnapshot.model_validate(payload).dscr == math.inf

    def test_finite_dscr_round_trip(self):
        payload = PortfolioSnapshot(dscr=1.35).to_json_dict()
        assert payload["dscr"] == 1.35
