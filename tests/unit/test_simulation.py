"""Unit tests for run creation and the yearly step."""

import pytest

from cretycoon.application.services import (
    advance_year,
    create_run,
    portfolio_snapshot,
    property_snapshots,
)
from cretycoon.core.exceptions import ReferenceDataError
from cretycoon.core.rng import seed_from_string
from cretycoon.core.settings import AppSettings
from cretycoon.domain.models import MarketEvent, Property


class TestCreateRun:
    """Tests for create_run function."""

    def test_initial_state(self, ctx, reference):
        state = ctx.state
        assert state.year == 1
        assert state.cash == 3_000_000
        assert state.seed == seed_from_string("unit-test-seed")
        assert state.properties == []
        assert len(state.listings) == 3
        assert len(state.history) == 1
        assert len(state.neighborhoods) == len(reference.neighborhoods)

    def test_neighborhoods_are_copies(self, ctx, reference):
        ctx.state.neighborhoods[0].rent_index = 1.7
        assert reference.neighborhoods[0].rent_index != 1.7

    @pytest.mark.parametrize("difficulty, cash", [("easy", 4_500_000), ("normal", 3_000_000), ("hard", 2_200_000)])
    def test_difficulty_sets_cash(self, reference, difficulty, cash):
        ctx = create_run(reference, AppSettings(seed="x", difficulty=difficulty))
        assert ctx.state.cash == cash

    def test_unseeded_run(self, reference):
        ctx = create_run(reference, AppSettings(seed=None))
        assert ctx.state.seed is not None

    def test_same_seed_same_listings(self, reference, seeded_settings):
        a = create_run(reference, seeded_settings)
        b = create_run(reference, seeded_settings)
        assert a.state.listings == b.state.listings

    def test_listings_respect_zoning(self, ctx):
        for listing in ctx.state.listings:
            assert ctx.state.find_neighborhood(listing.neighborhood).allows(listing.product_type)
            assert listing.price % 1000 == 0
            assert listing.loan_terms.ltv == 0.65


class TestAdvanceYear:
    """Tests for advance_year function."""

    def test_advances_clock(self, ctx):
        report = advance_year(ctx)
        assert ctx.state.year == 2
        assert report.year == 2
        assert len(ctx.state.history) == 2
        assert ctx.state.history[-1] == report.portfolio
        assert all(listing.id.startswith("L2-") for listing in ctx.state.listings)

    def test_scripted_event(self, ctx):
        spike = MarketEvent(id="spike", name="Rate Spike", effects={"baseRateDelta": 0.5})
        report = advance_year(ctx, spike)
        assert report.event == "Rate Spike"
        assert ctx.state.market.base_rate == pytest.approx(0.12)

    def test_event_with_unknown_target(self, ctx):
        """A neighborhood event aimed at a missing neighborhood is skipped."""
        ghost = MarketEvent(
            id="ghost-boom",
            name="Ghost Town Boom",
            scope="neighborhood",
            target_neighborhood="atlantis",
            effects={"demandDelta": 0.2},
        )
        before = [n.model_copy() for n in ctx.state.neighborhoods]

        report = advance_year(ctx, ghost)

        assert ctx.state.year == 2
        assert report.event == "Ghost Town Boom"
        # Only the yearly drift moved demand, not the event
        for old, new in zip(before, ctx.state.neighborhoods):
            assert abs(new.demand - old.demand) < 0.2

    def test_neighborhood_event(self, ctx):
        boom = MarketEvent(
            id="river-boom",
            name="River Boom",
            scope="neighborhood",
            target_neighborhood="riverside",
            effects={"rentIndexDelta": 0.1},
        )
        report = advance_year(ctx, boom)
        assert report.event == "River Boom"
        assert ctx.state.year == 2

    def test_debt_free_cash_flow(self, ctx):
        ctx.state.properties.append(Property(
            id="P-test",
            name="Paid Off",
            neighborhood=ctx.state.neighborhoods[0].id,
            product_type="multifamily",
            base_noi=500_000.0,
        ))
        cash_before = ctx.state.cash

        report = advance_year(ctx)

        assert report.operating_cash_flow > 0
        assert report.operating_cash_flow == pytest.approx(report.portfolio.total_cash_flow)
        assert ctx.state.cash == pytest.approx(cash_before + report.operating_cash_flow)
        assert any("Operating cash flow" in m for m in report.messages)

    def test_principal_amortized(self, ctx):
        prop = Property(
            id="P-debt",
            name="Levered",
            neighborhood=ctx.state.neighborhoods[0].id,
            product_type="multifamily",
            base_noi=500_000.0,
            loan_balance=4_000_000.0,
            loan_rate=0.06,
            maturity_year=20,
        )
        ctx.state.properties.append(prop)
        advance_year(ctx)
        assert 3_900_000 < prop.loan_balance < 4_000_000

    def test_lazy_initialization(self, ctx):
        prop = Property(
            id="P-old",
            name="Legacy",
            neighborhood=ctx.state.neighborhoods[0].id,
            product_type="office",
            base_noi=500_000.0,
        )
        ctx.state.properties.append(prop)
        report = advance_year(ctx)
        assert prop.lease is not None
        assert prop.maturity_year is not None and prop.maturity_year > 2
        assert prop.id not in report.lease_rollovers

    def test_dangling_reference_fails_before_mutation(self, ctx):
        ctx.state.properties.append(Property(
            id="P-bad",
            name="Broken",
            neighborhood=ctx.state.neighborhoods[0].id,
            product_type="spaceport",
            base_noi=1.0,
        ))
        rng_before = ctx.rng.state
        market_before = ctx.state.market.model_copy()

        with pytest.raises(ReferenceDataError):
            advance_year(ctx)

        assert ctx.state.year == 1
        assert ctx.rng.state == rng_before
        assert ctx.state.market == market_before

    def test_report_to_dict(self, ctx):
        row = advance_year(ctx).to_dict()
        assert row["Year"] == 2
        assert row["Forced Sales"] == 0


class TestQueries:
    def test_snapshots(self, ctx):
        ctx.state.properties.append(Property(
            id="P-q",
            name="Query",
            neighborhood=ctx.state.neighborhoods[0].id,
            product_type="multifamily",
            base_noi=500_000.0,
        ))
        snaps = property_snapshots(ctx)
        port = portfolio_snapshot(ctx)
        assert [s.property_id for s in snaps] == ["P-q"]
        assert port.total_value == pytest.approx(snaps[0].value)
        assert port.equity == pytest.approx(snaps[0].value + ctx.state.cash)
