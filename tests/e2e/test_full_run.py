"""End-to-end tests for complete runs.

These tests exercise whole years through the public services:
  create run -> commands -> advance years -> save / restore
"""

import pytest

from cretycoon.application.services import (
    JsonRunStore,
    advance_year,
    create_run,
    restore_run,
    save_run,
    start_build,
)
from cretycoon.core.exceptions import PersistenceError
from cretycoon.core.settings import AppSettings
from cretycoon.domain.models import JournalAction, LifecycleStage, Property


def add_property(ctx, **overrides):
    fields = dict(
        id="P-e2e",
        name="E2E Tower",
        neighborhood="riverside",
        product_type="multifamily",
        base_noi=500_000.0,
        loan_rate=0.05,
    )
    fields.update(overrides)
    prop = Property(**fields)
    ctx.state.properties.append(prop)
    return prop


class TestRefinanceWall:
    """Balloon maturities resolve at year-end."""

    def test_forced_sale_floors_cash(self, ctx):
        add_property(ctx, loan_balance=100_000_000.0, maturity_year=2)
        ctx.state.cash = 0.0

        report = advance_year(ctx)

        assert report.forced_sales == ["P-e2e"]
        assert ctx.state.properties == []
        assert ctx.state.cash == 0.0
        assert ctx.state.journal[-1].action is JournalAction.FORCED_SALE
        assert ctx.state.journal[-1].target == "P-e2e"
        assert report.portfolio.property_count == 0

    def test_forced_sale_with_positive_proceeds(self, ctx):
        """Cash short of the paydown, but equity in the asset."""
        # A 10% LTV refinance cannot retire the loan, but the sale can
        add_property(ctx, loan_balance=3_000_000.0, ltv=0.1, maturity_year=2)
        ctx.state.cash = 0.0

        report = advance_year(ctx)

        outcome = report.maturities[0]
        assert outcome.forced_sale
        assert outcome.sale.net > 0
        assert ctx.state.cash == pytest.approx(outcome.sale.net)

    def test_sale_proceeds_fund_later_shortfall(self, ctx):
        """Maturities resolve in order, so an earlier sale pays for a later refi."""
        add_property(ctx, id="A", base_noi=1_500_000.0, loan_balance=3_000_000.0, ltv=0.1, maturity_year=2)
        b = add_property(ctx, id="B", loan_balance=3_000_000.0, ltv=0.1, maturity_year=2)
        ctx.state.cash = 0.0

        report = advance_year(ctx)

        sold, refi = report.maturities
        assert sold.property_id == "A" and sold.forced_sale
        assert refi.property_id == "B" and refi.refinanced
        assert refi.cash_delta < 0
        assert ctx.state.properties == [b]
        assert ctx.state.cash == pytest.approx(sold.sale.net + refi.cash_delta + report.operating_cash_flow)

    def test_cash_out_refinance(self, ctx):
        prop = add_property(ctx, loan_balance=1_000_000.0, maturity_year=2)
        cash_before = ctx.state.cash

        report = advance_year(ctx)

        outcome = report.maturities[0]
        assert outcome.refinanced
        assert outcome.cash_delta > 0
        assert prop.maturity_year >= 2 + 5
        assert outcome.new_loan * 0.95 < prop.loan_balance < outcome.new_loan
        assert ctx.state.cash == pytest.approx(cash_before + outcome.cash_delta + report.operating_cash_flow)
        assert ctx.state.journal[-1].action is JournalAction.REFINANCE

    def test_not_yet_mature(self, ctx):
        add_property(ctx, loan_balance=1_000_000.0, maturity_year=5)
        report = advance_year(ctx)
        assert report.maturities == []


class TestLeaseRollover:
    def test_full_roll_tracks_market(self, ctx):
        """Hotels mark 100% of rents to market every year."""
        prop = add_property(ctx, id="P-hotel", neighborhood="downtown", product_type="hotel")
        downtown = ctx.state.find_neighborhood("downtown")

        for _ in range(8):
            advance_year(ctx)
            assert prop.lease.lease_rent_index == pytest.approx(downtown.rent_index)

    def test_long_lease_lags_market(self, ctx):
        prop = add_property(ctx, id="P-office", neighborhood="downtown", product_type="office")
        advance_year(ctx)
        signed_at = prop.lease.lease_rent_index
        downtown = ctx.state.find_neighborhood("downtown")

        advance_year(ctx)
        expected = signed_at * 0.88 + downtown.rent_index * 0.12
        assert prop.lease.lease_rent_index == pytest.approx(expected)


class TestDevelopment:
    def test_build_to_stabilization(self, ctx):
        ctx.state.cash = 50_000_000.0
        result = start_build(ctx, "eastside", "industrial")
        prop = ctx.state.find_property(result.target)

        report = advance_year(ctx)
        assert report.stage_changes == {prop.id: LifecycleStage.LEASE_UP}
        assert prop.vacancy_delta == pytest.approx(0.15)
        assert prop.interest_only

        report = advance_year(ctx)
        assert report.stage_changes == {prop.id: LifecycleStage.STABILIZED}
        assert prop.stage is LifecycleStage.STABILIZED
        assert prop.vacancy_delta == 0.0
        assert not prop.interest_only
        assert prop.lease is not None
        assert prop.maturity_year >= 3 + 5


class TestPersistence:
    """Save, load and resume."""

    def test_round_trip_resumes_stream(self, ctx, reference, seeded_settings, tmp_path):
        ctx.state.cash = 50_000_000.0
        add_property(ctx, loan_balance=4_000_000.0, maturity_year=4)
        for _ in range(2):
            advance_year(ctx)

        store = JsonRunStore(tmp_path / "runs" / "run.json")
        save_run(ctx, store)
        restored = restore_run(store.load(), reference, seeded_settings)

        assert restored.snapshot().to_json_dict() == ctx.snapshot().to_json_dict()

        for _ in range(4):
            advance_year(ctx)
            advance_year(restored)
        assert restored.snapshot().to_json_dict() == ctx.snapshot().to_json_dict()

    def test_backfill_on_restore(self, reference, tmp_path):
        path = tmp_path / "old_run.json"
        path.write_text(
            '{"year": 4, "cash": 1000000, "seed": 123, "properties": [{'
            '"id": "P-legacy", "name": "Legacy", "neighborhood": "midtown", '
            '"productType": "retail", "baseNOI": 400000, "loanBalance": 2000000, '
            '"loanRate": 0.06, "amortYears": 30, "interestOnly": false}]}',
            encoding="utf-8",
        )

        state = JsonRunStore(path).load()
        assert state.properties[0].lease is None

        ctx = restore_run(state, reference, AppSettings(seed=None))
        prop = ctx.state.properties[0]

        assert prop.reno_level == 0
        assert prop.lease is not None
        assert prop.maturity_year > 4
        assert len(ctx.state.neighborhoods) == len(reference.neighborhoods)
        assert len(ctx.state.listings) == 3

        advance_year(ctx)
        assert ctx.state.year == 5

    def test_missing_file(self, tmp_path):
        assert JsonRunStore(tmp_path / "none.json").load() is None

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{{{", encoding="utf-8")
        with pytest.raises(PersistenceError):
            JsonRunStore(path).load()

    def test_invalid_state(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"run": {"year": 0}}', encoding="utf-8")
        with pytest.raises(PersistenceError):
            JsonRunStore(path).load()

    def test_clear(self, ctx, tmp_path):
        store = JsonRunStore(tmp_path / "run.json")
        save_run(ctx, store)
        assert store.path.exists()
        store.clear()
        assert not store.path.exists()
        store.clear()


class TestLongRun:
    def test_thirty_years(self, reference):
        ctx = create_run(reference, AppSettings(seed="marathon", difficulty="easy"))
        start_build(ctx, "riverside", "multifamily")

        for _ in range(30):
            report = advance_year(ctx)
            assert report.portfolio.cash == ctx.state.cash

        assert ctx.state.year == 31
        assert len(ctx.state.history) == 31
        frame = ctx.state.history_frame()
        assert len(frame) == 31
