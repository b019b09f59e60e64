"""Pytest fixtures for cretycoon tests."""

import os
import sys

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cretycoon.application.services import create_run, load_reference_data  # noqa: E402
from cretycoon.core.settings import AppSettings  # noqa: E402
from cretycoon.domain.models import (  # noqa: E402
    Market,
    Neighborhood,
    ProductType,
    Property,
)


class ScriptedRng:
    """Stand-in generator that replays fixed draws, then repeats ``fill``."""

    def __init__(self, values=(), fill=0.5):
        self.values = list(values)
        self.fill = fill
        self.calls = 0

    def random(self):
        self.calls += 1
        return self.values.pop(0) if self.values else self.fill

    __call__ = random

    def randint(self, lo, hi):
        return lo + int(self.random() * (hi - lo + 1))

    def choice(self, items):
        return items[int(self.random() * len(items))]


@pytest.fixture
def scripted_rng():
    """Factory for generators with predetermined draws."""
    return ScriptedRng


@pytest.fixture(scope="session")
def reference():
    """Bundled reference data."""
    return load_reference_data()


@pytest.fixture
def seeded_settings():
    return AppSettings(seed="unit-test-seed", difficulty="normal")


@pytest.fixture
def ctx(reference, seeded_settings):
    """Fresh seeded run at year 1."""
    return create_run(reference, seeded_settings)


@pytest.fixture
def market():
    return Market()


@pytest.fixture
def neighborhood():
    """Plain neighborhood with round numbers."""
    return Neighborhood(
        id="testville",
        name="Testville",
        zoning=["multifamily", "office"],
        base_demand=0.6,
        rent_index=1.0,
        vacancy=0.05,
        cap_rate=0.06,
        scarcity=0.5,
    )


@pytest.fixture
def product():
    return ProductType(
        id="multifamily",
        name="Multifamily",
        base_expense_ratio=0.4,
        build={"yearsToBuild": 1, "yearsToStabilize": 1, "leaseUpVacancy": 0.2},
    )


@pytest.fixture
def stabilized_property():
    """Debt-free stabilized property in ``testville``."""
    return Property(
        id="P1",
        name="Test Apartments",
        neighborhood="testville",
        product_type="multifamily",
        base_noi=600_000.0,
    )
