"""
GDMT Test Configuration

Shared fixtures and test utilities.
"""

import os
from collections.abc import Callable
from datetime import date, datetime
from typing import Generator

import pytest


# Set test environment before any imports
os.environ.setdefault("LOG_LEVEL", "DEBUG")

REFERENCE_DATE = date(2026, 2, 14)
TIMESTAMP = datetime(2026, 2, 14, 9, 0, 0)


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    """Reset settings and the cached ruleset before each test."""
    from gdmt.config import reset_settings
    from gdmt.ruleset.loader import reset_ruleset

    reset_settings()
    reset_ruleset()
    yield
    reset_settings()
    reset_ruleset()


@pytest.fixture
def reference_date() -> date:
    """Fixed 'today' for staleness checks."""
    return REFERENCE_DATE


@pytest.fixture
def timestamp() -> datetime:
    return TIMESTAMP


@pytest.fixture(scope="session")
def ruleset():
    """The bundled ruleset."""
    from gdmt.ruleset.loader import load_ruleset

    return load_ruleset()


@pytest.fixture
def make_patient() -> Callable:
    """
    Factory for PatientSnapshot with current vitals and labs.

    Defaults describe a stable HFrEF patient with no medications; keyword
    arguments override any field.
    """
    from gdmt.core.schemas import PatientSnapshot

    def _make(**overrides) -> PatientSnapshot:
        fields = {
            "sbp": 120,
            "dbp": 75,
            "hr": 72,
            "vitals_date": REFERENCE_DATE,
            "ef": 30,
            "nyha_class": 2,
            "egfr": 60,
            "potassium": 4.2,
            "labs_date": REFERENCE_DATE,
        }
        fields.update(overrides)
        return PatientSnapshot(**fields)

    return _make


@pytest.fixture
def make_med() -> Callable:
    """Factory for Medication: make_med(pillar, tier, **flags)."""
    from gdmt.core.enums import DoseTier
    from gdmt.core.schemas import Medication

    def _make(pillar, dose_tier=DoseTier.NOT_PRESCRIBED, **overrides) -> Medication:
        name = overrides.pop("name", "" if dose_tier is DoseTier.NOT_PRESCRIBED else f"{pillar.value} drug")
        return Medication(pillar=pillar, name=name, dose_tier=dose_tier, **overrides)

    return _make
