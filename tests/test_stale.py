"""
Tests for the stale-data detector.
"""

from datetime import date, timedelta

from gdmt.core.enums import BlockerCode
from gdmt.engine.stale import days_between, detect_stale_data
from gdmt.ruleset.loader import StaleDataThresholds

TODAY = date(2026, 2, 14)


def ago(days: int) -> date:
    return TODAY - timedelta(days=days)


class TestDaysBetween:
    def test_same_day_is_zero(self) -> None:
        assert days_between(TODAY, TODAY) == 0

    def test_whole_days(self) -> None:
        assert days_between(ago(14), TODAY) == 14


class TestLabStaleness:
    """Labs are current up to and including 14 days."""

    def test_fourteen_days_is_current(self) -> None:
        assert detect_stale_data(ago(14), TODAY, TODAY) == []

    def test_fifteen_days_is_stale(self) -> None:
        assert detect_stale_data(ago(15), TODAY, TODAY) == [BlockerCode.STALE_LABS]

    def test_missing_labs_date_is_unknown(self) -> None:
        """No labs date means lab values cannot be trusted at all."""
        assert detect_stale_data(None, TODAY, TODAY) == [BlockerCode.UNKNOWN_LABS]


class TestVitalsStaleness:
    """Vitals are current up to and including 30 days."""

    def test_thirty_days_is_current(self) -> None:
        assert detect_stale_data(TODAY, ago(30), TODAY) == []

    def test_thirty_one_days_is_stale(self) -> None:
        assert detect_stale_data(TODAY, ago(31), TODAY) == [BlockerCode.STALE_VITALS]

    def test_missing_vitals_date_not_flagged(self) -> None:
        assert detect_stale_data(TODAY, None, TODAY) == []


class TestCombined:
    def test_labs_reported_before_vitals(self) -> None:
        result = detect_stale_data(ago(40), ago(40), TODAY)
        assert result == [BlockerCode.STALE_LABS, BlockerCode.STALE_VITALS]

    def test_custom_thresholds(self) -> None:
        """Windows come from the ruleset, not hardcoded constants."""
        thresholds = StaleDataThresholds(labs_max_days=7, vitals_max_days=7)
        result = detect_stale_data(ago(8), ago(7), TODAY, thresholds)
        assert result == [BlockerCode.STALE_LABS]

    def test_future_dates_are_current(self) -> None:
        assert detect_stale_data(TODAY + timedelta(days=2), TODAY, TODAY) == []
