"""
Stale-Data Detector

Flags lab and vital inputs that are missing or too old to trust. Age is
counted in whole days and the boundary is strict: labs exactly
labs_max_days old are still current.
"""

from __future__ import annotations

from datetime import date

from gdmt.core.enums import BlockerCode
from gdmt.ruleset.loader import StaleDataThresholds

DEFAULT_STALE_THRESHOLDS = StaleDataThresholds()


def days_between(earlier: date, later: date) -> int:
    return (later - earlier).days


def detect_stale_data(
    labs_date: date | None,
    vitals_date: date | None,
    reference_date: date,
    thresholds: StaleDataThresholds = DEFAULT_STALE_THRESHOLDS,
) -> list[BlockerCode]:
    """
    Return data-quality blockers for the given measurement dates.

    Missing labs date -> UNKNOWN_LABS; labs older than the lab window ->
    STALE_LABS; vitals older than the vitals window -> STALE_VITALS.
    A missing vitals date is not flagged (vitals are mandatory input).
    """
    blockers: list[BlockerCode] = []

    if labs_date is None:
        blockers.append(BlockerCode.UNKNOWN_LABS)
    elif days_between(labs_date, reference_date) > thresholds.labs_max_days:
        blockers.append(BlockerCode.STALE_LABS)

    if vitals_date is not None and days_between(vitals_date, reference_date) > thresholds.vitals_max_days:
        blockers.append(BlockerCode.STALE_VITALS)

    return blockers
