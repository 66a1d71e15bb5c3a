"""
GDMT Evaluation

Golden reference patients with expected audit outcomes.
"""

from gdmt.evaluation.golden_cases import (
    GOLDEN_CASES,
    ExpectedPillar,
    GoldenCase,
    get_case_by_id,
    get_golden_cases,
    validate_against_golden_case,
)

__all__ = [
    "GOLDEN_CASES",
    "ExpectedPillar",
    "GoldenCase",
    "get_case_by_id",
    "get_golden_cases",
    "validate_against_golden_case",
]
