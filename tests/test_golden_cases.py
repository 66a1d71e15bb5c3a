"""
Golden case regression tests.

Each reference patient is audited on the fixed reference date and compared
with its recorded expectations.
"""

import pytest

from gdmt.engine.action_plan import generate_action_plan
from gdmt.engine.audit import run_audit
from gdmt.evaluation.golden_cases import (
    GOLDEN_REFERENCE_DATE,
    get_case_by_id,
    get_golden_cases,
    validate_against_golden_case,
)

CASE_IDS = [c.id for c in get_golden_cases()]


def audit_case(case, timestamp):
    return run_audit(
        case.patient,
        domain_id=case.domain_id,
        reference_date=GOLDEN_REFERENCE_DATE,
        timestamp=timestamp,
    )


class TestGoldenCases:
    def test_four_cases(self) -> None:
        assert CASE_IDS == ["DM-CVD", "HTN-STAGE2", "HF-PHYSIO", "HF-ACCESS"]

    @pytest.mark.parametrize("case_id", CASE_IDS)
    def test_case_matches_expectations(self, case_id: str, timestamp) -> None:
        case = get_case_by_id(case_id)
        result = validate_against_golden_case(case_id, audit_case(case, timestamp))
        failed = {name: check for name, check in result["checks"].items() if not check["passed"]}
        assert result["valid"], failed

    @pytest.mark.parametrize("case_id", CASE_IDS)
    def test_action_plan_is_bounded(self, case_id: str, timestamp) -> None:
        case = get_case_by_id(case_id)
        plan = generate_action_plan(audit_case(case, timestamp))
        assert len(plan) <= 5
        assert len({a.id for a in plan}) == len(plan)

    def test_unknown_case(self, timestamp) -> None:
        audit = audit_case(get_case_by_id("HF-ACCESS"), timestamp)
        result = validate_against_golden_case("NOPE", audit)
        assert result == {"valid": False, "error": "Unknown case ID: NOPE"}

    def test_mismatch_is_reported(self, timestamp) -> None:
        audit = audit_case(get_case_by_id("HF-PHYSIO"), timestamp)
        result = validate_against_golden_case("HF-ACCESS", audit)
        assert not result["valid"]
        assert not result["checks"]["score"]["passed"]
        assert result["checks"]["category"]["passed"]
