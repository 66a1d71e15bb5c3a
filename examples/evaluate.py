#!/usr/bin/env python3
"""
Example: Evaluate the Engine against the Golden Cases

Audits every bundled reference patient and reports which expectations hold.

Requirements:
    pip install -e ".[dev]"

Usage:
    python examples/evaluate.py
"""

import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from gdmt.engine.audit import run_audit
from gdmt.evaluation.golden_cases import get_golden_cases, validate_against_golden_case


def main():
    """Run each golden case and print pass/fail per check."""
    cases = get_golden_cases()
    failures = 0

    print("GDMT Golden Cases")
    print("=" * 60)
    for case in cases:
        audit = run_audit(
            case.patient,
            domain_id=case.domain_id,
            reference_date=case.reference_date,
            timestamp=datetime(2026, 2, 14),
        )
        report = validate_against_golden_case(case.id, audit)
        mark = "PASS" if report["valid"] else "FAIL"
        print(f"  {mark}  {case.id}: {audit.score.score}/{audit.score.max_possible}")
        for name, check in report["checks"].items():
            if not check["passed"]:
                failures += 1
                print(f"        {name}: expected {check['expected']}, got {check['actual']}")

    print()
    print(f"Total cases: {len(cases)}")
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
