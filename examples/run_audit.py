#!/usr/bin/env python3
"""
Example: Audit a Golden Case

Runs the audit for one of the bundled reference patients and prints the
pillar results, score, action plan and any remediation pathways.

This example is fully offline and uses the ruleset bundled with the package.

Requirements:
    pip install -e ".[dev]"

Usage:
    python examples/run_audit.py
    python examples/run_audit.py --case HF-PHYSIO
    python examples/run_audit.py --case HF-ACCESS --json
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from gdmt.core.enums import BlockerCode
from gdmt.engine.action_plan import generate_action_plan
from gdmt.engine.audit import run_audit
from gdmt.evaluation.golden_cases import get_case_by_id, get_golden_cases
from gdmt.observability.logging import configure_logging
from gdmt.resolution.alternatives import find_alternatives, find_assistance_programs
from gdmt.resolution.pathways import pathways_for_pillar
from gdmt.resolution.tracker import calculate_progress, start_resolution


# Blockers where a substitute drug or assistance program can help
SUBSTITUTION_BLOCKERS = {
    BlockerCode.PA_DENIED,
    BlockerCode.STEP_THERAPY_REQUIRED,
    BlockerCode.FORMULARY_EXCLUDED,
    BlockerCode.COPAY_PROHIBITIVE,
    BlockerCode.COST_BARRIER,
}


def main():
    parser = argparse.ArgumentParser(description="Audit a golden reference patient")
    parser.add_argument("--case", default="HF-ACCESS", help="Golden case ID")
    parser.add_argument("--json", action="store_true", help="Print the raw audit as JSON")
    args = parser.parse_args()

    configure_logging()

    case = get_case_by_id(args.case)
    if case is None:
        ids = ", ".join(c.id for c in get_golden_cases())
        print(f"Unknown case {args.case}. Available: {ids}")
        sys.exit(1)

    now = datetime(2026, 2, 14, 9, 0, 0)
    audit = run_audit(
        case.patient,
        domain_id=case.domain_id,
        reference_date=case.reference_date,
        timestamp=now,
    )

    if args.json:
        print(json.dumps(audit.model_dump(mode="json"), indent=2))
        return

    print(f"{case.id}: {case.description}")
    print("=" * 60)
    print(f"  Category: {audit.category_label}")
    print(f"  {audit.score_label}: {audit.score.score}/{audit.score.max_possible} ({audit.score.normalized}%)")
    print()

    print("Pillars:")
    for r in audit.pillar_results:
        blockers = ", ".join(b.value for b in r.blockers) or "-"
        print(f"  {r.pillar.label:<16} {r.status.value:<16} {r.dose_tier.value:<16} {blockers}")
    print()

    print("Action plan:")
    for item in generate_action_plan(audit):
        print(f"  [{item.priority.value}] {item.title}")
    print()

    for r in audit.pillar_results:
        for pathway in pathways_for_pillar(r, case.patient):
            record = start_resolution(pathway, now)
            progress = calculate_progress(record)
            print(f"  {pathway.title}")
            print(f"    urgency={pathway.urgency.value} status={record.status.value} progress={progress.percent_complete}%")

        med = case.patient.medication_for(r.pillar)
        current = med.name if med else ""
        for code in r.blockers:
            if code not in SUBSTITUTION_BLOCKERS:
                continue
            for alt in find_alternatives(r.pillar, current, code):
                print(f"    alternative: {alt.drug_name} ({alt.estimated_monthly_cost}, formulary {alt.formulary_likelihood})")
            for program in find_assistance_programs(r.pillar, current):
                print(f"    assistance: {program.program_name} ({program.program_type})")
            break


if __name__ == "__main__":
    main()
