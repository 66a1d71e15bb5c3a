"""
GDMT Golden Cases - Reference Patients

Four reference patients with expected audit outcomes, used to guard the
ruleset and engine against regressions.

Each case includes:
    - A complete PatientSnapshot and the reference date it is audited on
    - The domain and expected category
    - Expected status, dose tier and blockers per evaluated pillar
    - Expected score

Case HF-PHYSIO is scored on the tier arithmetic: three LOW pillars (8 each)
plus one HIGH (25) gives 49/100.
"""

from dataclasses import dataclass, field
from datetime import date

from gdmt.core.enums import (
    AccessBarrierType,
    BlockerCode,
    DomainId,
    DoseTier,
    Pillar,
    PillarStatus,
    TrialOutcome,
)
from gdmt.core.schemas import (
    AccessBarrier,
    AuditResult,
    InsuranceInfo,
    Medication,
    PatientSnapshot,
    PrescriberInfo,
    PriorDrugTrial,
    ResolutionContext,
)

GOLDEN_REFERENCE_DATE = date(2026, 2, 14)


@dataclass
class ExpectedPillar:
    """Expected evaluation of one pillar."""

    pillar: Pillar
    status: PillarStatus
    dose_tier: DoseTier
    blockers: tuple[BlockerCode, ...] = ()


@dataclass
class GoldenCase:
    """A reference patient with expected outcomes."""

    id: str
    description: str
    domain_id: DomainId
    patient: PatientSnapshot
    expected_category: str
    expected_score: int
    expected_max_possible: int
    expected_pillars: list[ExpectedPillar] = field(default_factory=list)
    reference_date: date = GOLDEN_REFERENCE_DATE


# Golden Cases
GOLDEN_CASES: list[GoldenCase] = [
    # Case 1: T2DM above goal on low-dose metformin only
    GoldenCase(
        id="DM-CVD",
        description="52F type 2 DM, HbA1c 8.5%, BMI 32, CVD risk; metformin only",
        domain_id=DomainId.DM_MGMT,
        patient=PatientSnapshot(
            sbp=128,
            dbp=82,
            hr=78,
            vitals_date=date(2026, 2, 14),
            ef=60,
            nyha_class=1,
            egfr=65,
            potassium=4.3,
            hba1c=8.5,
            labs_date=date(2026, 2, 14),
            dm_type="type2",
            bmi=32,
            cvd_risk=True,
            medications=(
                Medication(pillar=Pillar.METFORMIN, name="Metformin 500mg BID", dose_tier=DoseTier.LOW),
                Medication(pillar=Pillar.SGLT2I_DM),
                Medication(pillar=Pillar.GLP1_RA),
                Medication(pillar=Pillar.INSULIN),
            ),
        ),
        expected_category="DM_TYPE2_CVD",
        expected_score=8,
        expected_max_possible=75,
        expected_pillars=[
            ExpectedPillar(Pillar.METFORMIN, PillarStatus.UNDERDOSED, DoseTier.LOW, (BlockerCode.CLINICAL_INERTIA,)),
            ExpectedPillar(Pillar.SGLT2I_DM, PillarStatus.MISSING, DoseTier.NOT_PRESCRIBED, (BlockerCode.CLINICAL_INERTIA,)),
            ExpectedPillar(Pillar.GLP1_RA, PillarStatus.MISSING, DoseTier.NOT_PRESCRIBED, (BlockerCode.CLINICAL_INERTIA,)),
        ],
    ),
    # Case 2: Stage 2 HTN on a CCB alone
    GoldenCase(
        id="HTN-STAGE2",
        description="58M stage 2 HTN 162/98 with CKD; amlodipine only",
        domain_id=DomainId.HTN_CONTROL,
        patient=PatientSnapshot(
            sbp=162,
            dbp=98,
            hr=76,
            vitals_date=date(2026, 2, 10),
            ef=55,
            nyha_class=1,
            egfr=52,
            potassium=4.1,
            hba1c=6.8,
            labs_date=date(2026, 2, 8),
            dm_type="type2",
            bmi=29,
            ckd=True,
            target_sbp=130,
            target_dbp=80,
            medications=(
                Medication(pillar=Pillar.ACEI_ARB_HTN),
                Medication(pillar=Pillar.CCB, name="Amlodipine 5mg", dose_tier=DoseTier.MEDIUM),
                Medication(pillar=Pillar.THIAZIDE),
                Medication(pillar=Pillar.BETA_BLOCKER_HTN),
            ),
        ),
        expected_category="HTN_STAGE2",
        expected_score=16,
        expected_max_possible=75,
        expected_pillars=[
            ExpectedPillar(Pillar.ACEI_ARB_HTN, PillarStatus.MISSING, DoseTier.NOT_PRESCRIBED, (BlockerCode.CLINICAL_INERTIA,)),
            ExpectedPillar(Pillar.CCB, PillarStatus.UNDERDOSED, DoseTier.MEDIUM, (BlockerCode.CLINICAL_INERTIA,)),
            ExpectedPillar(Pillar.THIAZIDE, PillarStatus.MISSING, DoseTier.NOT_PRESCRIBED, (BlockerCode.CLINICAL_INERTIA,)),
        ],
    ),
    # Case 3: HFrEF held back by hypotension and hyperkalemia
    GoldenCase(
        id="HF-PHYSIO",
        description="72M HFrEF EF 25%, SBP 92, K+ 5.3; physiologic blockers",
        domain_id=DomainId.HF_GDMT,
        patient=PatientSnapshot(
            sbp=92,
            hr=72,
            vitals_date=date(2026, 2, 14),
            ef=25,
            nyha_class=3,
            egfr=28,
            potassium=5.3,
            bnp=1200,
            labs_date=date(2026, 2, 14),
            medications=(
                Medication(pillar=Pillar.ARNI_ACEI_ARB, name="Sacubitril/Valsartan 24/26mg", dose_tier=DoseTier.LOW),
                Medication(pillar=Pillar.BETA_BLOCKER, name="Carvedilol 6.25mg", dose_tier=DoseTier.LOW),
                Medication(pillar=Pillar.MRA, name="Spironolactone 12.5mg", dose_tier=DoseTier.LOW),
                Medication(pillar=Pillar.SGLT2I, name="Dapagliflozin 10mg", dose_tier=DoseTier.HIGH),
            ),
        ),
        expected_category="HFrEF",
        expected_score=49,
        expected_max_possible=100,
        expected_pillars=[
            ExpectedPillar(Pillar.ARNI_ACEI_ARB, PillarStatus.UNDERDOSED, DoseTier.LOW, (BlockerCode.BP_LOW,)),
            ExpectedPillar(Pillar.BETA_BLOCKER, PillarStatus.UNDERDOSED, DoseTier.LOW, (BlockerCode.CLINICAL_INERTIA,)),
            ExpectedPillar(Pillar.MRA, PillarStatus.UNDERDOSED, DoseTier.LOW, (BlockerCode.K_HIGH,)),
            ExpectedPillar(Pillar.SGLT2I, PillarStatus.ON_TARGET, DoseTier.HIGH),
        ],
    ),
    # Case 4: HFrEF regression after discharge from payer barriers
    GoldenCase(
        id="HF-ACCESS",
        description="82F HFrEF EF 35%; ARNI step therapy, MRA copay prohibitive",
        domain_id=DomainId.HF_GDMT,
        patient=PatientSnapshot(
            sbp=112,
            hr=68,
            vitals_date=date(2026, 2, 14),
            ef=35,
            nyha_class=3,
            egfr=45,
            potassium=4.5,
            bnp=380,
            labs_date=date(2026, 2, 14),
            medications=(
                Medication(
                    pillar=Pillar.ARNI_ACEI_ARB,
                    access_barrier=AccessBarrier(
                        type=AccessBarrierType.STEP_THERAPY,
                        description="Payer requires 90-day ACEi trial before ARNI approval",
                    ),
                ),
                Medication(pillar=Pillar.BETA_BLOCKER, name="Carvedilol 6.25mg", dose_tier=DoseTier.LOW),
                Medication(
                    pillar=Pillar.MRA,
                    cost_barrier=True,
                    access_barrier=AccessBarrier(
                        type=AccessBarrierType.COPAY_PROHIBITIVE,
                        description="Eplerenone copay $85/month - patient unable to afford",
                    ),
                ),
                Medication(pillar=Pillar.SGLT2I, name="Dapagliflozin 10mg", dose_tier=DoseTier.HIGH),
            ),
            resolution_context=ResolutionContext(
                insurance=InsuranceInfo(
                    payer_name="BlueCross BlueShield of Illinois",
                    plan_type="commercial",
                    member_id="BCB-4482-7731",
                    group_number="GRP-882",
                ),
                prescriber=PrescriberInfo(
                    name="Dr. James Chen",
                    npi="1234567890",
                    phone="312-555-0142",
                    fax="312-555-0143",
                ),
                prior_trials=(
                    PriorDrugTrial(
                        drug_name="Sacubitril/Valsartan 24/26mg",
                        pillar=Pillar.ARNI_ACEI_ARB,
                        start_date=date(2025, 12, 22),
                        end_date=date(2026, 1, 5),
                        duration_days=14,
                        outcome=TrialOutcome.TOLERATED,
                        notes="PA denied at discharge; step therapy required by payer",
                    ),
                    PriorDrugTrial(
                        drug_name="Eplerenone 25mg",
                        pillar=Pillar.MRA,
                        start_date=date(2025, 12, 22),
                        end_date=date(2026, 1, 5),
                        duration_days=14,
                        outcome=TrialOutcome.TOLERATED,
                        notes="Copay $85/month; patient unable to afford post-discharge",
                    ),
                ),
            ),
        ),
        expected_category="HFrEF",
        expected_score=33,
        expected_max_possible=100,
        expected_pillars=[
            ExpectedPillar(
                Pillar.ARNI_ACEI_ARB, PillarStatus.MISSING, DoseTier.NOT_PRESCRIBED,
                (BlockerCode.STEP_THERAPY_REQUIRED,),
            ),
            ExpectedPillar(Pillar.BETA_BLOCKER, PillarStatus.UNDERDOSED, DoseTier.LOW, (BlockerCode.CLINICAL_INERTIA,)),
            ExpectedPillar(
                Pillar.MRA, PillarStatus.MISSING, DoseTier.NOT_PRESCRIBED,
                (BlockerCode.COST_BARRIER, BlockerCode.COPAY_PROHIBITIVE),
            ),
            ExpectedPillar(Pillar.SGLT2I, PillarStatus.ON_TARGET, DoseTier.HIGH),
        ],
    ),
]


def get_golden_cases() -> list[GoldenCase]:
    """Return all golden cases."""
    return GOLDEN_CASES


def get_case_by_id(case_id: str) -> GoldenCase | None:
    """Get a specific golden case by ID."""
    for c in GOLDEN_CASES:
        if c.id == case_id:
            return c
    return None


def validate_against_golden_case(case_id: str, audit: AuditResult) -> dict:
    """
    Compare an audit result with a golden case's expectations.

    Args:
        case_id: Golden case ID
        audit: Result of auditing the case's patient

    Returns:
        Dictionary with "valid" and per-check results
    """
    case = get_case_by_id(case_id)
    if not case:
        return {"valid": False, "error": f"Unknown case ID: {case_id}"}

    checks: dict[str, dict] = {
        "category": {
            "expected": case.expected_category,
            "actual": audit.category,
            "passed": audit.category == case.expected_category,
        },
        "score": {
            "expected": (case.expected_score, case.expected_max_possible),
            "actual": (audit.score.score, audit.score.max_possible),
            "passed": (audit.score.score, audit.score.max_possible)
            == (case.expected_score, case.expected_max_possible),
        },
        "pillars": {
            "expected": [e.pillar.value for e in case.expected_pillars],
            "actual": [r.pillar.value for r in audit.pillar_results],
            "passed": [e.pillar for e in case.expected_pillars] == [r.pillar for r in audit.pillar_results],
        },
    }

    for expected in case.expected_pillars:
        result = audit.result_for(expected.pillar)
        actual = (result.status, result.dose_tier, result.blockers) if result else None
        checks[f"pillar:{expected.pillar.value}"] = {
            "expected": (expected.status, expected.dose_tier, expected.blockers),
            "actual": actual,
            "passed": actual == (expected.status, expected.dose_tier, expected.blockers),
        }

    return {
        "valid": all(c["passed"] for c in checks.values()),
        "case_id": case_id,
        "checks": checks,
    }
