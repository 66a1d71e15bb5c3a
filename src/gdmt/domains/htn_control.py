"""
Hypertension Control Domain

Pillars: ACEi/ARB, CCB, thiazide, beta-blocker. BP targets default to
130/80 and may be overridden per patient.

Category precedence: Resistant (>= 3 active agents and above target),
Stage 2, Stage 1, Above Target, Controlled. A controlled patient is
audited only on the agents already prescribed. The beta-blocker applies
only with a compelling indication (tachycardia, reduced EF, or already
prescribed); without one it is neither evaluated nor scored.
"""

from __future__ import annotations

from datetime import date

from gdmt.core.blockers import BlockerFindings, findings_from
from gdmt.core.enums import BlockerCode, DomainId, Pillar
from gdmt.core.schemas import PatientSnapshot
from gdmt.domains.base import Classification, DomainDescriptor
from gdmt.engine.blockers import (
    adr_text,
    common_blockers,
    has_documented_adr,
    has_documented_allergy,
    threshold_blockers,
    unknown_lab_blockers,
)
from gdmt.ruleset.loader import HTNConstants, Ruleset

HTN_PILLARS: tuple[Pillar, ...] = (
    Pillar.ACEI_ARB_HTN,
    Pillar.CCB,
    Pillar.THIAZIDE,
    Pillar.BETA_BLOCKER_HTN,
)

HTN_RESISTANT = "HTN_RESISTANT"
HTN_STAGE2 = "HTN_STAGE2"
HTN_STAGE1 = "HTN_STAGE1"
HTN_ABOVE_TARGET = "HTN_ABOVE_TARGET"
HTN_CONTROLLED = "HTN_CONTROLLED"

CATEGORY_LABELS: dict[str, str] = {
    HTN_RESISTANT: "Resistant HTN",
    HTN_STAGE2: "Stage 2 HTN",
    HTN_STAGE1: "Stage 1 HTN",
    HTN_ABOVE_TARGET: "HTN Above Target",
    HTN_CONTROLLED: "Controlled HTN",
}

# ADR keyword -> specific code, per pillar
ADR_KEYWORDS: dict[Pillar, tuple[tuple[str, BlockerCode], ...]] = {
    Pillar.ACEI_ARB_HTN: (("angioedema", BlockerCode.ANGIOEDEMA_HISTORY),),
    Pillar.CCB: (("edema", BlockerCode.ANKLE_EDEMA),),
    Pillar.THIAZIDE: (("gout", BlockerCode.GOUT_RISK),),
}

HTN_QUESTIONS: dict[BlockerCode, tuple[str, ...]] = {
    BlockerCode.STALE_LABS: ("Order updated lab panel (eGFR, K+, uric acid)",),
    BlockerCode.UNKNOWN_LABS: ("Obtain renal function (eGFR)", "Check potassium level"),
    BlockerCode.CLINICAL_INERTIA: ("Review {pillar}: no identified barrier to optimization",),
    BlockerCode.ADR_HISTORY: (
        "Review previous adverse reaction and consider re-challenge or alternative",
    ),
    BlockerCode.ANGIOEDEMA_HISTORY: ("Consider ARB as alternative (angioedema rare with ARBs)",),
    BlockerCode.GOUT_RISK: (
        "Check uric acid level; consider chlorthalidone or indapamide if mild",
    ),
    BlockerCode.EGFR_LOW_INIT: ("Consider loop diuretic instead of thiazide if eGFR < 30",),
    BlockerCode.EGFR_LOW_CONT: ("Consider loop diuretic instead of thiazide if eGFR < 30",),
    BlockerCode.PREGNANCY_RISK: ("Confirm contraception or pregnancy plans before RAAS inhibition",),
}


def bp_targets(patient: PatientSnapshot, constants: HTNConstants) -> tuple[float, float]:
    return (
        patient.target_sbp if patient.target_sbp is not None else constants.target_sbp,
        patient.target_dbp if patient.target_dbp is not None else constants.target_dbp,
    )


def count_active_agents(patient: PatientSnapshot) -> int:
    return sum(1 for p in patient.active_pillars() if p in HTN_PILLARS)


def has_compelling_bb_indication(patient: PatientSnapshot, constants: HTNConstants) -> bool:
    if patient.hr > constants.bb_compelling_hr:
        return True
    if patient.ef is not None and patient.ef <= constants.bb_compelling_ef:
        return True
    return patient.active_medication(Pillar.BETA_BLOCKER_HTN) is not None


def classify(patient: PatientSnapshot, ruleset: Ruleset) -> Classification:
    c = ruleset.domains.htn
    target_sbp, target_dbp = bp_targets(patient, c)
    sbp = patient.sbp
    dbp = patient.dbp

    def dbp_at_least(limit: float) -> bool:
        return dbp is not None and dbp >= limit

    above_target = sbp > target_sbp or (dbp is not None and dbp > target_dbp)

    if count_active_agents(patient) >= c.resistant_min_agents and above_target:
        category = HTN_RESISTANT
    elif sbp >= c.stage2_sbp or dbp_at_least(c.stage2_dbp):
        category = HTN_STAGE2
    elif sbp >= c.stage1_sbp or dbp_at_least(c.stage1_dbp):
        category = HTN_STAGE1
    elif above_target:
        category = HTN_ABOVE_TARGET
    else:
        category = HTN_CONTROLLED

    missing = () if dbp is not None else ("Record diastolic blood pressure",)
    return Classification(category, CATEGORY_LABELS[category], missing_info=missing)


def applicable_pillars(
    patient: PatientSnapshot, classification: Classification, ruleset: Ruleset
) -> tuple[Pillar, ...]:
    if classification.category == HTN_CONTROLLED:
        active = set(patient.active_pillars())
        return tuple(p for p in HTN_PILLARS if p in active)

    pillars = [Pillar.ACEI_ARB_HTN, Pillar.CCB, Pillar.THIAZIDE]
    if has_compelling_bb_indication(patient, ruleset.domains.htn):
        pillars.append(Pillar.BETA_BLOCKER_HTN)
    return tuple(pillars)


def _adr_blockers(patient: PatientSnapshot, pillar: Pillar) -> list[BlockerCode]:
    """Specific code when the ADR text names one, else ADR_HISTORY."""
    if not has_documented_adr(patient, pillar):
        return []
    text = adr_text(patient, pillar)
    specific = [code for keyword, code in ADR_KEYWORDS.get(pillar, ()) if keyword in text]
    return specific or [BlockerCode.ADR_HISTORY]


def detect_htn_blockers(
    patient: PatientSnapshot,
    pillar: Pillar,
    is_initiation: bool,
    reference_date: date,
    ruleset: Ruleset,
) -> BlockerFindings:
    """Hypertension-specific rules layered on the shared checks."""
    thresholds = ruleset.thresholds_for(pillar)
    codes: list[BlockerCode] = [*_adr_blockers(patient, pillar)]

    if pillar is Pillar.ACEI_ARB_HTN and patient.pregnancy_risk:
        codes.append(BlockerCode.PREGNANCY_RISK)
    codes.extend(threshold_blockers(patient, thresholds, is_initiation))

    if has_documented_allergy(patient, pillar):
        codes.append(BlockerCode.ALLERGY)
    codes.extend(common_blockers(patient, pillar, reference_date, ruleset))
    codes.extend(unknown_lab_blockers(patient, thresholds))
    return findings_from(codes)


def score_label(classification: Classification) -> str:
    return "HTN Score"


HTN_DOMAIN = DomainDescriptor(
    domain_id=DomainId.HTN_CONTROL,
    name="Hypertension Control",
    pillars=HTN_PILLARS,
    classify=classify,
    applicable_pillars=applicable_pillars,
    detector=detect_htn_blockers,
    absolute_codes=frozenset({BlockerCode.ALLERGY, BlockerCode.ANGIOEDEMA_HISTORY}),
    lab_prompts=(("egfr", "Obtain eGFR"), ("potassium", "Obtain K+")),
    questions=HTN_QUESTIONS,
    score_label=score_label,
)
