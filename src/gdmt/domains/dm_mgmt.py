"""
Type 2 Diabetes Management Domain

Pillars: metformin, SGLT2i, GLP-1 RA, insulin. A controlled patient
(HbA1c below goal) is audited on metformin alone; otherwise metformin
always applies and the other classes are gated by CKD, CVD risk, eGFR,
BMI and HbA1c. A missing HbA1c is never read as "controlled".
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
from gdmt.ruleset.loader import Ruleset

DM_PILLARS: tuple[Pillar, ...] = (
    Pillar.METFORMIN,
    Pillar.SGLT2I_DM,
    Pillar.GLP1_RA,
    Pillar.INSULIN,
)

DM_CONTROLLED = "DM_CONTROLLED"
DM_TYPE2_CKD = "DM_TYPE2_CKD"
DM_TYPE2_CVD = "DM_TYPE2_CVD"
DM_TYPE2 = "DM_TYPE2"

DM_QUESTIONS: dict[BlockerCode, tuple[str, ...]] = {
    BlockerCode.STALE_LABS: ("Order updated lab panel (HbA1c, eGFR, fasting glucose)",),
    BlockerCode.UNKNOWN_LABS: ("Obtain HbA1c", "Obtain renal function (eGFR)"),
    BlockerCode.CLINICAL_INERTIA: ("Review {pillar}: no identified barrier to optimization",),
    BlockerCode.ADR_HISTORY: (
        "Review previous adverse reaction and consider alternative formulation or agent",
    ),
    BlockerCode.GI_INTOLERANCE: (
        "Review previous adverse reaction and consider alternative formulation or agent",
    ),
    BlockerCode.LACTIC_ACIDOSIS_RISK: (
        "Reassess renal function: metformin contraindicated if eGFR < 30",
    ),
    BlockerCode.PANCREATITIS_HISTORY: (
        "Pancreatitis history documented: GLP-1 RA contraindicated",
    ),
    BlockerCode.HYPOGLYCEMIA_RISK: ("Review insulin regimen for hypoglycemia risk reduction",),
}


def classify(patient: PatientSnapshot, ruleset: Ruleset) -> Classification:
    goal = ruleset.domains.dm.hba1c_goal
    missing = () if patient.hba1c is not None else ("Obtain HbA1c",)

    if patient.hba1c is not None and patient.hba1c < goal:
        return Classification(DM_CONTROLLED, "Type 2 DM (Controlled)")
    if patient.ckd:
        return Classification(DM_TYPE2_CKD, "Type 2 DM with CKD", missing_info=missing)
    if patient.cvd_risk:
        return Classification(DM_TYPE2_CVD, "Type 2 DM with CVD Risk", missing_info=missing)
    return Classification(DM_TYPE2, "Type 2 DM", missing_info=missing)


def applicable_pillars(
    patient: PatientSnapshot, classification: Classification, ruleset: Ruleset
) -> tuple[Pillar, ...]:
    if classification.category == DM_CONTROLLED:
        return (Pillar.METFORMIN,)

    c = ruleset.domains.dm
    pillars = [Pillar.METFORMIN]

    egfr_in_window = patient.egfr is not None and c.sglt2i_egfr_min <= patient.egfr <= c.sglt2i_egfr_max
    if patient.ckd or patient.cvd_risk or egfr_in_window:
        pillars.append(Pillar.SGLT2I_DM)

    if patient.cvd_risk or (patient.bmi is not None and patient.bmi >= c.glp1_bmi):
        pillars.append(Pillar.GLP1_RA)

    if patient.hba1c is not None and patient.hba1c >= c.insulin_hba1c:
        pillars.append(Pillar.INSULIN)

    return tuple(pillars)


def _metformin_blockers(patient: PatientSnapshot, is_initiation: bool, ruleset: Ruleset) -> list[BlockerCode]:
    codes: list[BlockerCode] = []
    floor = ruleset.egfr_threshold(Pillar.METFORMIN, is_initiation)
    if floor is not None and patient.egfr is not None and patient.egfr < floor:
        codes.append(BlockerCode.LACTIC_ACIDOSIS_RISK)
    if has_documented_adr(patient, Pillar.METFORMIN):
        codes.append(BlockerCode.GI_INTOLERANCE)
    return codes


def _glp1_blockers(patient: PatientSnapshot) -> list[BlockerCode]:
    if not has_documented_adr(patient, Pillar.GLP1_RA):
        return []
    if "pancreatitis" in adr_text(patient, Pillar.GLP1_RA):
        return [BlockerCode.PANCREATITIS_HISTORY]
    return [BlockerCode.ADR_HISTORY]


def detect_dm_blockers(
    patient: PatientSnapshot,
    pillar: Pillar,
    is_initiation: bool,
    reference_date: date,
    ruleset: Ruleset,
) -> BlockerFindings:
    """Diabetes-specific rules layered on the shared checks."""
    thresholds = ruleset.thresholds_for(pillar)
    codes: list[BlockerCode] = []

    if pillar is Pillar.METFORMIN:
        codes.extend(_metformin_blockers(patient, is_initiation, ruleset))
    elif pillar is Pillar.SGLT2I_DM:
        # Below the floor is reported as an initiation limit even on therapy
        codes.extend(threshold_blockers(patient, thresholds, is_initiation=True))
        if has_documented_adr(patient, pillar):
            codes.append(BlockerCode.ADR_HISTORY)
    elif pillar is Pillar.GLP1_RA:
        codes.extend(_glp1_blockers(patient))
    elif pillar is Pillar.INSULIN and has_documented_adr(patient, pillar):
        codes.append(BlockerCode.HYPOGLYCEMIA_RISK)

    if has_documented_allergy(patient, pillar):
        codes.append(BlockerCode.ALLERGY)
    codes.extend(common_blockers(patient, pillar, reference_date, ruleset))
    codes.extend(unknown_lab_blockers(patient, thresholds))
    return findings_from(codes)


def score_label(classification: Classification) -> str:
    return "DM Score"


DM_DOMAIN = DomainDescriptor(
    domain_id=DomainId.DM_MGMT,
    name="Type 2 Diabetes Management",
    pillars=DM_PILLARS,
    classify=classify,
    applicable_pillars=applicable_pillars,
    detector=detect_dm_blockers,
    absolute_codes=frozenset(
        {
            BlockerCode.ALLERGY,
            BlockerCode.LACTIC_ACIDOSIS_RISK,
            BlockerCode.PANCREATITIS_HISTORY,
        }
    ),
    lab_prompts=(("egfr", "Obtain eGFR"), ("hba1c", "Obtain HbA1c")),
    questions=DM_QUESTIONS,
    score_label=score_label,
)
