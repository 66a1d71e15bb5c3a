"""
Blocker Detector

Per-pillar rule evaluation against vitals, labs and history. Each check is
a small function returning the codes it fires, so domain engines can
compose their own detectors from the shared pieces:

    threshold_blockers      BP/HR floors, K+ ceiling, eGFR floors
    unknown_lab_blockers    a threshold depends on an unmeasured lab
    safety_blockers         recent AKI, ADR and allergy (med + history)
    preference_blockers     refusal and cost flags
    access_blockers         payer/pharmacy barrier, one-to-one mapping
    transition_blockers     medication lost at discharge, handoff gap
    periop_blockers         surgery within the hold window

Absent measurements never pass a threshold: they are reported as
UNKNOWN_LABS instead. When nothing fires the result is NoBarrierFound.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from gdmt.core.blockers import BlockerFindings, findings_from
from gdmt.core.enums import AccessBarrierType, BlockerCode, Pillar
from gdmt.core.schemas import PatientSnapshot
from gdmt.engine.stale import detect_stale_data
from gdmt.ruleset.loader import PillarThresholds, Ruleset

logger = logging.getLogger(__name__)

# (patient, pillar, is_initiation, reference_date, ruleset) -> findings
BlockerDetector = Callable[[PatientSnapshot, Pillar, bool, date, Ruleset], BlockerFindings]

ACCESS_BARRIER_CODES: dict[AccessBarrierType, BlockerCode] = {
    AccessBarrierType.PA_PENDING: BlockerCode.PA_PENDING,
    AccessBarrierType.PA_DENIED: BlockerCode.PA_DENIED,
    AccessBarrierType.STEP_THERAPY: BlockerCode.STEP_THERAPY_REQUIRED,
    AccessBarrierType.COPAY_PROHIBITIVE: BlockerCode.COPAY_PROHIBITIVE,
    AccessBarrierType.FORMULARY_EXCLUDED: BlockerCode.FORMULARY_EXCLUDED,
}


# =============================================================================
# SHARED CHECKS
# =============================================================================


def threshold_blockers(
    patient: PatientSnapshot,
    thresholds: PillarThresholds,
    is_initiation: bool,
) -> list[BlockerCode]:
    """Compare vitals and labs against the pillar's numeric limits."""
    codes: list[BlockerCode] = []

    if thresholds.bp_low_sbp is not None and patient.sbp < thresholds.bp_low_sbp:
        codes.append(BlockerCode.BP_LOW)

    if thresholds.hr_low is not None and patient.hr < thresholds.hr_low:
        codes.append(BlockerCode.HR_LOW)

    if (
        thresholds.k_high is not None
        and patient.potassium is not None
        and patient.potassium > thresholds.k_high
    ):
        codes.append(BlockerCode.K_HIGH)

    egfr_floor = thresholds.egfr_init if is_initiation else thresholds.egfr_cont
    if egfr_floor is not None and patient.egfr is not None and patient.egfr < egfr_floor:
        codes.append(BlockerCode.EGFR_LOW_INIT if is_initiation else BlockerCode.EGFR_LOW_CONT)

    return codes


def unknown_lab_blockers(patient: PatientSnapshot, thresholds: PillarThresholds) -> list[BlockerCode]:
    """UNKNOWN_LABS only when a threshold of this pillar needs a missing value."""
    if thresholds.depends_on_egfr and patient.egfr is None:
        return [BlockerCode.UNKNOWN_LABS]
    if thresholds.depends_on_potassium and patient.potassium is None:
        return [BlockerCode.UNKNOWN_LABS]
    return []


def has_documented_adr(patient: PatientSnapshot, pillar: Pillar) -> bool:
    return (
        any(m.has_adr for m in patient.medications_for(pillar))
        or pillar in patient.history.adr_history
    )


def adr_text(patient: PatientSnapshot, pillar: Pillar) -> str:
    """Lower-cased ADR descriptions from every record and the history."""
    parts = [m.adr_description for m in patient.medications_for(pillar) if m.adr_description]
    parts.append(patient.history.adr_history.get(pillar, ""))
    return " ".join(p for p in parts if p).lower()


def has_documented_allergy(patient: PatientSnapshot, pillar: Pillar) -> bool:
    return (
        any(m.has_allergy for m in patient.medications_for(pillar))
        or pillar in patient.history.allergies
    )


def safety_blockers(
    patient: PatientSnapshot, pillar: Pillar, include_aki: bool = True
) -> list[BlockerCode]:
    codes: list[BlockerCode] = []
    if include_aki and patient.history.recent_aki:
        codes.append(BlockerCode.RECENT_AKI)
    if has_documented_adr(patient, pillar):
        codes.append(BlockerCode.ADR_HISTORY)
    if has_documented_allergy(patient, pillar):
        codes.append(BlockerCode.ALLERGY)
    return codes


def preference_blockers(patient: PatientSnapshot, pillar: Pillar) -> list[BlockerCode]:
    meds = patient.medications_for(pillar)
    codes: list[BlockerCode] = []
    if any(m.patient_refusal for m in meds):
        codes.append(BlockerCode.PATIENT_REFUSAL)
    if any(m.cost_barrier for m in meds):
        codes.append(BlockerCode.COST_BARRIER)
    return codes


def access_blockers(patient: PatientSnapshot, pillar: Pillar) -> list[BlockerCode]:
    """
    Map the pillar's access-barrier descriptor, regardless of dose tier.

    The active record's barrier wins; otherwise the first record carrying one.
    """
    active = patient.active_medication(pillar)
    barrier = active.access_barrier if active is not None else None
    if barrier is None:
        barrier = next(
            (m.access_barrier for m in patient.medications_for(pillar) if m.access_barrier is not None),
            None,
        )
    if barrier is None:
        return []
    return [ACCESS_BARRIER_CODES[barrier.type]]


def transition_blockers(patient: PatientSnapshot, pillar: Pillar) -> list[BlockerCode]:
    codes: list[BlockerCode] = []
    if pillar in patient.history.lost_after_discharge:
        codes.append(BlockerCode.DISCHARGE_MED_LOST)
    if pillar in patient.history.handoff_gaps:
        codes.append(BlockerCode.HANDOFF_GAP)
    return codes


def periop_blockers(
    patient: PatientSnapshot, pillar: Pillar, reference_date: date, ruleset: Ruleset
) -> list[BlockerCode]:
    """PERIOP_HOLD for held pillars when surgery is within the window, either side."""
    hold = ruleset.perioperative_hold
    if patient.surgery_date is None or pillar not in hold.pillars:
        return []
    if abs((patient.surgery_date - reference_date).days) <= hold.window_days:
        return [BlockerCode.PERIOP_HOLD]
    return []


def stale_blockers(patient: PatientSnapshot, reference_date: date, ruleset: Ruleset) -> list[BlockerCode]:
    return detect_stale_data(
        patient.labs_date, patient.vitals_date, reference_date, ruleset.stale_data
    )


def common_blockers(
    patient: PatientSnapshot, pillar: Pillar, reference_date: date, ruleset: Ruleset
) -> list[BlockerCode]:
    """Checks every domain shares after its own physiologic rules."""
    return [
        *periop_blockers(patient, pillar, reference_date, ruleset),
        *stale_blockers(patient, reference_date, ruleset),
        *preference_blockers(patient, pillar),
        *access_blockers(patient, pillar),
        *transition_blockers(patient, pillar),
    ]


# =============================================================================
# DEFAULT (HEART FAILURE) DETECTOR
# =============================================================================


def detect_blockers(
    patient: PatientSnapshot,
    pillar: Pillar,
    is_initiation: bool,
    reference_date: date,
    ruleset: Ruleset,
) -> BlockerFindings:
    """
    Evaluate every rule for one pillar.

    Args:
        patient: Input snapshot.
        pillar: Therapy class to evaluate.
        is_initiation: True when the pillar is not currently prescribed; selects
            the initiation rather than the continuation eGFR floor.
        reference_date: Date staleness and perioperative windows are measured from.
        ruleset: Thresholds source.

    Returns:
        Evaluated(codes) with the fired codes, or NoBarrierFound.
    """
    thresholds = ruleset.thresholds_for(pillar)
    codes = [
        *threshold_blockers(patient, thresholds, is_initiation),
        *safety_blockers(patient, pillar),
        *unknown_lab_blockers(patient, thresholds),
        *common_blockers(patient, pillar, reference_date, ruleset),
    ]
    findings = findings_from(codes)
    logger.debug("Blockers for %s: %s", pillar.value, [c.value for c in findings.codes])
    return findings
