"""
Blocker Taxonomy and Detection Result

Category and label tables for every BlockerCode, plus the tagged result
returned by blocker detection:

    Evaluated(codes)   - at least one genuine barrier fired
    NoBarrierFound()   - nothing fired; reported as CLINICAL_INERTIA

The sentinel never co-occurs with a genuine barrier because Evaluated
refuses to hold it and NoBarrierFound holds nothing else.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from gdmt.core.enums import BlockerCategory, BlockerCode
from gdmt.core.exceptions import InvariantViolationError


BLOCKER_CATEGORY: dict[BlockerCode, BlockerCategory] = {
    BlockerCode.BP_LOW: BlockerCategory.VITALS,
    BlockerCode.HR_LOW: BlockerCategory.VITALS,
    BlockerCode.K_HIGH: BlockerCategory.LABS,
    BlockerCode.EGFR_LOW_INIT: BlockerCategory.LABS,
    BlockerCode.EGFR_LOW_CONT: BlockerCategory.LABS,
    BlockerCode.RECENT_AKI: BlockerCategory.SAFETY,
    BlockerCode.ADR_HISTORY: BlockerCategory.SAFETY,
    BlockerCode.ALLERGY: BlockerCategory.SAFETY,
    BlockerCode.HYPOGLYCEMIA_RISK: BlockerCategory.SAFETY,
    BlockerCode.LACTIC_ACIDOSIS_RISK: BlockerCategory.SAFETY,
    BlockerCode.GI_INTOLERANCE: BlockerCategory.SAFETY,
    BlockerCode.PANCREATITIS_HISTORY: BlockerCategory.SAFETY,
    BlockerCode.ANGIOEDEMA_HISTORY: BlockerCategory.SAFETY,
    BlockerCode.PREGNANCY_RISK: BlockerCategory.SAFETY,
    BlockerCode.GOUT_RISK: BlockerCategory.SAFETY,
    BlockerCode.ANKLE_EDEMA: BlockerCategory.SAFETY,
    BlockerCode.STALE_LABS: BlockerCategory.DATA_QUALITY,
    BlockerCode.STALE_VITALS: BlockerCategory.DATA_QUALITY,
    BlockerCode.UNKNOWN_LABS: BlockerCategory.DATA_QUALITY,
    BlockerCode.CLINICAL_INERTIA: BlockerCategory.SYSTEM,
    BlockerCode.OTHER: BlockerCategory.SYSTEM,
    BlockerCode.PERIOP_HOLD: BlockerCategory.SYSTEM,
    BlockerCode.PATIENT_REFUSAL: BlockerCategory.PATIENT,
    BlockerCode.COST_BARRIER: BlockerCategory.PATIENT,
    BlockerCode.COPAY_PROHIBITIVE: BlockerCategory.PATIENT,
    BlockerCode.PA_PENDING: BlockerCategory.ACCESS,
    BlockerCode.PA_DENIED: BlockerCategory.ACCESS,
    BlockerCode.STEP_THERAPY_REQUIRED: BlockerCategory.ACCESS,
    BlockerCode.FORMULARY_EXCLUDED: BlockerCategory.ACCESS,
    BlockerCode.DISCHARGE_MED_LOST: BlockerCategory.TRANSITION,
    BlockerCode.HANDOFF_GAP: BlockerCategory.TRANSITION,
}

BLOCKER_LABELS: dict[BlockerCode, str] = {
    BlockerCode.BP_LOW: "Low blood pressure",
    BlockerCode.HR_LOW: "Low heart rate",
    BlockerCode.K_HIGH: "Elevated potassium",
    BlockerCode.EGFR_LOW_INIT: "eGFR below initiation threshold",
    BlockerCode.EGFR_LOW_CONT: "eGFR below continuation threshold",
    BlockerCode.RECENT_AKI: "Recent acute kidney injury",
    BlockerCode.ADR_HISTORY: "Adverse drug reaction history",
    BlockerCode.ALLERGY: "Documented allergy",
    BlockerCode.HYPOGLYCEMIA_RISK: "Hypoglycemia risk",
    BlockerCode.LACTIC_ACIDOSIS_RISK: "Lactic acidosis risk",
    BlockerCode.GI_INTOLERANCE: "GI intolerance",
    BlockerCode.PANCREATITIS_HISTORY: "History of pancreatitis",
    BlockerCode.ANGIOEDEMA_HISTORY: "History of angioedema",
    BlockerCode.PREGNANCY_RISK: "Pregnancy risk",
    BlockerCode.GOUT_RISK: "Gout risk",
    BlockerCode.ANKLE_EDEMA: "Ankle edema",
    BlockerCode.STALE_LABS: "Lab values outdated",
    BlockerCode.STALE_VITALS: "Vital signs outdated",
    BlockerCode.UNKNOWN_LABS: "Lab values not available",
    BlockerCode.CLINICAL_INERTIA: "No identified barrier",
    BlockerCode.OTHER: "Other",
    BlockerCode.PERIOP_HOLD: "Perioperative hold",
    BlockerCode.PATIENT_REFUSAL: "Patient refusal",
    BlockerCode.COST_BARRIER: "Cost barrier",
    BlockerCode.COPAY_PROHIBITIVE: "Copay prohibitive",
    BlockerCode.PA_PENDING: "Prior authorization pending",
    BlockerCode.PA_DENIED: "Prior authorization denied",
    BlockerCode.STEP_THERAPY_REQUIRED: "Step therapy required",
    BlockerCode.FORMULARY_EXCLUDED: "Not on formulary",
    BlockerCode.DISCHARGE_MED_LOST: "Discharge medication not continued",
    BlockerCode.HANDOFF_GAP: "Care handoff gap",
}

# Codes meaning "the data needed to decide is missing or too old"
DATA_AVAILABILITY_CODES: frozenset[BlockerCode] = frozenset(
    {BlockerCode.UNKNOWN_LABS, BlockerCode.STALE_LABS, BlockerCode.STALE_VITALS}
)

# Codes that make the order_labs action appropriate
LAB_ORDER_CODES: frozenset[BlockerCode] = frozenset(
    {BlockerCode.STALE_LABS, BlockerCode.UNKNOWN_LABS}
)


def category_of(code: BlockerCode) -> BlockerCategory:
    return BLOCKER_CATEGORY[code]


def label_of(code: BlockerCode) -> str:
    return BLOCKER_LABELS[code]


# =============================================================================
# DETECTION RESULT
# =============================================================================


@dataclass(frozen=True)
class Evaluated:
    """One or more genuine barriers, in detection order, without repeats."""

    blockers: tuple[BlockerCode, ...]

    def __post_init__(self) -> None:
        if not self.blockers:
            raise InvariantViolationError(
                "Evaluated requires at least one blocker; use NoBarrierFound",
                invariant="non_empty",
            )
        if BlockerCode.CLINICAL_INERTIA in self.blockers:
            raise InvariantViolationError(
                "CLINICAL_INERTIA cannot be reported alongside genuine blockers",
                invariant="inertia_exclusive",
            )
        if len(set(self.blockers)) != len(self.blockers):
            raise InvariantViolationError(
                "Duplicate blocker codes", invariant="unique_codes"
            )

    @property
    def codes(self) -> tuple[BlockerCode, ...]:
        return self.blockers

    @property
    def found_barrier(self) -> bool:
        return True


@dataclass(frozen=True)
class NoBarrierFound:
    """Nothing fired: the gap is attributed to clinical inertia."""

    @property
    def codes(self) -> tuple[BlockerCode, ...]:
        return (BlockerCode.CLINICAL_INERTIA,)

    @property
    def found_barrier(self) -> bool:
        return False


BlockerFindings = Evaluated | NoBarrierFound


def findings_from(codes: Iterable[BlockerCode]) -> BlockerFindings:
    """
    Build a detection result from raw codes.

    Duplicates are dropped keeping first occurrence; a stray
    CLINICAL_INERTIA is discarded since genuine codes supersede it.
    """
    ordered: list[BlockerCode] = []
    for code in codes:
        if code is BlockerCode.CLINICAL_INERTIA or code in ordered:
            continue
        ordered.append(code)
    if not ordered:
        return NoBarrierFound()
    return Evaluated(tuple(ordered))
