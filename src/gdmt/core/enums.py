"""
GDMT Core Enumerations

This module defines all enumerations used throughout the GDMT engine.
These are critical for maintaining type safety and consistent vocabulary.
"""

from enum import Enum


class DomainId(str, Enum):
    """Disease-management rulesets the engine can audit."""

    HF_GDMT = "hf-gdmt"
    DM_MGMT = "dm-mgmt"
    HTN_CONTROL = "htn-control"


class Pillar(str, Enum):
    """Guideline-recommended therapy classes, grouped by domain."""

    # Heart failure
    ARNI_ACEI_ARB = "ARNI_ACEi_ARB"
    BETA_BLOCKER = "BETA_BLOCKER"
    MRA = "MRA"
    SGLT2I = "SGLT2i"

    # Diabetes
    METFORMIN = "METFORMIN"
    SGLT2I_DM = "SGLT2i_DM"
    GLP1_RA = "GLP1_RA"
    INSULIN = "INSULIN"

    # Hypertension
    ACEI_ARB_HTN = "ACEi_ARB_HTN"
    CCB = "CCB"
    THIAZIDE = "THIAZIDE"
    BETA_BLOCKER_HTN = "BETA_BLOCKER_HTN"

    @property
    def label(self) -> str:
        """Human-readable class name."""
        return PILLAR_LABELS[self]


PILLAR_LABELS: dict[Pillar, str] = {
    Pillar.ARNI_ACEI_ARB: "ARNI/ACEi/ARB",
    Pillar.BETA_BLOCKER: "Beta-blocker",
    Pillar.MRA: "MRA",
    Pillar.SGLT2I: "SGLT2i",
    Pillar.METFORMIN: "Metformin",
    Pillar.SGLT2I_DM: "SGLT2i",
    Pillar.GLP1_RA: "GLP-1 RA",
    Pillar.INSULIN: "Insulin",
    Pillar.ACEI_ARB_HTN: "ACEi/ARB",
    Pillar.CCB: "CCB",
    Pillar.THIAZIDE: "Thiazide",
    Pillar.BETA_BLOCKER_HTN: "Beta-blocker",
}


class PillarStatus(str, Enum):
    """Terminal status of a single pillar evaluation."""

    ON_TARGET = "ON_TARGET"
    UNDERDOSED = "UNDERDOSED"
    MISSING = "MISSING"
    CONTRAINDICATED = "CONTRAINDICATED"
    UNKNOWN = "UNKNOWN"


class DoseTier(str, Enum):
    """
    Ordered dose rung within a pillar.

    Each tier carries the points it contributes to the linear score.
    """

    NOT_PRESCRIBED = "NOT_PRESCRIBED"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def points(self) -> int:
        return DOSE_TIER_POINTS[self]

    @property
    def rank(self) -> int:
        return list(DoseTier).index(self)


DOSE_TIER_POINTS: dict[DoseTier, int] = {
    DoseTier.NOT_PRESCRIBED: 0,
    DoseTier.LOW: 8,
    DoseTier.MEDIUM: 16,
    DoseTier.HIGH: 25,
}

MAX_PILLAR_POINTS = DOSE_TIER_POINTS[DoseTier.HIGH]


class EFCategory(str, Enum):
    """Heart-failure phenotype by ejection fraction."""

    HFREF = "HFrEF"
    HFMREF = "HFmrEF"
    HFPEF = "HFpEF"


class BlockerCategory(str, Enum):
    """Families of blocker codes."""

    VITALS = "VITALS"
    LABS = "LABS"
    SAFETY = "SAFETY"
    DATA_QUALITY = "DATA_QUALITY"
    SYSTEM = "SYSTEM"
    PATIENT = "PATIENT"
    ACCESS = "ACCESS"
    TRANSITION = "TRANSITION"


class BlockerCode(str, Enum):
    """Coded reasons a pillar is not at target."""

    # Vitals
    BP_LOW = "BP_LOW"
    HR_LOW = "HR_LOW"

    # Labs
    K_HIGH = "K_HIGH"
    EGFR_LOW_INIT = "EGFR_LOW_INIT"
    EGFR_LOW_CONT = "EGFR_LOW_CONT"

    # Safety
    RECENT_AKI = "RECENT_AKI"
    ADR_HISTORY = "ADR_HISTORY"
    ALLERGY = "ALLERGY"
    HYPOGLYCEMIA_RISK = "HYPOGLYCEMIA_RISK"
    LACTIC_ACIDOSIS_RISK = "LACTIC_ACIDOSIS_RISK"
    GI_INTOLERANCE = "GI_INTOLERANCE"
    PANCREATITIS_HISTORY = "PANCREATITIS_HISTORY"
    ANGIOEDEMA_HISTORY = "ANGIOEDEMA_HISTORY"
    PREGNANCY_RISK = "PREGNANCY_RISK"
    GOUT_RISK = "GOUT_RISK"
    ANKLE_EDEMA = "ANKLE_EDEMA"

    # Data quality
    STALE_LABS = "STALE_LABS"
    STALE_VITALS = "STALE_VITALS"
    UNKNOWN_LABS = "UNKNOWN_LABS"

    # System
    CLINICAL_INERTIA = "CLINICAL_INERTIA"  # "no barrier found" sentinel
    OTHER = "OTHER"
    PERIOP_HOLD = "PERIOP_HOLD"

    # Patient
    PATIENT_REFUSAL = "PATIENT_REFUSAL"
    COST_BARRIER = "COST_BARRIER"
    COPAY_PROHIBITIVE = "COPAY_PROHIBITIVE"

    # Access
    PA_PENDING = "PA_PENDING"
    PA_DENIED = "PA_DENIED"
    STEP_THERAPY_REQUIRED = "STEP_THERAPY_REQUIRED"
    FORMULARY_EXCLUDED = "FORMULARY_EXCLUDED"

    # Care transition
    DISCHARGE_MED_LOST = "DISCHARGE_MED_LOST"
    HANDOFF_GAP = "HANDOFF_GAP"


class AccessBarrierType(str, Enum):
    """Payer/pharmacy barrier attached to a medication."""

    PA_PENDING = "pa_pending"
    PA_DENIED = "pa_denied"
    STEP_THERAPY = "step_therapy"
    COPAY_PROHIBITIVE = "copay_prohibitive"
    FORMULARY_EXCLUDED = "formulary_excluded"


class ActionCategory(str, Enum):
    """Kind of recommended action."""

    INITIATE = "initiate"
    UPTITRATE = "uptitrate"
    RESOLVE_BLOCKER = "resolve_blocker"
    ORDER_LABS = "order_labs"
    REASSESS = "reassess"


class ActionPriority(str, Enum):
    """Action priority, ordered high to low."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return list(ActionPriority).index(self)


# =============================================================================
# RESOLUTION WORKFLOW
# =============================================================================


class PathwayType(str, Enum):
    """Remediation strategy kinds."""

    PA_APPEAL = "pa_appeal"
    PA_RESUBMIT = "pa_resubmit"
    GENERIC_SWITCH = "generic_switch"
    STEP_THERAPY_START = "step_therapy_start"
    STEP_THERAPY_EXCEPTION = "step_therapy_exception"
    PATIENT_ASSISTANCE_PROGRAM = "patient_assistance_program"
    COPAY_CARD = "copay_card"
    FORMULARY_EXCEPTION = "formulary_exception"
    THERAPEUTIC_ALTERNATIVE = "therapeutic_alternative"
    DISCHARGE_RECONCILIATION = "discharge_reconciliation"
    HANDOFF_FOLLOWUP = "handoff_followup"
    PERIOP_RESTART = "periop_restart"


class Urgency(str, Enum):
    """Pathway urgency, ordered most to least urgent."""

    IMMEDIATE = "immediate"
    WITHIN_VISIT = "within_visit"
    WITHIN_WEEK = "within_week"
    NEXT_VISIT = "next_visit"

    @property
    def rank(self) -> int:
        return list(Urgency).index(self)


class AutomationLevel(str, Enum):
    """How much of a pathway runs without clinician input."""

    FULL = "full"
    PARTIAL = "partial"
    MANUAL = "manual"


class ResolutionStatus(str, Enum):
    """Lifecycle states of a resolution record."""

    NOT_STARTED = "not_started"
    AUTO_PREPARING = "auto_preparing"
    CLINICIAN_REVIEW = "clinician_review"
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    DENIED = "denied"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (ResolutionStatus.COMPLETED, ResolutionStatus.ABANDONED)


class ResolutionEventType(str, Enum):
    """Discrete events that drive a resolution record."""

    START = "start"
    AUTO_STEP_COMPLETE = "auto_step_complete"
    CLINICIAN_APPROVE = "clinician_approve"
    CLINICIAN_REJECT = "clinician_reject"
    SUBMIT = "submit"
    EXTERNAL_APPROVE = "external_approve"
    EXTERNAL_DENY = "external_deny"
    COMPLETE = "complete"
    ABANDON = "abandon"


class StepStatus(str, Enum):
    """Progress of a single pathway step."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class TrialOutcome(str, Enum):
    """Outcome of a prior drug trial."""

    TOLERATED = "tolerated"
    INTOLERABLE = "intolerable"
    INEFFECTIVE = "ineffective"
    CONTRAINDICATED = "contraindicated"


class DocumentType(str, Enum):
    """Documents a resolution workflow can attach."""

    PA_FORM = "pa_form"
    APPEAL_LETTER = "appeal_letter"
    EXCEPTION_REQUEST = "exception_request"
    HANDOFF_NOTE = "handoff_note"
    PRESCRIPTION = "prescription"
