"""
GDMT Core Schemas

This module defines all Pydantic models (schemas) used throughout the GDMT engine.
These schemas represent the domain model and enforce invariants via validators.

Key Design Principles:
1. All schemas are immutable (frozen=True); changes produce new instances
2. Critical invariants are enforced via model_validator and field_validator
3. Unmeasured values stay None and are never defaulted to a "normal" value
4. Every non-target pillar carries the blocker codes that explain it
5. Workflow records are replaced on every advance, never edited in place
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gdmt.core.blockers import DATA_AVAILABILITY_CODES
from gdmt.core.enums import (
    AccessBarrierType,
    ActionCategory,
    ActionPriority,
    AutomationLevel,
    BlockerCode,
    DocumentType,
    DomainId,
    DoseTier,
    EFCategory,
    PathwayType,
    Pillar,
    PillarStatus,
    ResolutionEventType,
    ResolutionStatus,
    StepStatus,
    TrialOutcome,
    Urgency,
)
from gdmt.core.exceptions import InvariantViolationError


# Union of every domain's absolute contraindication codes
ABSOLUTE_CONTRAINDICATION_CODES: frozenset[BlockerCode] = frozenset(
    {
        BlockerCode.ALLERGY,
        BlockerCode.ANGIOEDEMA_HISTORY,
        BlockerCode.LACTIC_ACIDOSIS_RISK,
        BlockerCode.PANCREATITIS_HISTORY,
    }
)


def normalize_score(score: int, max_possible: int) -> int:
    """Percentage rounded half-up; 0 when nothing is scoreable."""
    if max_possible <= 0:
        return 0
    return int(math.floor(100 * score / max_possible + 0.5))


# =============================================================================
# PATIENT SNAPSHOT - Immutable Input
# =============================================================================


class AccessBarrier(BaseModel):
    """Payer or pharmacy barrier attached to a medication."""

    model_config = ConfigDict(frozen=True)

    type: AccessBarrierType
    description: str | None = None


class Medication(BaseModel):
    """
    One prescription within a pillar.

    The per-medication flags override nothing; they are checked together
    with the patient-level history.
    """

    model_config = ConfigDict(frozen=True)

    pillar: Pillar
    name: str = Field(default="", description="Drug name as prescribed")
    dose_tier: DoseTier = Field(default=DoseTier.NOT_PRESCRIBED)
    has_adr: bool = Field(default=False, description="Documented adverse reaction to this drug")
    adr_description: str | None = Field(default=None, description="Free-text ADR description")
    has_allergy: bool = False
    patient_refusal: bool = False
    cost_barrier: bool = False
    access_barrier: AccessBarrier | None = None

    @property
    def is_active(self) -> bool:
        return self.dose_tier is not DoseTier.NOT_PRESCRIBED


class PatientHistory(BaseModel):
    """Structured history relevant to blocker detection."""

    model_config = ConfigDict(frozen=True)

    recent_aki: bool = False
    adr_history: dict[Pillar, str] = Field(
        default_factory=dict, description="Pillar -> description of prior adverse reaction"
    )
    allergies: tuple[Pillar, ...] = Field(default_factory=tuple)
    lost_after_discharge: tuple[Pillar, ...] = Field(
        default_factory=tuple, description="Pillars dropped across a care transition"
    )
    handoff_gaps: tuple[Pillar, ...] = Field(
        default_factory=tuple, description="Pillars with an unresolved handoff between teams"
    )


class InsuranceInfo(BaseModel):
    """Coverage details used when filling payer forms."""

    model_config = ConfigDict(frozen=True)

    payer_name: str | None = None
    plan_type: str | None = None
    member_id: str | None = None
    group_number: str | None = None
    pbm_name: str | None = None
    pbm_fax: str | None = None


class PrescriberInfo(BaseModel):
    """Prescriber identity for payer forms."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    npi: str | None = None
    practice_name: str | None = None
    phone: str | None = None
    fax: str | None = None


class PriorDrugTrial(BaseModel):
    """A previous course of a drug and how it went."""

    model_config = ConfigDict(frozen=True)

    drug_name: str
    pillar: Pillar
    start_date: date
    end_date: date | None = None
    duration_days: int | None = Field(default=None, ge=0)
    outcome: TrialOutcome
    notes: str | None = None


class ResolutionContext(BaseModel):
    """Administrative context needed by resolution pathways."""

    model_config = ConfigDict(frozen=True)

    insurance: InsuranceInfo | None = None
    prescriber: PrescriberInfo | None = None
    prior_trials: tuple[PriorDrugTrial, ...] = Field(default_factory=tuple)

    def trials_for(self, pillar: Pillar) -> tuple[PriorDrugTrial, ...]:
        return tuple(t for t in self.prior_trials if t.pillar == pillar)


class PatientSnapshot(BaseModel):
    """
    Point-in-time clinical picture of one patient.

    Only sbp, hr and vitals_date are mandatory. Every other measurement is
    optional and None means "not yet measured".

    Invariant: at most one active medication per pillar is authoritative
    (the first one listed).
    """

    model_config = ConfigDict(frozen=True)

    # Vitals
    sbp: float = Field(..., gt=0, le=300, description="Systolic blood pressure, mmHg")
    dbp: float | None = Field(default=None, gt=0, le=200, description="Diastolic BP, mmHg")
    hr: float = Field(..., gt=0, le=300, description="Heart rate, bpm")
    vitals_date: date

    # Cardiac
    ef: float | None = Field(default=None, ge=0, le=100, description="LVEF, percent")
    nyha_class: int | None = Field(default=None, ge=1, le=4)

    # Labs
    egfr: float | None = Field(default=None, ge=0, description="mL/min/1.73m2")
    potassium: float | None = Field(default=None, gt=0, description="mEq/L")
    bnp: float | None = Field(default=None, ge=0, description="pg/mL")
    nt_pro_bnp: float | None = Field(default=None, ge=0, description="pg/mL")
    hba1c: float | None = Field(default=None, gt=0, le=25, description="percent")
    labs_date: date | None = None

    # Comorbidities and anthropometrics
    dm_type: Literal["type1", "type2"] | None = None
    bmi: float | None = Field(default=None, gt=0)
    ckd: bool = False
    cvd_risk: bool = False
    pregnancy_risk: bool = False

    # Per-patient BP targets (hypertension domain)
    target_sbp: float | None = Field(default=None, gt=0)
    target_dbp: float | None = Field(default=None, gt=0)

    surgery_date: date | None = None

    medications: tuple[Medication, ...] = Field(default_factory=tuple)
    history: PatientHistory = Field(default_factory=PatientHistory)
    resolution_context: ResolutionContext | None = None

    def medications_for(self, pillar: Pillar) -> tuple[Medication, ...]:
        """Every record for the pillar, in entry order."""
        return tuple(m for m in self.medications if m.pillar == pillar)

    def medication_for(self, pillar: Pillar) -> Medication | None:
        """First medication record for the pillar, prescribed or not."""
        return next((m for m in self.medications if m.pillar == pillar), None)

    def active_medication(self, pillar: Pillar) -> Medication | None:
        """The authoritative (first active) medication for the pillar."""
        return next((m for m in self.medications if m.pillar == pillar and m.is_active), None)

    def active_pillars(self) -> tuple[Pillar, ...]:
        seen: list[Pillar] = []
        for med in self.medications:
            if med.is_active and med.pillar not in seen:
                seen.append(med.pillar)
        return tuple(seen)


class TimelineEntry(BaseModel):
    """One dated snapshot in a patient's care timeline."""

    model_config = ConfigDict(frozen=True)

    entry_date: date
    label: str = ""
    snapshot: PatientSnapshot


class TransitionGap(BaseModel):
    """A pillar that was active and then disappeared between two entries."""

    model_config = ConfigDict(frozen=True)

    pillar: Pillar
    last_present_date: date
    lost_at_date: date
    from_label: str = ""
    to_label: str = ""


# =============================================================================
# AUDIT RESULTS
# =============================================================================


class PillarResult(BaseModel):
    """
    Outcome of evaluating one pillar.

    Invariants:
    - ON_TARGET  => dose tier HIGH and no blockers
    - UNDERDOSED => dose tier LOW or MEDIUM
    - MISSING / CONTRAINDICATED / UNKNOWN => dose tier NOT_PRESCRIBED
    - CONTRAINDICATED => an absolute contraindication code is present
    - UNKNOWN => blockers present and all of them are data-availability codes
    - CLINICAL_INERTIA never appears next to another code
    """

    model_config = ConfigDict(frozen=True)

    pillar: Pillar
    status: PillarStatus
    dose_tier: DoseTier
    blockers: tuple[BlockerCode, ...] = Field(default_factory=tuple)
    missing_info: tuple[str, ...] = Field(default_factory=tuple)
    medication_name: str | None = None

    @model_validator(mode="after")
    def validate_status(self) -> PillarResult:
        blockers = set(self.blockers)
        if BlockerCode.CLINICAL_INERTIA in blockers and len(blockers) > 1:
            raise InvariantViolationError(
                f"{self.pillar.value}: CLINICAL_INERTIA mixed with genuine blockers",
                invariant="inertia_exclusive",
            )
        if self.status is PillarStatus.ON_TARGET:
            if self.dose_tier is not DoseTier.HIGH or blockers:
                raise InvariantViolationError(
                    f"{self.pillar.value}: ON_TARGET requires HIGH tier and no blockers",
                    invariant="on_target",
                )
        elif self.status is PillarStatus.UNDERDOSED:
            if self.dose_tier not in (DoseTier.LOW, DoseTier.MEDIUM):
                raise InvariantViolationError(
                    f"{self.pillar.value}: UNDERDOSED requires LOW or MEDIUM tier",
                    invariant="underdosed",
                )
        elif self.dose_tier is not DoseTier.NOT_PRESCRIBED:
            raise InvariantViolationError(
                f"{self.pillar.value}: {self.status.value} requires no active medication",
                invariant="not_prescribed",
            )
        if self.status is PillarStatus.CONTRAINDICATED and not (
            blockers & ABSOLUTE_CONTRAINDICATION_CODES
        ):
            raise InvariantViolationError(
                f"{self.pillar.value}: CONTRAINDICATED without an absolute contraindication",
                invariant="contraindicated",
            )
        if self.status is PillarStatus.UNKNOWN and (
            not blockers or not blockers <= DATA_AVAILABILITY_CODES
        ):
            raise InvariantViolationError(
                f"{self.pillar.value}: UNKNOWN allows only data-availability blockers",
                invariant="unknown",
            )
        return self


class GDMTScore(BaseModel):
    """
    Normalized adherence score.

    Invariant: normalized == round(100 * score / max_possible), or 0 when
    max_possible is 0.
    """

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0)
    max_possible: int = Field(..., ge=0)
    normalized: int = Field(..., ge=0, le=100)
    excluded_pillars: tuple[Pillar, ...] = Field(
        default_factory=tuple, description="Contraindicated pillars left out of both totals"
    )
    is_incomplete: bool = False

    @model_validator(mode="after")
    def validate_normalized(self) -> GDMTScore:
        if self.score > self.max_possible:
            raise InvariantViolationError("score exceeds max_possible", invariant="bounded")
        if self.normalized != normalize_score(self.score, self.max_possible):
            raise InvariantViolationError(
                "normalized does not match score/max_possible", invariant="normalized"
            )
        return self


class AuditResult(BaseModel):
    """
    Complete audit of one patient against one domain.

    Created once per audit; consumers derive new views rather than edit it.
    """

    model_config = ConfigDict(frozen=True)

    domain_id: DomainId
    category: str = Field(..., description="Category code, e.g. HFrEF or DM_TYPE2_CKD")
    category_label: str
    ef_category: EFCategory | None = None
    score_label: str = "GDMT Score"
    pillar_results: tuple[PillarResult, ...]
    score: GDMTScore
    missing_info: tuple[str, ...] = Field(default_factory=tuple)
    next_best_questions: tuple[str, ...] = Field(default_factory=tuple)
    reference_date: date
    timestamp: datetime

    @field_validator("missing_info", "next_best_questions")
    @classmethod
    def deduplicate(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(v))

    def result_for(self, pillar: Pillar) -> PillarResult | None:
        return next((r for r in self.pillar_results if r.pillar == pillar), None)


class ActionItem(BaseModel):
    """A recommended next step derived from an audit; never persisted."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Deterministic: '<pillar>-<category>'")
    pillar: Pillar
    category: ActionCategory
    priority: ActionPriority
    title: str
    rationale: str
    suggested_action: str
    evidence: str | None = None
    cautions: tuple[str, ...] = Field(default_factory=tuple)


# =============================================================================
# RESOLUTION PATHWAYS AND RECORDS
# =============================================================================


class ResolutionStep(BaseModel):
    """One ordered step in a remediation pathway."""

    model_config = ConfigDict(frozen=True)

    id: str
    order: int = Field(..., ge=1)
    title: str
    description: str
    is_automated: bool
    requires_clinician_input: bool
    estimated_seconds: int = Field(default=0, ge=0)


class RequiredDataField(BaseModel):
    """A data point a pathway needs, and whether the snapshot has it."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    available: bool


class ResolutionPathway(BaseModel):
    """
    Static remediation strategy for a (blocker, pillar) pair.

    Invariant: step orders are exactly 1..n in sequence.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    blocker_code: BlockerCode
    pillar: Pillar
    type: PathwayType
    title: str
    description: str
    urgency: Urgency
    estimated_time: str
    automation_level: AutomationLevel
    steps: tuple[ResolutionStep, ...]
    required_data: tuple[RequiredDataField, ...] = Field(default_factory=tuple)
    alternative_pathway_ids: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("steps")
    @classmethod
    def validate_step_order(cls, v: tuple[ResolutionStep, ...]) -> tuple[ResolutionStep, ...]:
        orders = [s.order for s in v]
        if orders != list(range(1, len(v) + 1)):
            raise InvariantViolationError(
                f"Step orders must be 1..{len(v)} in sequence, got {orders}",
                invariant="contiguous_steps",
            )
        return v

    @property
    def missing_data(self) -> tuple[RequiredDataField, ...]:
        return tuple(f for f in self.required_data if not f.available)


class StepProgress(BaseModel):
    """Progress of one pathway step inside a resolution record."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    status: StepStatus = StepStatus.PENDING
    is_automated: bool = False
    requires_clinician_input: bool = False
    completed_at: datetime | None = None
    auto_completed: bool = False


class GeneratedDocument(BaseModel):
    """A document produced during a resolution (form, letter, note)."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: DocumentType
    title: str
    content: str
    generated_at: datetime


class ResolutionEvent(BaseModel):
    """A discrete event that may advance a resolution record."""

    model_config = ConfigDict(frozen=True)

    type: ResolutionEventType
    timestamp: datetime
    step_id: str | None = None
    note: str | None = None


class ResolutionRecord(BaseModel):
    """
    Tracking entity for one in-progress pathway.

    Every accepted event yields a new record with the event appended to
    `events`, so the full history stays inspectable.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    pathway_id: str
    blocker_code: BlockerCode
    pillar: Pillar
    status: ResolutionStatus = ResolutionStatus.NOT_STARTED
    steps: tuple[StepProgress, ...] = Field(default_factory=tuple)
    documents: tuple[GeneratedDocument, ...] = Field(default_factory=tuple)
    events: tuple[ResolutionEvent, ...] = Field(default_factory=tuple)
    started_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    def step(self, step_id: str) -> StepProgress | None:
        return next((s for s in self.steps if s.step_id == step_id), None)


# =============================================================================
# PRIOR AUTHORIZATION FORM DATA
# =============================================================================


class LabValue(BaseModel):
    """A lab result quoted on a payer form."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: float
    unit: str
    measured_on: date | None = None


class PAFormData(BaseModel):
    """Pre-filled prior-authorization request, ready for templating."""

    model_config = ConfigDict(frozen=True)

    id: str
    generated_at: datetime
    status: Literal["draft", "submitted"] = "draft"
    requested_drug: str
    requested_pillar: Pillar
    requested_dose_tier: DoseTier
    diagnosis_code: str
    diagnosis_description: str
    ef_percent: float | None = None
    nyha_class: int | None = None
    clinical_justification: str
    guideline_reference: str
    guideline_class: str
    guideline_doi: str | None = None
    step_therapy_exception: str | None = None
    prior_trials: tuple[PriorDrugTrial, ...] = Field(default_factory=tuple)
    relevant_labs: tuple[LabValue, ...] = Field(default_factory=tuple)
    insurance: InsuranceInfo = Field(default_factory=InsuranceInfo)
    prescriber: PrescriberInfo = Field(default_factory=PrescriberInfo)
