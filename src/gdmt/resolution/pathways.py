"""
Resolution Pathway Selector

Maps a (blocker, pillar) pair to the remediation pathways that can close
it. Only access, care-transition and patient-cost blockers are remediable,
plus the perioperative hold. Pathways are built fresh on every call and
carry no state; progress lives in ResolutionRecord.

Builders are held in a PathwayRegistry keyed by blocker code so callers can
substitute or extend the catalogue.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

from gdmt.core.blockers import category_of
from gdmt.core.enums import (
    AutomationLevel,
    BlockerCategory,
    BlockerCode,
    PathwayType,
    Pillar,
    TrialOutcome,
    Urgency,
)
from gdmt.core.schemas import (
    PatientSnapshot,
    PillarResult,
    RequiredDataField,
    ResolutionPathway,
    ResolutionStep,
)

logger = logging.getLogger(__name__)

RESOLVABLE_CATEGORIES: frozenset[BlockerCategory] = frozenset(
    {BlockerCategory.ACCESS, BlockerCategory.TRANSITION, BlockerCategory.PATIENT}
)
RESOLVABLE_OVERRIDES: frozenset[BlockerCode] = frozenset({BlockerCode.PERIOP_HOLD})

# Lower-cost same-pillar option used while a request is pending
BRIDGE_THERAPY: dict[Pillar, str] = {
    Pillar.ARNI_ACEI_ARB: "Enalapril 2.5 mg BID",
    Pillar.SGLT2I: "Generic dapagliflozin 10 mg daily",
    Pillar.SGLT2I_DM: "Generic dapagliflozin 10 mg daily",
    Pillar.MRA: "Spironolactone 12.5 mg daily",
    Pillar.BETA_BLOCKER: "Carvedilol 3.125 mg BID",
    Pillar.GLP1_RA: "Formulary-preferred GLP-1 RA",
}


def bridge_for(pillar: Pillar) -> str:
    return BRIDGE_THERAPY.get(pillar, f"Lower-cost generic {pillar.label}")


def is_resolvable_blocker(code: BlockerCode) -> bool:
    return code in RESOLVABLE_OVERRIDES or category_of(code) in RESOLVABLE_CATEGORIES


def has_resolvable_blockers(codes: Iterable[BlockerCode]) -> bool:
    return any(is_resolvable_blocker(c) for c in codes)


# =============================================================================
# REQUIRED DATA
# =============================================================================

# (key, label, availability check)
DataCheck = tuple[str, str, Callable[[PatientSnapshot], bool]]


def _insurance_field(name: str) -> Callable[[PatientSnapshot], bool]:
    def check(p: PatientSnapshot) -> bool:
        ctx = p.resolution_context
        return bool(ctx and ctx.insurance and getattr(ctx.insurance, name))

    return check


def _prescriber_field(name: str) -> Callable[[PatientSnapshot], bool]:
    def check(p: PatientSnapshot) -> bool:
        ctx = p.resolution_context
        return bool(ctx and ctx.prescriber and getattr(ctx.prescriber, name))

    return check


_PAYER: tuple[DataCheck, ...] = (
    ("insurance.payer_name", "Insurance payer", _insurance_field("payer_name")),
    ("insurance.member_id", "Member ID", _insurance_field("member_id")),
    ("prescriber.npi", "Prescriber NPI", _prescriber_field("npi")),
)
_CLINICAL: tuple[DataCheck, ...] = (
    ("ef", "Ejection fraction", lambda p: p.ef is not None),
    ("nyha_class", "NYHA class", lambda p: p.nyha_class is not None),
)

REQUIRED_DATA: dict[PathwayType, tuple[DataCheck, ...]] = {
    PathwayType.PA_APPEAL: _PAYER + _CLINICAL,
    PathwayType.PA_RESUBMIT: _PAYER,
    PathwayType.FORMULARY_EXCEPTION: _PAYER + _CLINICAL,
    PathwayType.STEP_THERAPY_EXCEPTION: _PAYER
    + (
        (
            "prior_trials",
            "Prior drug trial",
            lambda p: bool(p.resolution_context and p.resolution_context.prior_trials),
        ),
    ),
    PathwayType.PATIENT_ASSISTANCE_PROGRAM: (
        ("insurance.plan_type", "Insurance plan type", _insurance_field("plan_type")),
    ),
    PathwayType.COPAY_CARD: (
        ("insurance.plan_type", "Insurance plan type", _insurance_field("plan_type")),
    ),
}


def required_data_fields(pathway_type: PathwayType, snapshot: PatientSnapshot) -> tuple[RequiredDataField, ...]:
    return tuple(
        RequiredDataField(key=key, label=label, available=check(snapshot))
        for key, label, check in REQUIRED_DATA.get(pathway_type, ())
    )


# =============================================================================
# BUILDERS
# =============================================================================


def _steps(base_id: str, specs: Iterable[tuple[str, str, bool, int]]) -> tuple[ResolutionStep, ...]:
    """Steps numbered 1..n; automated steps need no clinician input and vice versa."""
    return tuple(
        ResolutionStep(
            id=f"{base_id}-s{i}",
            order=i,
            title=title,
            description=description,
            is_automated=automated,
            requires_clinician_input=not automated,
            estimated_seconds=seconds,
        )
        for i, (title, description, automated, seconds) in enumerate(specs, start=1)
    )


def _pathway(
    pathway_id: str,
    code: BlockerCode,
    pillar: Pillar,
    snapshot: PatientSnapshot,
    type: PathwayType,
    title: str,
    description: str,
    urgency: Urgency,
    estimated_time: str,
    automation_level: AutomationLevel,
    steps: Iterable[tuple[str, str, bool, int]],
    alternatives: Iterable[str] = (),
) -> ResolutionPathway:
    return ResolutionPathway(
        id=pathway_id,
        blocker_code=code,
        pillar=pillar,
        type=type,
        title=title,
        description=description,
        urgency=urgency,
        estimated_time=estimated_time,
        automation_level=automation_level,
        steps=_steps(pathway_id, steps),
        required_data=required_data_fields(type, snapshot),
        alternative_pathway_ids=tuple(alternatives),
    )


def build_pa_denied(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    label = pillar.label
    base = f"{pillar.value}-pa_denied"
    code = BlockerCode.PA_DENIED
    return [
        _pathway(
            f"{base}-appeal", code, pillar, snapshot,
            PathwayType.PA_APPEAL,
            f"{label}: PA Appeal",
            f"Generate appeal letter with guideline citations for {label} prior authorization denial.",
            Urgency.WITHIN_VISIT, "60 seconds", AutomationLevel.PARTIAL,
            [
                ("Auto-generate appeal letter", "Pre-fill with diagnosis, guidelines, and prior trials", True, 5),
                ("Clinician review", "Review and approve the appeal letter", False, 45),
                ("Submit appeal", "Submit to payer via fax", True, 10),
            ],
            alternatives=[f"{base}-generic-switch"],
        ),
        _pathway(
            f"{base}-generic-switch", code, pillar, snapshot,
            PathwayType.GENERIC_SWITCH,
            f"{label}: Generic Bridge",
            f"Bridge with {bridge_for(pillar)} while the PA appeal is processed.",
            Urgency.IMMEDIATE, "30 seconds", AutomationLevel.PARTIAL,
            [
                ("Select bridge medication", bridge_for(pillar), True, 5),
                ("Clinician approval", "One-click approval for bridge prescription", False, 15),
                ("Add to pre-visit note", "Include bridge prescription in care plan", True, 5),
            ],
            alternatives=[f"{base}-appeal"],
        ),
    ]


def build_step_therapy(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    """Bridge always; exception request only after a documented tolerated trial."""
    label = pillar.label
    base = f"{pillar.value}-step_therapy"
    code = BlockerCode.STEP_THERAPY_REQUIRED
    ctx = snapshot.resolution_context
    has_tolerated_trial = ctx is not None and any(
        t.outcome is TrialOutcome.TOLERATED for t in ctx.trials_for(pillar)
    )

    pathways = [
        _pathway(
            f"{base}-bridge", code, pillar, snapshot,
            PathwayType.STEP_THERAPY_START,
            f"{label}: Bridge + Scheduled PA Resubmission",
            f"Start {bridge_for(pillar)} (no PA required). Schedule PA resubmission after the required trial period.",
            Urgency.IMMEDIATE, "45 seconds", AutomationLevel.PARTIAL,
            [
                ("Generate bridge prescription", bridge_for(pillar), True, 5),
                ("Clinician approval", "Approve bridge start", False, 20),
                ("Schedule PA resubmission", "Schedule PA for 90 days from now", True, 5),
                ("Pre-generate PA form", "PA form pre-filled for future submission", True, 10),
            ],
            alternatives=[f"{base}-exception"] if has_tolerated_trial else [],
        )
    ]
    if has_tolerated_trial:
        pathways.append(
            _pathway(
                f"{base}-exception", code, pillar, snapshot,
                PathwayType.STEP_THERAPY_EXCEPTION,
                f"{label}: Step Therapy Exception Request",
                f"Prior {label} use documented. Request exception based on established tolerability.",
                Urgency.WITHIN_VISIT, "60 seconds", AutomationLevel.PARTIAL,
                [
                    ("Auto-generate exception request", "Cite prior tolerated trial as basis", True, 5),
                    ("Clinician review", "Review exception request", False, 45),
                    ("Submit exception", "Submit to payer", True, 10),
                ],
                alternatives=[f"{base}-bridge"],
            )
        )
    return pathways


def build_copay(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    label = pillar.label
    base = f"{pillar.value}-copay"
    code = BlockerCode.COPAY_PROHIBITIVE
    return [
        _pathway(
            f"{base}-generic", code, pillar, snapshot,
            PathwayType.GENERIC_SWITCH,
            f"{label}: Switch to Generic",
            "Switch to therapeutically equivalent generic with guideline-equivalent evidence.",
            Urgency.IMMEDIATE, "20 seconds", AutomationLevel.PARTIAL,
            [
                ("Identify generic alternative", "Select lowest-cost equivalent", True, 5),
                ("Clinician approval", "One-click switch approval", False, 10),
                ("Update care plan", "Reflect generic in pre-visit note", True, 5),
            ],
            alternatives=[f"{base}-pap", f"{base}-copaycard"],
        ),
        _pathway(
            f"{base}-pap", code, pillar, snapshot,
            PathwayType.PATIENT_ASSISTANCE_PROGRAM,
            f"{label}: Patient Assistance Program",
            "Check eligibility for manufacturer PAP or foundation assistance.",
            Urgency.WITHIN_WEEK, "5 minutes", AutomationLevel.MANUAL,
            [
                ("Identify eligible programs", "Search PAP database", True, 5),
                ("Review eligibility", "Confirm patient meets criteria", False, 120),
                ("Submit application", "Complete and submit PAP application", False, 180),
            ],
            alternatives=[f"{base}-generic"],
        ),
        _pathway(
            f"{base}-copaycard", code, pillar, snapshot,
            PathwayType.COPAY_CARD,
            f"{label}: Copay Savings Card",
            "Apply manufacturer copay card to reduce out-of-pocket cost.",
            Urgency.WITHIN_VISIT, "2 minutes", AutomationLevel.MANUAL,
            [
                ("Check copay card availability", "Search manufacturer programs", True, 5),
                ("Enroll patient", "Complete enrollment form", False, 90),
            ],
            alternatives=[f"{base}-generic"],
        ),
    ]


def build_formulary(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    label = pillar.label
    base = f"{pillar.value}-formulary"
    code = BlockerCode.FORMULARY_EXCLUDED
    return [
        _pathway(
            f"{base}-exception", code, pillar, snapshot,
            PathwayType.FORMULARY_EXCEPTION,
            f"{label}: Formulary Exception Request",
            "Request formulary exception with guideline-based medical necessity.",
            Urgency.WITHIN_VISIT, "60 seconds", AutomationLevel.PARTIAL,
            [
                ("Auto-generate exception", "Pre-fill with guideline citations", True, 5),
                ("Clinician review", "Review and approve", False, 45),
                ("Submit exception", "Submit to pharmacy benefit", True, 10),
            ],
            alternatives=[f"{base}-alternative"],
        ),
        _pathway(
            f"{base}-alternative", code, pillar, snapshot,
            PathwayType.THERAPEUTIC_ALTERNATIVE,
            f"{label}: In-Formulary Alternative",
            "Switch to an in-formulary therapeutic alternative.",
            Urgency.IMMEDIATE, "30 seconds", AutomationLevel.PARTIAL,
            [
                ("Identify in-formulary option", "Search formulary database", True, 5),
                ("Clinician review", "Review and approve switch", False, 20),
            ],
            alternatives=[f"{base}-exception"],
        ),
    ]


def build_pa_pending(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    label = pillar.label
    base = f"{pillar.value}-pa_pending"
    code = BlockerCode.PA_PENDING
    return [
        _pathway(
            f"{base}-track", code, pillar, snapshot,
            PathwayType.PA_RESUBMIT,
            f"{label}: Track PA Progress",
            "Monitor PA status. Auto-generate appeal if pending >14 days.",
            Urgency.WITHIN_WEEK, "Automated tracking", AutomationLevel.FULL,
            [
                ("Check PA status", "Query payer for current status", True, 5),
                ("Set reminder", "Auto-appeal at 14 days if still pending", True, 5),
            ],
            alternatives=[f"{base}-bridge"],
        ),
        _pathway(
            f"{base}-bridge", code, pillar, snapshot,
            PathwayType.STEP_THERAPY_START,
            f"{label}: Bridge While Pending",
            f"Start {bridge_for(pillar)} to maintain therapy while the PA processes.",
            Urgency.IMMEDIATE, "30 seconds", AutomationLevel.PARTIAL,
            [
                ("Generate bridge prescription", bridge_for(pillar), True, 5),
                ("Clinician approval", "Approve bridge", False, 15),
            ],
            alternatives=[f"{base}-track"],
        ),
    ]


def build_discharge_lost(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    base = f"{pillar.value}-discharge"
    return [
        _pathway(
            f"{base}-reconcile", BlockerCode.DISCHARGE_MED_LOST, pillar, snapshot,
            PathwayType.DISCHARGE_RECONCILIATION,
            f"{pillar.label}: Re-prescribe Lost Discharge Medication",
            "Medication from discharge was not continued. Generate immediate re-prescription.",
            Urgency.IMMEDIATE, "20 seconds", AutomationLevel.PARTIAL,
            [
                ("Generate prescription", "Re-prescribe at discharge dose", True, 5),
                ("Clinician signature", "One-click sign", False, 10),
            ],
        )
    ]


def build_handoff_gap(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    base = f"{pillar.value}-handoff"
    return [
        _pathway(
            f"{base}-followup", BlockerCode.HANDOFF_GAP, pillar, snapshot,
            PathwayType.HANDOFF_FOLLOWUP,
            f"{pillar.label}: Handoff Communication",
            "Generate handoff communication to close care transition gap.",
            Urgency.WITHIN_VISIT, "45 seconds", AutomationLevel.PARTIAL,
            [
                ("Generate handoff note", "Summarize medication plan and gaps", True, 5),
                ("Clinician review", "Review and send", False, 30),
            ],
        )
    ]


def build_periop(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    base = f"{pillar.value}-periop"
    return [
        _pathway(
            f"{base}-restart", BlockerCode.PERIOP_HOLD, pillar, snapshot,
            PathwayType.PERIOP_RESTART,
            f"{pillar.label}: Post-Operative Restart Schedule",
            "Generate restart schedule for medication held perioperatively.",
            Urgency.WITHIN_VISIT, "30 seconds", AutomationLevel.PARTIAL,
            [
                ("Generate restart schedule", "Based on surgery date and medication class", True, 5),
                ("Clinician confirmation", "Confirm oral intake adequate", False, 15),
            ],
        )
    ]


def build_cost_barrier(pillar: Pillar, snapshot: PatientSnapshot) -> list[ResolutionPathway]:
    label = pillar.label
    base = f"{pillar.value}-cost"
    code = BlockerCode.COST_BARRIER
    return [
        _pathway(
            f"{base}-generic", code, pillar, snapshot,
            PathwayType.GENERIC_SWITCH,
            f"{label}: Generic Alternative",
            "Switch to lower-cost generic with equivalent evidence.",
            Urgency.IMMEDIATE, "20 seconds", AutomationLevel.PARTIAL,
            [
                ("Find lowest-cost generic", "Search alternatives database", True, 5),
                ("Clinician approval", "One-click switch", False, 10),
            ],
            alternatives=[f"{base}-pap"],
        ),
        _pathway(
            f"{base}-pap", code, pillar, snapshot,
            PathwayType.PATIENT_ASSISTANCE_PROGRAM,
            f"{label}: Assistance Programs",
            "Search for PAPs, copay cards, and pharmacy discount programs.",
            Urgency.WITHIN_WEEK, "5 minutes", AutomationLevel.MANUAL,
            [
                ("Search programs", "Identify eligible assistance", True, 5),
                ("Enroll patient", "Complete enrollment", False, 180),
            ],
            alternatives=[f"{base}-generic"],
        ),
    ]


# =============================================================================
# REGISTRY AND SELECTION
# =============================================================================

PathwayBuilder = Callable[[Pillar, PatientSnapshot], list[ResolutionPathway]]


class PathwayRegistry:
    """Blocker code -> pathway builder."""

    def __init__(self, builders: Mapping[BlockerCode, PathwayBuilder] | None = None):
        self._builders: dict[BlockerCode, PathwayBuilder] = dict(builders or {})

    def register(self, code: BlockerCode, builder: PathwayBuilder) -> None:
        self._builders[code] = builder

    def builder_for(self, code: BlockerCode) -> PathwayBuilder | None:
        return self._builders.get(code)

    def codes(self) -> list[BlockerCode]:
        return list(self._builders)


DEFAULT_BUILDERS: dict[BlockerCode, PathwayBuilder] = {
    BlockerCode.PA_DENIED: build_pa_denied,
    BlockerCode.STEP_THERAPY_REQUIRED: build_step_therapy,
    BlockerCode.COPAY_PROHIBITIVE: build_copay,
    BlockerCode.FORMULARY_EXCLUDED: build_formulary,
    BlockerCode.PA_PENDING: build_pa_pending,
    BlockerCode.DISCHARGE_MED_LOST: build_discharge_lost,
    BlockerCode.HANDOFF_GAP: build_handoff_gap,
    BlockerCode.PERIOP_HOLD: build_periop,
    BlockerCode.COST_BARRIER: build_cost_barrier,
}


def default_pathway_registry() -> PathwayRegistry:
    return PathwayRegistry(DEFAULT_BUILDERS)


def select_resolution_pathways(
    blocker_code: BlockerCode,
    pillar: Pillar,
    snapshot: PatientSnapshot,
    registry: PathwayRegistry | None = None,
) -> list[ResolutionPathway]:
    """
    Pathways for one blocker on one pillar, most urgent first.

    Returns an empty list for non-remediable blockers or when the registry
    has no builder for the code. Ordering is stable within equal urgency.
    """
    if not is_resolvable_blocker(blocker_code):
        return []
    builder = (registry or default_pathway_registry()).builder_for(blocker_code)
    if builder is None:
        return []
    pathways = sorted(builder(pillar, snapshot), key=lambda p: p.urgency.rank)
    logger.debug(
        "Pathways for %s/%s: %s", pillar.value, blocker_code.value, [p.id for p in pathways]
    )
    return pathways


def pathways_for_pillar(
    result: PillarResult,
    snapshot: PatientSnapshot,
    registry: PathwayRegistry | None = None,
) -> list[ResolutionPathway]:
    """Pathways for every remediable blocker of a pillar result, blocker order kept."""
    out: list[ResolutionPathway] = []
    for code in result.blockers:
        out.extend(select_resolution_pathways(code, result.pillar, snapshot, registry))
    return out
