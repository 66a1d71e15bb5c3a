"""
Heart Failure GDMT Domain

Four pillars (ARNI/ACEi/ARB, beta-blocker, MRA, SGLT2i). The EF category
decides which apply: every pillar with at least one rule for the category
in the ruleset (HFpEF: SGLT2i only). HFpEF is scored with the composite
scorer, everything else linearly. When EF is not documented all four
pillars are evaluated and LVEF is requested.
"""

from __future__ import annotations

from collections.abc import Sequence

from gdmt.core.enums import BlockerCode, DomainId, EFCategory, Pillar
from gdmt.core.schemas import GDMTScore, PatientSnapshot, PillarResult
from gdmt.domains.base import Classification, DomainDescriptor
from gdmt.engine.blockers import detect_blockers
from gdmt.engine.scoring import calculate_composite_score, calculate_linear_score
from gdmt.ruleset.loader import HFConstants, Ruleset

HF_PILLARS: tuple[Pillar, ...] = (
    Pillar.ARNI_ACEI_ARB,
    Pillar.BETA_BLOCKER,
    Pillar.MRA,
    Pillar.SGLT2I,
)

EF_UNDOCUMENTED = "HF_EF_UNDOCUMENTED"

HF_QUESTIONS: dict[BlockerCode, tuple[str, ...]] = {
    BlockerCode.STALE_LABS: ("Order updated lab panel (eGFR, K+)",),
    BlockerCode.UNKNOWN_LABS: ("Obtain renal function (eGFR)", "Check potassium level"),
    BlockerCode.CLINICAL_INERTIA: ("Review {pillar}: no identified barrier to optimization",),
    BlockerCode.ADR_HISTORY: (
        "Review previous adverse reaction and consider re-challenge or alternative",
    ),
}


def classify_ef(ef: float | None, constants: HFConstants | None = None) -> EFCategory | None:
    """EF <= 40 HFrEF, <= 49 HFmrEF, otherwise HFpEF; None when EF is unknown."""
    if ef is None:
        return None
    constants = constants or HFConstants()
    if ef <= constants.hfref_max_ef:
        return EFCategory.HFREF
    if ef <= constants.hfmref_max_ef:
        return EFCategory.HFMREF
    return EFCategory.HFPEF


def classify(patient: PatientSnapshot, ruleset: Ruleset) -> Classification:
    category = classify_ef(patient.ef, ruleset.domains.hf)
    if category is None:
        return Classification(
            category=EF_UNDOCUMENTED,
            label="HF (EF not documented)",
            missing_info=("Obtain LVEF (echocardiogram)",),
        )
    return Classification(
        category=category.value,
        label=f"{category.value} (EF {patient.ef:g}%)",
        ef_category=category,
    )


def applicable_pillars(
    patient: PatientSnapshot, classification: Classification, ruleset: Ruleset
) -> tuple[Pillar, ...]:
    if classification.ef_category is None:
        return HF_PILLARS
    return ruleset.pillars_for_category(classification.category, HF_PILLARS)


def score(
    results: Sequence[PillarResult],
    patient: PatientSnapshot,
    classification: Classification,
    ruleset: Ruleset,
) -> GDMTScore:
    if classification.ef_category is EFCategory.HFPEF:
        return calculate_composite_score(results, patient, ruleset.domains.hf.composite)
    return calculate_linear_score(results)


def score_label(classification: Classification) -> str:
    return "HFpEF Score" if classification.ef_category is EFCategory.HFPEF else "GDMT Score"


HF_DOMAIN = DomainDescriptor(
    domain_id=DomainId.HF_GDMT,
    name="Heart Failure GDMT",
    pillars=HF_PILLARS,
    classify=classify,
    applicable_pillars=applicable_pillars,
    detector=detect_blockers,
    absolute_codes=frozenset({BlockerCode.ALLERGY}),
    lab_prompts=(("egfr", "Obtain eGFR"), ("potassium", "Obtain K+")),
    questions=HF_QUESTIONS,
    scorer=score,
    score_label=score_label,
)
