"""
Prior-Authorization Form Data

Assembles the structured payload a PA form or appeal letter is rendered
from. Rule logic stays in the audit; this module only gathers values and
fills the ruleset's per-pillar text templates.
"""

from __future__ import annotations

import logging
from datetime import datetime

from gdmt.core.enums import BlockerCode, DoseTier, EFCategory, Pillar, TrialOutcome
from gdmt.core.schemas import (
    AuditResult,
    InsuranceInfo,
    LabValue,
    PAFormData,
    PatientSnapshot,
    PrescriberInfo,
)
from gdmt.domains.hf_gdmt import classify_ef
from gdmt.ruleset.loader import Ruleset, get_default_ruleset

logger = logging.getLogger(__name__)

# (code, description); HFmrEF is billed as systolic
ICD10_BY_EF: dict[EFCategory | None, tuple[str, str]] = {
    EFCategory.HFREF: ("I50.22", "Chronic systolic (congestive) heart failure"),
    EFCategory.HFMREF: ("I50.22", "Chronic systolic (congestive) heart failure"),
    EFCategory.HFPEF: ("I50.32", "Chronic diastolic (congestive) heart failure"),
    None: ("I50.9", "Heart failure, unspecified"),
}

NOT_DOCUMENTED = "not documented"


class _Placeholders(dict):
    def __missing__(self, key: str) -> str:
        return NOT_DOCUMENTED


def _fmt(value: float | int | None) -> str:
    return NOT_DOCUMENTED if value is None else f"{value:g}"


def fill_template(template: str, snapshot: PatientSnapshot) -> str:
    """Replace {ef} {nyha} {egfr} {potassium}; unknown values read 'not documented'."""
    values = _Placeholders(
        ef=_fmt(snapshot.ef),
        nyha=_fmt(snapshot.nyha_class),
        egfr=_fmt(snapshot.egfr),
        potassium=_fmt(snapshot.potassium),
    )
    return template.format_map(values)


def relevant_labs(snapshot: PatientSnapshot) -> tuple[LabValue, ...]:
    labs = (
        ("eGFR", snapshot.egfr, "mL/min/1.73m2"),
        ("Potassium", snapshot.potassium, "mEq/L"),
        ("BNP", snapshot.bnp, "pg/mL"),
        ("NT-proBNP", snapshot.nt_pro_bnp, "pg/mL"),
    )
    return tuple(
        LabValue(name=name, value=value, unit=unit, measured_on=snapshot.labs_date)
        for name, value, unit in labs
        if value is not None
    )


def build_pa_form(
    pillar: Pillar,
    snapshot: PatientSnapshot,
    audit: AuditResult,
    generated_at: datetime,
    ruleset: Ruleset | None = None,
) -> PAFormData:
    """
    Build PA form data for one pillar.

    Args:
        pillar: Pillar being requested.
        snapshot: Patient the audit was run on.
        audit: Audit result supplying the pillar's dose tier and blockers.
        generated_at: Timestamp recorded on the form and used in its id.
        ruleset: Source of templates. Defaults to the configured ruleset.

    Raises:
        TemplateNotFoundError: No PA template exists for the pillar.
    """
    ruleset = ruleset or get_default_ruleset()
    template = ruleset.template_for(pillar)

    ef_category = classify_ef(snapshot.ef, ruleset.domains.hf)
    code, description = ICD10_BY_EF[ef_category]

    medication = snapshot.medication_for(pillar)
    drug = medication.name if medication and medication.name else template.default_drug

    result = audit.result_for(pillar)
    tier = result.dose_tier if result else DoseTier.NOT_PRESCRIBED
    requested_tier = DoseTier.LOW if tier is DoseTier.NOT_PRESCRIBED else tier

    ctx = snapshot.resolution_context
    trials = ctx.trials_for(pillar) if ctx else ()

    step_therapy = result is not None and BlockerCode.STEP_THERAPY_REQUIRED in result.blockers
    tolerated = any(t.outcome is TrialOutcome.TOLERATED for t in trials)
    exception_text = template.step_therapy_exception_template if step_therapy or tolerated else None

    form = PAFormData(
        id=f"pa-{pillar.value}-{generated_at:%Y%m%d%H%M%S}",
        generated_at=generated_at,
        requested_drug=drug,
        requested_pillar=pillar,
        requested_dose_tier=requested_tier,
        diagnosis_code=code,
        diagnosis_description=description,
        ef_percent=snapshot.ef,
        nyha_class=snapshot.nyha_class,
        clinical_justification=fill_template(template.justification_template, snapshot),
        guideline_reference=template.guideline_reference,
        guideline_class=template.guideline_class,
        guideline_doi=template.guideline_doi,
        step_therapy_exception=exception_text,
        prior_trials=trials,
        relevant_labs=relevant_labs(snapshot),
        insurance=(ctx.insurance if ctx and ctx.insurance else InsuranceInfo()),
        prescriber=(ctx.prescriber if ctx and ctx.prescriber else PrescriberInfo()),
    )
    logger.info("Generated PA form %s (%s)", form.id, code)
    return form
