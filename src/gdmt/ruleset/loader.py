"""
Ruleset Loader

Parses and validates the ruleset JSON into frozen models. The engine treats
the result as an opaque, version-pinned lookup table: it reads numeric
thresholds and pillar/category keys, never rule prose.

Every evaluation function accepts a Ruleset argument so two versions can be
compared side by side; get_default_ruleset() is only the convenience used
at the outer entry points.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from importlib import resources
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from gdmt.config import get_settings
from gdmt.core.enums import BlockerCode, Pillar
from gdmt.core.exceptions import RulesetError, TemplateNotFoundError

logger = logging.getLogger(__name__)

BUNDLED_RULESET = "ruleset_v2.json"


# =============================================================================
# THRESHOLDS AND RULES
# =============================================================================


class PillarThresholds(BaseModel):
    """Numeric limits for one pillar. None means the check does not apply."""

    model_config = ConfigDict(frozen=True)

    bp_low_sbp: float | None = None
    hr_low: float | None = None
    k_high: float | None = None
    egfr_init: float | None = None
    egfr_cont: float | None = None

    @property
    def depends_on_egfr(self) -> bool:
        return self.egfr_init is not None or self.egfr_cont is not None

    @property
    def depends_on_potassium(self) -> bool:
        return self.k_high is not None


class RuleConditions(BaseModel):
    model_config = ConfigDict(frozen=True)

    ef_max: float | None = None
    ef_min: float | None = None
    nyha_min: int | None = None
    requires_current_acei_arb: bool = False
    requires_dm_type2: bool = False
    note: str | None = None


class RuleEntry(BaseModel):
    """One codified guideline recommendation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rule_id: str
    guideline_id: str
    pillar: Pillar
    categories: tuple[str, ...] = Field(..., min_length=1)
    description: str
    recommendation_class: Literal["I", "IIa", "IIb", "III"] = Field(..., alias="class")
    level_of_evidence: Literal["A", "B-R", "B-NR", "C-LD", "C-EO"] = Field(..., alias="loe")
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    thresholds: PillarThresholds = Field(default_factory=PillarThresholds)
    source_doi: str

    @property
    def citation(self) -> str:
        return f"{self.guideline_id} (Class {self.recommendation_class}, LOE {self.level_of_evidence})"


class StaleDataThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    labs_max_days: int = Field(default=14, ge=0)
    vitals_max_days: int = Field(default=30, ge=0)


class PerioperativeHold(BaseModel):
    """Pillars held around surgery, and the inclusive window in days."""

    model_config = ConfigDict(frozen=True)

    pillars: tuple[Pillar, ...] = Field(default_factory=tuple)
    window_days: int = Field(default=30, ge=0)


# =============================================================================
# DOMAIN CONSTANTS
# =============================================================================


class CompositeAllotments(BaseModel):
    """Flat point blocks of the single-condition (HFpEF) score."""

    model_config = ConfigDict(frozen=True)

    sglt2i_points: int = 40
    bp_points: int = 20
    bp_target_sbp: float = 130
    comorbidity_points: int = 20


class HFConstants(BaseModel):
    model_config = ConfigDict(frozen=True)

    hfref_max_ef: float = 40
    hfmref_max_ef: float = 49
    composite: CompositeAllotments = Field(default_factory=CompositeAllotments)


class DMConstants(BaseModel):
    model_config = ConfigDict(frozen=True)

    hba1c_goal: float = 7.0
    insulin_hba1c: float = 10.0
    glp1_bmi: float = 30.0
    sglt2i_egfr_min: float = 20
    sglt2i_egfr_max: float = 45


class HTNConstants(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_sbp: float = 130
    target_dbp: float = 80
    stage1_sbp: float = 140
    stage1_dbp: float = 90
    stage2_sbp: float = 160
    stage2_dbp: float = 100
    resistant_min_agents: int = 3
    bb_compelling_hr: float = 100
    bb_compelling_ef: float = 40


class DomainConstants(BaseModel):
    model_config = ConfigDict(frozen=True)

    hf: HFConstants = Field(default_factory=HFConstants)
    dm: DMConstants = Field(default_factory=DMConstants)
    htn: HTNConstants = Field(default_factory=HTNConstants)


# =============================================================================
# STATIC GUIDANCE AND TEMPLATES
# =============================================================================


class BarrierGuidance(BaseModel):
    """Evidence and cautions for a specific (pillar, blocker) pair."""

    model_config = ConfigDict(frozen=True)

    pillar: Pillar
    blocker_code: BlockerCode
    evidence_source: str
    when_not_to: tuple[str, ...] = Field(default_factory=tuple)


class PATemplate(BaseModel):
    """Prior-authorization text for one pillar. Placeholders use {name}."""

    model_config = ConfigDict(frozen=True)

    drug_class: str
    default_drug: str
    justification_template: str
    guideline_reference: str
    guideline_class: str
    guideline_doi: str
    step_therapy_exception_template: str


FormularyLikelihood = Literal["high", "medium", "low"]

FORMULARY_RANK: dict[str, int] = {"high": 0, "medium": 1, "low": 2}


class MedicationAlternative(BaseModel):
    """Same-pillar substitute offered when access or cost blocks a drug."""

    model_config = ConfigDict(frozen=True)

    drug_name: str = Field(..., min_length=1)
    generic_name: str = Field(..., min_length=1)
    pillar: Pillar
    is_generic: bool
    estimated_monthly_cost: str
    formulary_likelihood: FormularyLikelihood
    clinical_equivalence: Literal["equivalent", "similar", "different_mechanism"]
    guideline_support: str
    switch_considerations: tuple[str, ...] = Field(..., min_length=1)


class AssistanceProgram(BaseModel):
    """Manufacturer, foundation or discount program covering named drugs."""

    model_config = ConfigDict(frozen=True)

    id: str
    program_name: str
    manufacturer: str
    drugs_covered: tuple[str, ...] = Field(..., min_length=1)
    eligibility_criteria: tuple[str, ...] = Field(..., min_length=1)
    estimated_savings: str
    program_type: Literal["pap", "copay_card", "foundation", "pharmacy_discount"]


# =============================================================================
# RULESET
# =============================================================================


class Ruleset(BaseModel):
    """
    Complete, validated ruleset.

    Invariants:
    - Every pillar named by a rule has an entry in pillar_thresholds
    - Initiation eGFR floor is never below the continuation floor
    """

    model_config = ConfigDict(frozen=True)

    version: str
    name: str = ""
    effective_date: date | None = None
    stale_data: StaleDataThresholds = Field(default_factory=StaleDataThresholds)
    perioperative_hold: PerioperativeHold = Field(default_factory=PerioperativeHold)
    pillar_thresholds: dict[Pillar, PillarThresholds]
    domains: DomainConstants = Field(default_factory=DomainConstants)
    rules: tuple[RuleEntry, ...] = Field(default_factory=tuple)
    barrier_guidance: tuple[BarrierGuidance, ...] = Field(default_factory=tuple)
    pa_templates: dict[Pillar, PATemplate] = Field(default_factory=dict)
    alternatives: tuple[MedicationAlternative, ...] = Field(default_factory=tuple)
    assistance_programs: tuple[AssistanceProgram, ...] = Field(default_factory=tuple)
    # Pillar -> lower-case drug keywords used to match assistance programs
    assistance_keywords: dict[Pillar, tuple[str, ...]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_thresholds(self) -> Ruleset:
        missing = sorted({r.pillar.value for r in self.rules} - {p.value for p in self.pillar_thresholds})
        if missing:
            raise ValueError(f"rules reference pillars without thresholds: {missing}")
        for pillar, t in self.pillar_thresholds.items():
            if t.egfr_init is not None and t.egfr_cont is not None and t.egfr_init < t.egfr_cont:
                raise ValueError(f"{pillar.value}: egfr_init below egfr_cont")
        return self

    def thresholds_for(self, pillar: Pillar) -> PillarThresholds:
        """Thresholds for a pillar; a pillar without an entry has no numeric checks."""
        return self.pillar_thresholds.get(pillar, PillarThresholds())

    def egfr_threshold(self, pillar: Pillar, is_initiation: bool) -> float | None:
        t = self.thresholds_for(pillar)
        return t.egfr_init if is_initiation else t.egfr_cont

    def rules_for(self, pillar: Pillar, category: str | None = None) -> tuple[RuleEntry, ...]:
        return tuple(
            r
            for r in self.rules
            if r.pillar == pillar and (category is None or category in r.categories)
        )

    def pillars_for_category(self, category: str, candidates: tuple[Pillar, ...]) -> tuple[Pillar, ...]:
        """Candidates (kept in order) that have at least one rule for the category."""
        return tuple(p for p in candidates if self.rules_for(p, category))

    def guidance_for(self, pillar: Pillar, blockers: tuple[BlockerCode, ...]) -> BarrierGuidance | None:
        """Guidance for the first blocker (in the given order) that has any."""
        for code in blockers:
            for g in self.barrier_guidance:
                if g.pillar == pillar and g.blocker_code == code:
                    return g
        return None

    def alternatives_for(self, pillar: Pillar) -> tuple[MedicationAlternative, ...]:
        return tuple(a for a in self.alternatives if a.pillar == pillar)

    def template_for(self, pillar: Pillar) -> PATemplate:
        template = self.pa_templates.get(pillar)
        if template is None:
            raise TemplateNotFoundError(pillar.value)
        return template


def load_ruleset(path: str | Path | None = None) -> Ruleset:
    """
    Load and validate a ruleset.

    Args:
        path: JSON file to load. None loads the ruleset bundled with the package.

    Raises:
        RulesetError: file missing, not JSON, or failing validation.
    """
    source = str(path) if path is not None else f"gdmt.ruleset:data/{BUNDLED_RULESET}"
    try:
        if path is None:
            text = (
                resources.files("gdmt.ruleset")
                .joinpath("data", BUNDLED_RULESET)
                .read_text(encoding="utf-8")
            )
        else:
            text = Path(path).read_text(encoding="utf-8")
        data = json.loads(text)
    except FileNotFoundError as e:
        raise RulesetError("Ruleset file not found", path=source) from e
    except OSError as e:
        raise RulesetError(f"Ruleset file unreadable: {e}", path=source) from e
    except json.JSONDecodeError as e:
        raise RulesetError(f"Ruleset is not valid JSON: {e}", path=source) from e

    try:
        ruleset = Ruleset.model_validate(data)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise RulesetError("Ruleset failed validation", path=source, errors=errors) from e

    logger.info("Loaded ruleset %s (%d rules) from %s", ruleset.version, len(ruleset.rules), source)
    return ruleset


# Singleton pattern for the configured ruleset
_ruleset: Ruleset | None = None


def get_default_ruleset() -> Ruleset:
    """Ruleset named by GDMT_RULESET_PATH, or the bundled one (cached)."""
    global _ruleset
    if _ruleset is None:
        _ruleset = load_ruleset(get_settings().ruleset.ruleset_path)
    return _ruleset


def reset_ruleset() -> None:
    """Drop the cached ruleset (useful for testing)."""
    global _ruleset
    _ruleset = None
