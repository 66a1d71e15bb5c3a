"""
Domain Descriptor and Shared Audit Pipeline

A domain is data: its pillar list, a classifier, an applicability
predicate, a blocker detector, the codes it treats as absolute
contraindications, its lab prompts, its question table and its scorer.
run_domain_audit() drives every domain through the same steps:

    classify -> select pillars -> evaluate each pillar -> score -> assemble
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from gdmt.core.enums import BlockerCode, DomainId, EFCategory, Pillar
from gdmt.core.schemas import AuditResult, GDMTScore, PatientSnapshot, PillarResult
from gdmt.engine.blockers import BlockerDetector
from gdmt.engine.pillar import LabPrompts, evaluate_pillar
from gdmt.engine.scoring import calculate_linear_score
from gdmt.ruleset.loader import Ruleset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    """Result of mapping a patient to a domain category."""

    category: str
    label: str
    ef_category: EFCategory | None = None
    missing_info: tuple[str, ...] = ()


Classifier = Callable[[PatientSnapshot, Ruleset], Classification]
ApplicabilityPredicate = Callable[[PatientSnapshot, Classification, Ruleset], tuple[Pillar, ...]]
Scorer = Callable[[Sequence[PillarResult], PatientSnapshot, Classification, Ruleset], GDMTScore]


def linear_scorer(
    results: Sequence[PillarResult],
    patient: PatientSnapshot,
    classification: Classification,
    ruleset: Ruleset,
) -> GDMTScore:
    return calculate_linear_score(results)


@dataclass(frozen=True)
class DomainDescriptor:
    """Everything that distinguishes one disease domain from another."""

    domain_id: DomainId
    name: str
    pillars: tuple[Pillar, ...]
    classify: Classifier
    applicable_pillars: ApplicabilityPredicate
    detector: BlockerDetector
    absolute_codes: frozenset[BlockerCode]
    lab_prompts: LabPrompts
    # Blocker -> questions; "{pillar}" is replaced by the pillar label
    questions: Mapping[BlockerCode, tuple[str, ...]] = field(default_factory=dict)
    scorer: Scorer = linear_scorer
    score_label: Callable[[Classification], str] = lambda c: "GDMT Score"


def next_best_questions(
    results: Sequence[PillarResult],
    questions: Mapping[BlockerCode, tuple[str, ...]],
) -> list[str]:
    """Questions for every blocker present, first occurrence wins."""
    out: list[str] = []
    for result in results:
        for blocker in result.blockers:
            for template in questions.get(blocker, ()):
                q = template.format(pillar=result.pillar.label)
                if q not in out:
                    out.append(q)
    return out


def run_domain_audit(
    domain: DomainDescriptor,
    patient: PatientSnapshot,
    reference_date: date,
    timestamp: datetime,
    ruleset: Ruleset,
) -> AuditResult:
    """
    Audit a patient against one domain.

    Args:
        domain: Domain descriptor.
        patient: Input snapshot.
        reference_date: Injected "today" for staleness and surgery windows.
        timestamp: Generation time recorded on the result.
        ruleset: Ruleset to evaluate against.
    """
    classification = domain.classify(patient, ruleset)
    pillars = domain.applicable_pillars(patient, classification, ruleset)

    results = [
        evaluate_pillar(
            pillar,
            patient,
            reference_date,
            ruleset,
            detector=domain.detector,
            absolute_codes=domain.absolute_codes,
            lab_prompts=domain.lab_prompts,
        )
        for pillar in pillars
    ]

    score = domain.scorer(results, patient, classification, ruleset)

    missing_info = list(classification.missing_info)
    for r in results:
        missing_info.extend(r.missing_info)

    logger.debug(
        "Audit %s: category=%s pillars=%s score=%d/%d",
        domain.domain_id.value,
        classification.category,
        [p.value for p in pillars],
        score.score,
        score.max_possible,
    )

    return AuditResult(
        domain_id=domain.domain_id,
        category=classification.category,
        category_label=classification.label,
        ef_category=classification.ef_category,
        score_label=domain.score_label(classification),
        pillar_results=tuple(results),
        score=score,
        missing_info=tuple(missing_info),
        next_best_questions=tuple(next_best_questions(results, domain.questions)),
        reference_date=reference_date,
        timestamp=timestamp,
    )
