"""
Pillar Evaluator

Combines the current medication with detector output into one of five
statuses. Precedence:

1. Active medication  -> ON_TARGET at HIGH tier, else UNDERDOSED
   (blockers are cleared once the patient is fully dosed)
2. Absolute contraindication present -> CONTRAINDICATED
3. Only data-availability blockers, UNKNOWN_LABS among them -> UNKNOWN
4. Otherwise -> MISSING

Missing-information prompts depend only on which data is absent or stale,
never on the status decided.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from gdmt.core.blockers import DATA_AVAILABILITY_CODES, findings_from
from gdmt.core.enums import BlockerCode, DoseTier, Pillar, PillarStatus
from gdmt.core.schemas import PatientSnapshot, PillarResult
from gdmt.engine.blockers import BlockerDetector, detect_blockers, stale_blockers
from gdmt.ruleset.loader import Ruleset

logger = logging.getLogger(__name__)

# (snapshot attribute, prompt shown when it is missing)
LabPrompts = tuple[tuple[str, str], ...]

DEFAULT_LAB_PROMPTS: LabPrompts = (
    ("egfr", "Obtain eGFR"),
    ("potassium", "Obtain K+"),
)

DEFAULT_ABSOLUTE_CODES: frozenset[BlockerCode] = frozenset({BlockerCode.ALLERGY})


def derive_missing_info(
    blockers: Iterable[BlockerCode],
    patient: PatientSnapshot,
    ruleset: Ruleset,
    lab_prompts: LabPrompts = DEFAULT_LAB_PROMPTS,
) -> list[str]:
    codes = set(blockers)
    info: list[str] = []
    if BlockerCode.UNKNOWN_LABS in codes:
        prompts = [text for attr, text in lab_prompts if getattr(patient, attr) is None]
        if not prompts and patient.labs_date is None:
            prompts = ["Record date of most recent lab panel"]
        info.extend(prompts)
    if BlockerCode.STALE_LABS in codes:
        info.append(
            f"Update lab values (last obtained >{ruleset.stale_data.labs_max_days} days ago)"
        )
    if BlockerCode.STALE_VITALS in codes:
        info.append(
            f"Update vital signs (last obtained >{ruleset.stale_data.vitals_max_days} days ago)"
        )
    return info


def resolve_status(
    dose_tier: DoseTier,
    is_active: bool,
    blockers: tuple[BlockerCode, ...],
    absolute_codes: frozenset[BlockerCode],
) -> PillarStatus:
    if is_active:
        return PillarStatus.ON_TARGET if dose_tier is DoseTier.HIGH else PillarStatus.UNDERDOSED
    codes = set(blockers)
    if codes & absolute_codes:
        return PillarStatus.CONTRAINDICATED
    if BlockerCode.UNKNOWN_LABS in codes and codes <= DATA_AVAILABILITY_CODES:
        return PillarStatus.UNKNOWN
    return PillarStatus.MISSING


def evaluate_pillar(
    pillar: Pillar,
    patient: PatientSnapshot,
    reference_date: date,
    ruleset: Ruleset,
    detector: BlockerDetector = detect_blockers,
    absolute_codes: frozenset[BlockerCode] = DEFAULT_ABSOLUTE_CODES,
    lab_prompts: LabPrompts = DEFAULT_LAB_PROMPTS,
) -> PillarResult:
    """
    Evaluate one pillar for one patient.

    Args:
        pillar: Therapy class.
        patient: Input snapshot.
        reference_date: Injected "today".
        ruleset: Thresholds and staleness windows.
        detector: Domain-specific blocker detector.
        absolute_codes: Codes that make an unprescribed pillar CONTRAINDICATED.
        lab_prompts: Missing-lab prompts for this domain.
    """
    active = patient.active_medication(pillar)
    is_initiation = active is None
    dose_tier = active.dose_tier if active else DoseTier.NOT_PRESCRIBED

    findings = detector(patient, pillar, is_initiation, reference_date, ruleset)
    # Stale codes are merged even if a domain detector left them out
    merged = findings_from([*findings.codes, *stale_blockers(patient, reference_date, ruleset)])
    blockers = () if dose_tier is DoseTier.HIGH else merged.codes

    status = resolve_status(dose_tier, active is not None, blockers, absolute_codes)
    missing_info = derive_missing_info(merged.codes, patient, ruleset, lab_prompts)

    logger.debug(
        "Pillar %s: status=%s tier=%s blockers=%s",
        pillar.value,
        status.value,
        dose_tier.value,
        [b.value for b in blockers],
    )

    return PillarResult(
        pillar=pillar,
        status=status,
        dose_tier=dose_tier,
        blockers=blockers,
        missing_info=tuple(missing_info),
        medication_name=active.name if active else None,
    )
