"""
Score Calculators

Linear scorer: sum of dose-tier points over the pillars evaluated, with
CONTRAINDICATED pillars removed from both the total and the 25-per-pillar
ceiling.

Composite scorer: flat point blocks for independent criteria (SGLT2i
therapy scaled by tier, blood pressure below target, diabetes comorbidity
addressed). The ceiling is the sum of the blocks that apply to the patient,
so both scorers normalize onto the same 0-100 basis.

Both run only after every pillar of the domain has been evaluated.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from gdmt.core.enums import MAX_PILLAR_POINTS, Pillar, PillarStatus
from gdmt.core.schemas import GDMTScore, PatientSnapshot, PillarResult, normalize_score
from gdmt.ruleset.loader import CompositeAllotments


def calculate_linear_score(results: Sequence[PillarResult]) -> GDMTScore:
    """
    Linear multi-pillar score.

    max_possible = 25 x (pillars - contraindicated pillars); with every
    pillar excluded the score is 0/0, normalized 0.
    """
    excluded = tuple(r.pillar for r in results if r.status is PillarStatus.CONTRAINDICATED)
    included = [r for r in results if r.status is not PillarStatus.CONTRAINDICATED]

    score = sum(r.dose_tier.points for r in included)
    max_possible = MAX_PILLAR_POINTS * len(included)

    return GDMTScore(
        score=score,
        max_possible=max_possible,
        normalized=normalize_score(score, max_possible),
        excluded_pillars=excluded,
        is_incomplete=any(r.status is PillarStatus.UNKNOWN for r in included),
    )


def _scaled_points(points: int, ceiling: int) -> int:
    return int(math.floor(points / MAX_PILLAR_POINTS * ceiling + 0.5))


def calculate_composite_score(
    results: Sequence[PillarResult],
    patient: PatientSnapshot,
    allotments: CompositeAllotments,
    therapy_pillar: Pillar = Pillar.SGLT2I,
) -> GDMTScore:
    """
    Single-condition composite score.

    Criteria:
        therapy   - therapy_pillar tier scaled onto sglt2i_points; excluded
                    when the pillar is CONTRAINDICATED
        bp        - sbp below bp_target_sbp earns bp_points
        comorbid  - type 2 diabetes present: comorbidity_points when the
                    therapy pillar is ON_TARGET or UNDERDOSED (SGLT2i treats
                    both); not part of the ceiling without diabetes
    """
    therapy = next((r for r in results if r.pillar == therapy_pillar), None)
    score = 0
    max_possible = 0
    excluded: tuple[Pillar, ...] = ()
    therapy_active = therapy is not None and therapy.status in (
        PillarStatus.ON_TARGET,
        PillarStatus.UNDERDOSED,
    )

    if therapy is not None and therapy.status is PillarStatus.CONTRAINDICATED:
        excluded = (therapy.pillar,)
    elif therapy is not None:
        max_possible += allotments.sglt2i_points
        if therapy_active:
            score += _scaled_points(therapy.dose_tier.points, allotments.sglt2i_points)

    max_possible += allotments.bp_points
    if patient.sbp < allotments.bp_target_sbp:
        score += allotments.bp_points

    if patient.dm_type == "type2":
        max_possible += allotments.comorbidity_points
        if therapy_active:
            score += allotments.comorbidity_points

    return GDMTScore(
        score=score,
        max_possible=max_possible,
        normalized=normalize_score(score, max_possible),
        excluded_pillars=excluded,
        is_incomplete=therapy is not None and therapy.status is PillarStatus.UNKNOWN,
    )
