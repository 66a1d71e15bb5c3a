"""
Substitution Lookup

Same-pillar alternatives and assistance programs for a drug that an access
or cost blocker keeps out of reach. Both catalogues are static ruleset data.
"""

from __future__ import annotations

import logging

from gdmt.core.enums import BlockerCode, Pillar
from gdmt.ruleset.loader import (
    FORMULARY_RANK,
    AssistanceProgram,
    MedicationAlternative,
    Ruleset,
    get_default_ruleset,
)

logger = logging.getLogger(__name__)


def _is_current(alternative: MedicationAlternative, current: str) -> bool:
    return alternative.drug_name.lower() in current or alternative.generic_name.lower() in current


def find_alternatives(
    pillar: Pillar,
    current_drug: str,
    blocker_code: BlockerCode,
    ruleset: Ruleset | None = None,
) -> list[MedicationAlternative]:
    """
    Alternatives for the pillar, excluding the drug the patient is on.

    Args:
        pillar: Therapy class to substitute within.
        current_drug: Free-text name of the current or requested drug; any
            entry whose brand or generic name appears in it is dropped.
        blocker_code: Blocker that prompted the lookup.
        ruleset: Catalogue source; the default ruleset when omitted.

    Returns:
        Generics first, then by formulary likelihood (high, medium, low).
        Catalogue order is kept within equal rank.
    """
    ruleset = ruleset or get_default_ruleset()
    current = current_drug.lower()
    found = sorted(
        (a for a in ruleset.alternatives_for(pillar) if not _is_current(a, current)),
        key=lambda a: (not a.is_generic, FORMULARY_RANK[a.formulary_likelihood]),
    )
    logger.debug(
        "Alternatives for %s (%s, current=%r): %s",
        pillar.value,
        blocker_code.value,
        current_drug,
        [a.drug_name for a in found],
    )
    return found


def _covers(program: AssistanceProgram, drug: str, keywords: tuple[str, ...]) -> bool:
    for covered in program.drugs_covered:
        name = covered.lower()
        if drug and (drug in name or name in drug):
            return True
        if any(kw in name for kw in keywords):
            return True
    return False


def find_assistance_programs(
    pillar: Pillar,
    drug_name: str,
    ruleset: Ruleset | None = None,
) -> list[AssistanceProgram]:
    """Programs covering the drug by name or any of the pillar's keywords, in catalogue order."""
    ruleset = ruleset or get_default_ruleset()
    drug = drug_name.strip().lower()
    keywords = ruleset.assistance_keywords.get(pillar, ())
    return [p for p in ruleset.assistance_programs if _covers(p, drug, keywords)]
