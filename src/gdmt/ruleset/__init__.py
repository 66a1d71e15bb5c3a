"""
GDMT Ruleset

Versioned Guideline-as-Code document: rule entries, per-pillar thresholds,
staleness windows and the static data the engine and resolution layer read.
"""

from gdmt.ruleset.loader import (
    AssistanceProgram,
    BarrierGuidance,
    MedicationAlternative,
    PATemplate,
    PillarThresholds,
    RuleEntry,
    Ruleset,
    StaleDataThresholds,
    get_default_ruleset,
    load_ruleset,
    reset_ruleset,
)

__all__ = [
    "AssistanceProgram",
    "BarrierGuidance",
    "MedicationAlternative",
    "PATemplate",
    "PillarThresholds",
    "RuleEntry",
    "Ruleset",
    "StaleDataThresholds",
    "get_default_ruleset",
    "load_ruleset",
    "reset_ruleset",
]
