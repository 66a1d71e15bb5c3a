"""
GDMT Resolution

Remediation pathways for access, transition and cost blockers, the state
machine that tracks them, prior-authorization form data and the
substitution lookup (alternatives and assistance programs).
"""

from gdmt.resolution.alternatives import find_alternatives, find_assistance_programs
from gdmt.resolution.pa_form import build_pa_form
from gdmt.resolution.pathways import (
    PathwayRegistry,
    default_pathway_registry,
    has_resolvable_blockers,
    is_resolvable_blocker,
    pathways_for_pillar,
    select_resolution_pathways,
)
from gdmt.resolution.tracker import (
    Accepted,
    Rejected,
    ResolutionProgress,
    advance,
    advance_resolution,
    attach_document,
    auto_drive,
    calculate_progress,
    create_resolution_record,
    is_resolution_active,
    start_resolution,
)

__all__ = [
    "Accepted",
    "PathwayRegistry",
    "Rejected",
    "ResolutionProgress",
    "advance",
    "advance_resolution",
    "attach_document",
    "auto_drive",
    "build_pa_form",
    "calculate_progress",
    "create_resolution_record",
    "default_pathway_registry",
    "find_alternatives",
    "find_assistance_programs",
    "has_resolvable_blockers",
    "is_resolvable_blocker",
    "pathways_for_pillar",
    "select_resolution_pathways",
    "start_resolution",
]
