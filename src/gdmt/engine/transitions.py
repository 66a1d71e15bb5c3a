"""
Care-Transition Gap Detection

Walks a patient timeline in date order and reports every pillar that was
active in one entry and no longer active in the next (typically a
medication started in hospital and not continued after discharge).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from gdmt.core.schemas import PatientHistory, PatientSnapshot, TimelineEntry, TransitionGap

logger = logging.getLogger(__name__)


def detect_transition_gaps(entries: Iterable[TimelineEntry]) -> list[TransitionGap]:
    ordered = sorted(entries, key=lambda e: e.entry_date)
    gaps: list[TransitionGap] = []
    for before, after in zip(ordered, ordered[1:]):
        still_active = set(after.snapshot.active_pillars())
        for pillar in before.snapshot.active_pillars():
            if pillar not in still_active:
                gaps.append(
                    TransitionGap(
                        pillar=pillar,
                        last_present_date=before.entry_date,
                        lost_at_date=after.entry_date,
                        from_label=before.label,
                        to_label=after.label,
                    )
                )
    if gaps:
        logger.debug("Transition gaps: %s", [g.pillar.value for g in gaps])
    return gaps


def apply_transition_gaps(snapshot: PatientSnapshot, gaps: Iterable[TransitionGap]) -> PatientSnapshot:
    """
    Return a copy of the snapshot whose history lists the lost pillars.

    Pillars that are active again in the snapshot are not marked.
    """
    active = set(snapshot.active_pillars())
    lost = list(snapshot.history.lost_after_discharge)
    for gap in gaps:
        if gap.pillar not in active and gap.pillar not in lost:
            lost.append(gap.pillar)
    history: PatientHistory = snapshot.history.model_copy(
        update={"lost_after_discharge": tuple(lost)}
    )
    return snapshot.model_copy(update={"history": history})
