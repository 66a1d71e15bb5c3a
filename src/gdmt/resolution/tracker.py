"""
Resolution State Machine

Drives a ResolutionRecord through its lifecycle:

    not_started -> auto_preparing -> clinician_review -> submitted
        -> in_progress -> approved | denied -> completed

with `abandoned` reachable from clinician_review and denied, and
`completed` reachable directly from auto_preparing and approved.

Every advance returns a new record wrapped in Accepted, or the untouched
record wrapped in Rejected with the reason. Invalid events are never
errors; a stale or duplicate UI event must not corrupt workflow state.
Terminal states accept nothing.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Union

from gdmt.core.enums import ResolutionEventType, ResolutionStatus, StepStatus
from gdmt.core.schemas import (
    GeneratedDocument,
    ResolutionEvent,
    ResolutionPathway,
    ResolutionRecord,
    StepProgress,
)

logger = logging.getLogger(__name__)

S = ResolutionStatus
E = ResolutionEventType

# Exhaustive: every status has an entry, terminal states allow nothing
TRANSITIONS: dict[ResolutionStatus, frozenset[ResolutionStatus]] = {
    S.NOT_STARTED: frozenset({S.AUTO_PREPARING}),
    S.AUTO_PREPARING: frozenset({S.CLINICIAN_REVIEW, S.COMPLETED}),
    S.CLINICIAN_REVIEW: frozenset({S.SUBMITTED, S.COMPLETED, S.ABANDONED}),
    S.SUBMITTED: frozenset({S.IN_PROGRESS, S.APPROVED, S.DENIED}),
    S.IN_PROGRESS: frozenset({S.APPROVED, S.DENIED, S.COMPLETED}),
    S.APPROVED: frozenset({S.COMPLETED}),
    S.DENIED: frozenset({S.NOT_STARTED, S.ABANDONED}),
    S.COMPLETED: frozenset(),
    S.ABANDONED: frozenset(),
}

# Fixed targets; auto_step_complete and clinician_approve depend on state
EVENT_TARGETS: dict[ResolutionEventType, ResolutionStatus] = {
    E.START: S.AUTO_PREPARING,
    E.CLINICIAN_REJECT: S.ABANDONED,
    E.SUBMIT: S.IN_PROGRESS,
    E.EXTERNAL_APPROVE: S.APPROVED,
    E.EXTERNAL_DENY: S.DENIED,
    E.COMPLETE: S.COMPLETED,
    E.ABANDON: S.ABANDONED,
}


def can_transition(current: ResolutionStatus, target: ResolutionStatus) -> bool:
    return target in TRANSITIONS[current]


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class Accepted:
    """The event was valid; `record` is the new state."""

    record: ResolutionRecord
    accepted: ClassVar[bool] = True


@dataclass(frozen=True)
class Rejected:
    """The event was invalid; `record` is the unchanged input."""

    record: ResolutionRecord
    reason: str
    accepted: ClassVar[bool] = False


AdvanceResult = Union[Accepted, Rejected]


@dataclass(frozen=True)
class ResolutionProgress:
    completed_steps: int
    total_steps: int
    percent_complete: int


# =============================================================================
# STEP HELPERS
# =============================================================================


def _mark_step(
    steps: tuple[StepProgress, ...], event: ResolutionEvent
) -> tuple[StepProgress, ...]:
    if event.step_id is None:
        return steps
    return tuple(
        s.model_copy(
            update={
                "status": StepStatus.COMPLETED,
                "completed_at": event.timestamp,
                "auto_completed": event.type is E.AUTO_STEP_COMPLETE,
            }
        )
        if s.step_id == event.step_id
        else s
        for s in steps
    )


def next_pending_step(record: ResolutionRecord) -> StepProgress | None:
    return next((s for s in record.steps if s.status is StepStatus.PENDING), None)


def _auto_step_target(current: ResolutionStatus, steps: tuple[StepProgress, ...]) -> ResolutionStatus:
    """
    While preparing, stay until the next pending step needs a clinician;
    finishing the last step completes the record.
    """
    if current is not S.AUTO_PREPARING:
        return S.CLINICIAN_REVIEW
    pending = next((s for s in steps if s.status is StepStatus.PENDING), None)
    if pending is None:
        return S.COMPLETED
    if pending.is_automated:
        return S.AUTO_PREPARING
    return S.CLINICIAN_REVIEW


def _target_status(
    current: ResolutionStatus, event: ResolutionEvent, steps: tuple[StepProgress, ...]
) -> ResolutionStatus:
    if event.type is E.AUTO_STEP_COMPLETE:
        return _auto_step_target(current, steps)
    if event.type is E.CLINICIAN_APPROVE:
        return S.SUBMITTED if current is S.CLINICIAN_REVIEW else S.COMPLETED
    return EVENT_TARGETS[event.type]


# =============================================================================
# OPERATIONS
# =============================================================================


def create_resolution_record(pathway: ResolutionPathway, started_at: datetime) -> ResolutionRecord:
    """A not_started record with one pending entry per pathway step."""
    return ResolutionRecord(
        id=f"res-{pathway.id}-{started_at:%Y%m%d%H%M%S}",
        pathway_id=pathway.id,
        blocker_code=pathway.blocker_code,
        pillar=pathway.pillar,
        steps=tuple(
            StepProgress(
                step_id=step.id,
                is_automated=step.is_automated,
                requires_clinician_input=step.requires_clinician_input,
            )
            for step in sorted(pathway.steps, key=lambda s: s.order)
        ),
        started_at=started_at,
        updated_at=started_at,
    )


def advance(record: ResolutionRecord, event: ResolutionEvent) -> AdvanceResult:
    """
    Apply one event to a record.

    Args:
        record: Current record; never modified.
        event: Event to apply. A step_id marks that step completed.

    Returns:
        Accepted with the new record, or Rejected with the input record
        and a reason.
    """
    if record.status.is_terminal:
        return Rejected(record, f"{record.status.value} is terminal")

    if event.step_id is not None and record.step(event.step_id) is None:
        return Rejected(record, f"unknown step: {event.step_id}")

    steps = _mark_step(record.steps, event)
    target = _target_status(record.status, event, steps)

    # Self-transition only for step bookkeeping while preparing or in review
    staying = target is record.status and event.type is E.AUTO_STEP_COMPLETE
    if not staying and not can_transition(record.status, target):
        return Rejected(
            record,
            f"{event.type.value} not allowed from {record.status.value}",
        )

    logger.debug(
        "Resolution %s: %s -> %s (%s)",
        record.id,
        record.status.value,
        target.value,
        event.type.value,
    )
    return Accepted(
        record.model_copy(
            update={
                "status": target,
                "steps": steps,
                "events": record.events + (event,),
                "updated_at": event.timestamp,
                "completed_at": event.timestamp if target is S.COMPLETED else record.completed_at,
            }
        )
    )


def advance_resolution(record: ResolutionRecord, event: ResolutionEvent) -> ResolutionRecord:
    """advance() unwrapped: the new record, or the same record when rejected."""
    return advance(record, event).record


def auto_drive(record: ResolutionRecord, timestamp: datetime) -> ResolutionRecord:
    """
    Complete consecutive automated steps while preparing.

    Stopping at a clinician step moves the record into clinician_review;
    running out of steps completes it.
    """
    while record.status is S.AUTO_PREPARING:
        pending = next_pending_step(record)
        step_id = pending.step_id if pending is not None and pending.is_automated else None
        result = advance(
            record,
            ResolutionEvent(type=E.AUTO_STEP_COMPLETE, timestamp=timestamp, step_id=step_id),
        )
        if not result.accepted:
            break
        record = result.record
    return record


def start_resolution(pathway: ResolutionPathway, timestamp: datetime) -> ResolutionRecord:
    """Create, start and auto-drive a record for a pathway."""
    record = create_resolution_record(pathway, timestamp)
    record = advance_resolution(record, ResolutionEvent(type=E.START, timestamp=timestamp))
    record = auto_drive(record, timestamp)
    logger.info(
        "Started resolution %s for %s/%s: status=%s",
        record.id,
        pathway.pillar.value,
        pathway.blocker_code.value,
        record.status.value,
    )
    return record


def attach_document(record: ResolutionRecord, document: GeneratedDocument) -> ResolutionRecord:
    return record.model_copy(
        update={
            "documents": record.documents + (document,),
            "updated_at": document.generated_at,
        }
    )


def calculate_progress(record: ResolutionRecord) -> ResolutionProgress:
    total = len(record.steps)
    if total == 0:
        return ResolutionProgress(0, 0, 0)
    done = sum(1 for s in record.steps if s.status in (StepStatus.COMPLETED, StepStatus.SKIPPED))
    return ResolutionProgress(done, total, math.floor(100 * done / total + 0.5))


def is_resolution_active(record: ResolutionRecord) -> bool:
    return not record.status.is_terminal
