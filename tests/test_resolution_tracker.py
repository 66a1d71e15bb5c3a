"""
Tests for the resolution state machine.
"""

from datetime import timedelta

import pytest

from gdmt.core.enums import (
    AutomationLevel,
    BlockerCode,
    DocumentType,
    PathwayType,
    Pillar,
    ResolutionEventType,
    ResolutionStatus,
    StepStatus,
    Urgency,
)
from gdmt.core.schemas import (
    GeneratedDocument,
    ResolutionEvent,
    ResolutionPathway,
    ResolutionStep,
)
from gdmt.resolution.pathways import select_resolution_pathways
from gdmt.resolution.tracker import (
    TRANSITIONS,
    Accepted,
    Rejected,
    advance,
    advance_resolution,
    attach_document,
    auto_drive,
    calculate_progress,
    can_transition,
    create_resolution_record,
    is_resolution_active,
    start_resolution,
)

E = ResolutionEventType
S = ResolutionStatus


@pytest.fixture
def appeal(make_patient):
    """PA appeal: automated, clinician, automated."""
    pathways = select_resolution_pathways(BlockerCode.PA_DENIED, Pillar.ARNI_ACEI_ARB, make_patient())
    return next(p for p in pathways if p.id.endswith("-appeal"))


@pytest.fixture
def tracking(make_patient):
    """PA tracking: every step automated."""
    pathways = select_resolution_pathways(BlockerCode.PA_PENDING, Pillar.MRA, make_patient())
    return next(p for p in pathways if p.id.endswith("-track"))


def event(type_, timestamp, step_id=None):
    return ResolutionEvent(type=type_, timestamp=timestamp, step_id=step_id)


def custom_pathway(*automated: bool) -> ResolutionPathway:
    """Injected pathway with the given automation pattern, one step per flag."""
    return ResolutionPathway(
        id="MRA-custom",
        blocker_code=BlockerCode.FORMULARY_EXCLUDED,
        pillar=Pillar.MRA,
        type=PathwayType.FORMULARY_EXCEPTION,
        title="Custom",
        description="Site-specific pathway",
        urgency=Urgency.WITHIN_VISIT,
        estimated_time="1 minute",
        automation_level=AutomationLevel.PARTIAL,
        steps=tuple(
            ResolutionStep(
                id=f"c{i}",
                order=i,
                title=f"Step {i}",
                description="",
                is_automated=auto,
                requires_clinician_input=not auto,
            )
            for i, auto in enumerate(automated, start=1)
        ),
    )


class TestTransitionTable:
    def test_every_status_has_entry(self) -> None:
        assert set(TRANSITIONS) == set(ResolutionStatus)

    def test_terminal_states_allow_nothing(self) -> None:
        assert TRANSITIONS[S.COMPLETED] == frozenset()
        assert TRANSITIONS[S.ABANDONED] == frozenset()

    def test_can_transition(self) -> None:
        assert can_transition(S.NOT_STARTED, S.AUTO_PREPARING)
        assert can_transition(S.AUTO_PREPARING, S.COMPLETED)
        assert not can_transition(S.NOT_STARTED, S.SUBMITTED)


class TestCreateRecord:
    def test_fresh_record(self, appeal, timestamp) -> None:
        record = create_resolution_record(appeal, timestamp)
        assert record.status is S.NOT_STARTED
        assert record.id == f"res-{appeal.id}-20260214090000"
        assert [s.step_id for s in record.steps] == [s.id for s in appeal.steps]
        assert all(s.status is StepStatus.PENDING for s in record.steps)
        assert record.started_at == record.updated_at == timestamp
        assert record.completed_at is None
        assert calculate_progress(record).percent_complete == 0


class TestLifecycle:
    def test_start_stops_at_first_clinician_step(self, appeal, timestamp) -> None:
        record = start_resolution(appeal, timestamp)
        assert record.status is S.CLINICIAN_REVIEW
        first = record.steps[0]
        assert first.status is StepStatus.COMPLETED
        assert first.auto_completed
        assert record.steps[1].status is StepStatus.PENDING
        assert [e.type for e in record.events] == [E.START, E.AUTO_STEP_COMPLETE]

    def test_full_appeal_lifecycle(self, appeal, timestamp) -> None:
        record = start_resolution(appeal, timestamp)
        assert calculate_progress(record).percent_complete == 33

        later = timestamp + timedelta(minutes=5)
        record = advance_resolution(record, event(E.CLINICIAN_APPROVE, later, appeal.steps[1].id))
        assert record.status is S.SUBMITTED
        assert not record.steps[1].auto_completed
        assert calculate_progress(record).percent_complete == 67

        record = advance_resolution(record, event(E.SUBMIT, later, appeal.steps[2].id))
        assert record.status is S.IN_PROGRESS
        assert calculate_progress(record).percent_complete == 100

        record = advance_resolution(record, event(E.EXTERNAL_APPROVE, later + timedelta(days=3)))
        assert record.status is S.APPROVED

        done = later + timedelta(days=4)
        record = advance_resolution(record, event(E.COMPLETE, done))
        assert record.status is S.COMPLETED
        assert record.completed_at == done
        assert record.updated_at == done
        assert not is_resolution_active(record)

    def test_all_automated_pathway_completes_on_start(self, tracking, timestamp) -> None:
        record = start_resolution(tracking, timestamp)
        assert record.status is S.COMPLETED
        assert record.completed_at == timestamp
        progress = calculate_progress(record)
        assert (progress.completed_steps, progress.total_steps, progress.percent_complete) == (2, 2, 100)

    def test_clinician_reject_abandons(self, appeal, timestamp) -> None:
        record = start_resolution(appeal, timestamp)
        result = advance(record, event(E.CLINICIAN_REJECT, timestamp))
        assert isinstance(result, Accepted)
        assert result.record.status is S.ABANDONED

    def test_denied_then_abandoned(self, appeal, timestamp) -> None:
        record = start_resolution(appeal, timestamp)
        record = advance_resolution(record, event(E.CLINICIAN_APPROVE, timestamp, appeal.steps[1].id))
        record = advance_resolution(record, event(E.EXTERNAL_DENY, timestamp))
        assert record.status is S.DENIED
        assert not advance(record, event(E.START, timestamp)).accepted
        assert advance_resolution(record, event(E.ABANDON, timestamp)).status is S.ABANDONED

    def test_clinician_first_step_enters_review(self, timestamp) -> None:
        pathway = custom_pathway(False, True)
        record = start_resolution(pathway, timestamp)
        assert record.status is S.CLINICIAN_REVIEW
        assert all(s.status is StepStatus.PENDING for s in record.steps)

        record = advance_resolution(record, event(E.CLINICIAN_APPROVE, timestamp, "c1"))
        assert record.status is S.SUBMITTED
        assert record.completed_at is None

    def test_stepless_pathway_completes_on_start(self, timestamp) -> None:
        record = start_resolution(custom_pathway(), timestamp)
        assert record.status is S.COMPLETED
        assert record.completed_at == timestamp
        assert calculate_progress(record).total_steps == 0

    def test_auto_drive_leaves_other_states_alone(self, appeal, timestamp) -> None:
        record = create_resolution_record(appeal, timestamp)
        assert auto_drive(record, timestamp) is record


class TestRejections:
    def test_disallowed_event(self, appeal, timestamp) -> None:
        record = create_resolution_record(appeal, timestamp)
        result = advance(record, event(E.SUBMIT, timestamp))
        assert isinstance(result, Rejected)
        assert result.record is record
        assert result.reason == "submit not allowed from not_started"

    def test_unknown_step(self, appeal, timestamp) -> None:
        record = start_resolution(appeal, timestamp)
        result = advance(record, event(E.CLINICIAN_APPROVE, timestamp, "nope"))
        assert not result.accepted
        assert result.reason == "unknown step: nope"
        assert result.record.status is S.CLINICIAN_REVIEW

    @pytest.mark.parametrize("type_", list(ResolutionEventType))
    def test_terminal_states_reject_everything(self, tracking, timestamp, type_) -> None:
        record = start_resolution(tracking, timestamp)
        result = advance(record, event(type_, timestamp + timedelta(hours=1)))
        assert not result.accepted
        assert result.reason == "completed is terminal"
        assert result.record == record

    def test_rejected_event_not_recorded(self, appeal, timestamp) -> None:
        record = create_resolution_record(appeal, timestamp)
        assert advance_resolution(record, event(E.EXTERNAL_APPROVE, timestamp)).events == ()


class TestDocuments:
    def test_attach_document(self, appeal, timestamp) -> None:
        record = start_resolution(appeal, timestamp)
        generated = timestamp + timedelta(seconds=30)
        doc = GeneratedDocument(
            id="doc-1",
            type=DocumentType.APPEAL_LETTER,
            title="Appeal",
            content="...",
            generated_at=generated,
        )
        updated = attach_document(record, doc)
        assert updated.documents == (doc,)
        assert updated.updated_at == generated
        assert updated.status is record.status
        assert record.documents == ()
