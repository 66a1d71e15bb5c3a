"""
Unit Tests for Core Schemas

Tests validation rules and invariants defined in schemas.py.
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from gdmt.core.enums import (
    DomainId,
    DoseTier,
    Pillar,
    PillarStatus,
    TrialOutcome,
)
from gdmt.core.exceptions import InvariantViolationError
from gdmt.core.schemas import (
    AuditResult,
    GDMTScore,
    Medication,
    PatientSnapshot,
    PillarResult,
    PriorDrugTrial,
    RequiredDataField,
    ResolutionContext,
    normalize_score,
)


class TestPatientSnapshot:
    """Tests for PatientSnapshot schema."""

    def test_minimal_snapshot(self) -> None:
        """Only vitals are required; labs stay unmeasured."""
        p = PatientSnapshot(sbp=118, hr=70, vitals_date=date(2026, 2, 1))
        assert p.egfr is None
        assert p.potassium is None
        assert p.labs_date is None
        assert p.medications == ()

    def test_snapshot_immutable(self, make_patient) -> None:
        p = make_patient()
        with pytest.raises(ValidationError):
            p.sbp = 90

    @pytest.mark.parametrize(
        "field,value",
        [("sbp", 0), ("hr", -5), ("ef", 120), ("nyha_class", 5), ("egfr", -1), ("hba1c", 30)],
    )
    def test_out_of_range_rejected(self, make_patient, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            make_patient(**{field: value})

    def test_medication_lookups(self, make_patient, make_med) -> None:
        """The first active record is authoritative; unprescribed records still carry flags."""
        p = make_patient(
            medications=(
                make_med(Pillar.MRA, cost_barrier=True),
                make_med(Pillar.MRA, DoseTier.LOW, name="Spironolactone 12.5mg"),
                make_med(Pillar.SGLT2I, DoseTier.HIGH),
            )
        )
        assert p.medication_for(Pillar.MRA).cost_barrier
        assert p.active_medication(Pillar.MRA).name == "Spironolactone 12.5mg"
        assert p.active_pillars() == (Pillar.MRA, Pillar.SGLT2I)
        assert [m.dose_tier for m in p.medications_for(Pillar.MRA)] == [DoseTier.NOT_PRESCRIBED, DoseTier.LOW]
        assert p.medications_for(Pillar.CCB) == ()
        assert p.active_medication(Pillar.BETA_BLOCKER) is None


class TestMedication:
    def test_is_active(self) -> None:
        assert Medication(pillar=Pillar.CCB, dose_tier=DoseTier.MEDIUM).is_active
        assert not Medication(pillar=Pillar.CCB).is_active


class TestResolutionContext:
    def test_trials_for_pillar(self) -> None:
        trial = PriorDrugTrial(
            drug_name="Lisinopril 10mg",
            pillar=Pillar.ARNI_ACEI_ARB,
            start_date=date(2025, 10, 1),
            outcome=TrialOutcome.INEFFECTIVE,
        )
        ctx = ResolutionContext(prior_trials=(trial,))
        assert ctx.trials_for(Pillar.ARNI_ACEI_ARB) == (trial,)
        assert ctx.trials_for(Pillar.MRA) == ()

    def test_negative_duration_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PriorDrugTrial(
                drug_name="x",
                pillar=Pillar.MRA,
                start_date=date(2025, 10, 1),
                duration_days=-1,
                outcome=TrialOutcome.TOLERATED,
            )


class TestGDMTScore:
    """Tests for score normalization invariants."""

    @pytest.mark.parametrize(
        "score,max_possible,expected",
        [(24, 100, 24), (8, 75, 11), (16, 75, 21), (1, 8, 13), (1, 200, 1), (0, 0, 0), (75, 75, 100)],
    )
    def test_normalize_half_up(self, score: int, max_possible: int, expected: int) -> None:
        assert normalize_score(score, max_possible) == expected

    def test_valid_score(self) -> None:
        s = GDMTScore(score=16, max_possible=75, normalized=21)
        assert not s.is_incomplete

    def test_mismatched_normalized(self) -> None:
        with pytest.raises(InvariantViolationError):
            GDMTScore(score=16, max_possible=75, normalized=20)

    def test_score_above_max(self) -> None:
        with pytest.raises(InvariantViolationError):
            GDMTScore(score=80, max_possible=75, normalized=100)


class TestAuditResult:
    def _result(self, **overrides) -> AuditResult:
        fields = {
            "domain_id": DomainId.HF_GDMT,
            "category": "HFrEF",
            "category_label": "HFrEF (EF 30%)",
            "pillar_results": (
                PillarResult(pillar=Pillar.SGLT2I, status=PillarStatus.ON_TARGET, dose_tier=DoseTier.HIGH),
            ),
            "score": GDMTScore(score=25, max_possible=25, normalized=100),
            "reference_date": date(2026, 2, 14),
            "timestamp": datetime(2026, 2, 14, 9, 0),
        }
        fields.update(overrides)
        return AuditResult(**fields)

    def test_prompts_deduplicated_in_order(self) -> None:
        audit = self._result(
            missing_info=("Obtain LVEF (echocardiogram)", "Obtain HbA1c", "Obtain LVEF (echocardiogram)"),
        )
        assert audit.missing_info == ("Obtain LVEF (echocardiogram)", "Obtain HbA1c")

    def test_result_for(self) -> None:
        audit = self._result()
        assert audit.result_for(Pillar.SGLT2I).status is PillarStatus.ON_TARGET
        assert audit.result_for(Pillar.MRA) is None

    def test_json_round_trip(self) -> None:
        audit = self._result()
        assert AuditResult.model_validate_json(audit.model_dump_json()) == audit


class TestRequiredDataField:
    def test_frozen(self) -> None:
        f = RequiredDataField(key="prescriber.npi", label="Prescriber NPI", available=False)
        with pytest.raises(ValidationError):
            f.available = True
