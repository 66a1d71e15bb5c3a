"""
Tests for the heart-failure GDMT domain.
"""

import pytest

from gdmt.core.enums import DomainId, DoseTier, EFCategory, Pillar, PillarStatus
from gdmt.core.schemas import PatientHistory
from gdmt.domains.hf_gdmt import EF_UNDOCUMENTED, HF_PILLARS, classify_ef
from gdmt.engine.audit import run_audit


class TestClassifyEF:
    @pytest.mark.parametrize(
        "ef,expected",
        [
            (25, EFCategory.HFREF),
            (40, EFCategory.HFREF),
            (41, EFCategory.HFMREF),
            (49, EFCategory.HFMREF),
            (50, EFCategory.HFPEF),
            (65, EFCategory.HFPEF),
        ],
    )
    def test_boundaries(self, ef: float, expected: EFCategory) -> None:
        assert classify_ef(ef) is expected

    def test_missing_ef(self) -> None:
        assert classify_ef(None) is None


class TestHFrEFAudit:
    def test_underdosed_and_missing_scenario(self, make_patient, make_med, reference_date, timestamp) -> None:
        """One LOW, one MEDIUM, two unprescribed with no barrier: 24/100."""
        patient = make_patient(
            medications=(
                make_med(Pillar.ARNI_ACEI_ARB, DoseTier.LOW),
                make_med(Pillar.BETA_BLOCKER, DoseTier.MEDIUM),
            )
        )
        audit = run_audit(patient, reference_date=reference_date, timestamp=timestamp)

        assert audit.domain_id is DomainId.HF_GDMT
        assert audit.ef_category is EFCategory.HFREF
        assert audit.category == "HFrEF"
        assert audit.category_label == "HFrEF (EF 30%)"
        assert [r.pillar for r in audit.pillar_results] == list(HF_PILLARS)
        assert (audit.score.score, audit.score.max_possible, audit.score.normalized) == (24, 100, 24)
        assert audit.score_label == "GDMT Score"

    def test_allergy_scenario_scores_full(self, make_patient, make_med, reference_date, timestamp) -> None:
        patient = make_patient(
            medications=(
                make_med(Pillar.ARNI_ACEI_ARB, DoseTier.HIGH),
                make_med(Pillar.BETA_BLOCKER, DoseTier.HIGH),
                make_med(Pillar.SGLT2I, DoseTier.HIGH),
            ),
            history=PatientHistory(allergies=(Pillar.MRA,)),
        )
        audit = run_audit(patient, reference_date=reference_date, timestamp=timestamp)
        assert audit.result_for(Pillar.MRA).status is PillarStatus.CONTRAINDICATED
        assert (audit.score.score, audit.score.max_possible, audit.score.normalized) == (75, 75, 100)
        assert audit.score.excluded_pillars == (Pillar.MRA,)

    def test_inertia_questions_name_the_pillar(self, make_patient, make_med, reference_date, timestamp) -> None:
        patient = make_patient(medications=(make_med(Pillar.BETA_BLOCKER, DoseTier.LOW),))
        audit = run_audit(patient, reference_date=reference_date, timestamp=timestamp)
        assert "Review Beta-blocker: no identified barrier to optimization" in audit.next_best_questions
        assert len(audit.next_best_questions) == len(set(audit.next_best_questions))

    def test_reference_date_drives_staleness(self, make_patient, reference_date, timestamp) -> None:
        from datetime import timedelta

        patient = make_patient()
        later = reference_date + timedelta(days=15)
        audit = run_audit(patient, reference_date=later, timestamp=timestamp)
        assert "Update lab values (last obtained >14 days ago)" in audit.missing_info
        assert audit.reference_date == later


class TestOtherEFCategories:
    def test_hfmref_evaluates_all_pillars(self, make_patient, reference_date, timestamp) -> None:
        audit = run_audit(make_patient(ef=45), reference_date=reference_date, timestamp=timestamp)
        assert audit.ef_category is EFCategory.HFMREF
        assert len(audit.pillar_results) == 4

    def test_hfpef_uses_composite_score(self, make_patient, make_med, reference_date, timestamp) -> None:
        patient = make_patient(ef=58, sbp=124, medications=(make_med(Pillar.SGLT2I, DoseTier.HIGH),))
        audit = run_audit(patient, reference_date=reference_date, timestamp=timestamp)
        assert audit.ef_category is EFCategory.HFPEF
        assert [r.pillar for r in audit.pillar_results] == [Pillar.SGLT2I]
        assert audit.score_label == "HFpEF Score"
        assert (audit.score.score, audit.score.max_possible) == (60, 60)

    def test_missing_ef_requests_echo(self, make_patient, reference_date, timestamp) -> None:
        """Undocumented EF: every pillar is audited and LVEF is requested."""
        audit = run_audit(make_patient(ef=None), reference_date=reference_date, timestamp=timestamp)
        assert audit.category == EF_UNDOCUMENTED
        assert audit.ef_category is None
        assert audit.missing_info[0] == "Obtain LVEF (echocardiogram)"
        assert len(audit.pillar_results) == 4
        assert audit.score.max_possible == 100
