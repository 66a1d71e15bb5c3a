"""
Tests for the type 2 diabetes management domain.
"""

from gdmt.core.enums import BlockerCode, DomainId, DoseTier, Pillar, PillarStatus
from gdmt.core.schemas import PatientHistory
from gdmt.domains.dm_mgmt import DM_DOMAIN, classify
from gdmt.engine.audit import run_audit


def audit_dm(patient, reference_date, timestamp):
    return run_audit(patient, domain_id=DomainId.DM_MGMT, reference_date=reference_date, timestamp=timestamp)


class TestClassification:
    def test_controlled(self, make_patient, ruleset) -> None:
        assert classify(make_patient(hba1c=6.5), ruleset).category == "DM_CONTROLLED"

    def test_ckd_before_cvd(self, make_patient, ruleset) -> None:
        c = classify(make_patient(hba1c=8.0, ckd=True, cvd_risk=True), ruleset)
        assert c.category == "DM_TYPE2_CKD"

    def test_missing_hba1c_is_not_controlled(self, make_patient, ruleset) -> None:
        c = classify(make_patient(hba1c=None), ruleset)
        assert c.category == "DM_TYPE2"
        assert c.missing_info == ("Obtain HbA1c",)


class TestApplicability:
    def test_controlled_audits_metformin_only(self, make_patient, reference_date, timestamp) -> None:
        audit = audit_dm(make_patient(hba1c=6.5, cvd_risk=True), reference_date, timestamp)
        assert [r.pillar for r in audit.pillar_results] == [Pillar.METFORMIN]

    def test_full_escalation(self, make_patient, reference_date, timestamp) -> None:
        patient = make_patient(hba1c=10.5, cvd_risk=True)
        audit = audit_dm(patient, reference_date, timestamp)
        assert [r.pillar for r in audit.pillar_results] == [
            Pillar.METFORMIN,
            Pillar.SGLT2I_DM,
            Pillar.GLP1_RA,
            Pillar.INSULIN,
        ]

    def test_sglt2i_gated_by_egfr_window(self, make_patient, reference_date, timestamp) -> None:
        in_window = audit_dm(make_patient(hba1c=8.0, egfr=40), reference_date, timestamp)
        out_window = audit_dm(make_patient(hba1c=8.0, egfr=60), reference_date, timestamp)
        assert in_window.result_for(Pillar.SGLT2I_DM) is not None
        assert out_window.result_for(Pillar.SGLT2I_DM) is None

    def test_glp1_gated_by_bmi(self, make_patient, reference_date, timestamp) -> None:
        audit = audit_dm(make_patient(hba1c=8.0, bmi=30), reference_date, timestamp)
        assert audit.result_for(Pillar.GLP1_RA) is not None


class TestDMBlockers:
    def test_low_egfr_contraindicates_metformin(self, make_patient, reference_date, timestamp) -> None:
        audit = audit_dm(make_patient(hba1c=8.0, egfr=25), reference_date, timestamp)
        result = audit.result_for(Pillar.METFORMIN)
        assert result.status is PillarStatus.CONTRAINDICATED
        assert BlockerCode.LACTIC_ACIDOSIS_RISK in result.blockers

    def test_metformin_adr_is_gi_intolerance(self, make_patient, make_med, reference_date, timestamp) -> None:
        patient = make_patient(hba1c=8.0, medications=(make_med(Pillar.METFORMIN, has_adr=True),))
        result = audit_dm(patient, reference_date, timestamp).result_for(Pillar.METFORMIN)
        assert result.blockers == (BlockerCode.GI_INTOLERANCE,)
        assert result.status is PillarStatus.MISSING

    def test_pancreatitis_contraindicates_glp1(self, make_patient, reference_date, timestamp) -> None:
        patient = make_patient(
            hba1c=8.0,
            cvd_risk=True,
            history=PatientHistory(adr_history={Pillar.GLP1_RA: "Acute pancreatitis 2023"}),
        )
        result = audit_dm(patient, reference_date, timestamp).result_for(Pillar.GLP1_RA)
        assert result.status is PillarStatus.CONTRAINDICATED
        assert result.blockers == (BlockerCode.PANCREATITIS_HISTORY,)

    def test_other_glp1_adr_is_relative(self, make_patient, reference_date, timestamp) -> None:
        patient = make_patient(
            hba1c=8.0,
            cvd_risk=True,
            history=PatientHistory(adr_history={Pillar.GLP1_RA: "nausea"}),
        )
        result = audit_dm(patient, reference_date, timestamp).result_for(Pillar.GLP1_RA)
        assert result.blockers == (BlockerCode.ADR_HISTORY,)

    def test_insulin_adr_is_hypoglycemia(self, make_patient, make_med, reference_date, timestamp) -> None:
        patient = make_patient(hba1c=11.0, medications=(make_med(Pillar.INSULIN, has_adr=True),))
        result = audit_dm(patient, reference_date, timestamp).result_for(Pillar.INSULIN)
        assert result.blockers == (BlockerCode.HYPOGLYCEMIA_RISK,)

    def test_sglt2i_low_egfr_reported_as_initiation_limit(
        self, make_patient, make_med, reference_date, timestamp
    ) -> None:
        for medications in ((), (make_med(Pillar.SGLT2I_DM, DoseTier.LOW),)):
            patient = make_patient(hba1c=8.0, egfr=15, ckd=True, medications=medications)
            result = audit_dm(patient, reference_date, timestamp).result_for(Pillar.SGLT2I_DM)
            assert BlockerCode.EGFR_LOW_INIT in result.blockers
            assert BlockerCode.EGFR_LOW_CONT not in result.blockers


class TestDMAudit:
    def test_score_and_label(self, make_patient, make_med, reference_date, timestamp) -> None:
        patient = make_patient(
            hba1c=8.5,
            bmi=32,
            cvd_risk=True,
            medications=(make_med(Pillar.METFORMIN, DoseTier.LOW),),
        )
        audit = audit_dm(patient, reference_date, timestamp)
        assert audit.category == "DM_TYPE2_CVD"
        assert audit.score_label == "DM Score"
        assert (audit.score.score, audit.score.max_possible, audit.score.normalized) == (8, 75, 11)

    def test_missing_hba1c_prompt(self, make_patient, reference_date, timestamp) -> None:
        audit = audit_dm(make_patient(hba1c=None), reference_date, timestamp)
        assert "Obtain HbA1c" in audit.missing_info

    def test_descriptor(self) -> None:
        assert DM_DOMAIN.domain_id is DomainId.DM_MGMT
        assert BlockerCode.LACTIC_ACIDOSIS_RISK in DM_DOMAIN.absolute_codes
