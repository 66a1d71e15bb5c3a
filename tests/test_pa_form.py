"""
Tests for prior-authorization form data.
"""

import pytest

from gdmt.core.enums import DoseTier, Pillar
from gdmt.core.exceptions import TemplateNotFoundError
from gdmt.engine.audit import run_audit
from gdmt.evaluation.golden_cases import GOLDEN_REFERENCE_DATE, get_case_by_id
from gdmt.resolution.pa_form import build_pa_form, fill_template, relevant_labs


@pytest.fixture
def access_case(timestamp):
    case = get_case_by_id("HF-ACCESS")
    audit = run_audit(
        case.patient, domain_id=case.domain_id, reference_date=GOLDEN_REFERENCE_DATE, timestamp=timestamp
    )
    return case.patient, audit


class TestBuildPAForm:
    def test_mra_copay_form(self, access_case, timestamp) -> None:
        patient, audit = access_case
        form = build_pa_form(Pillar.MRA, patient, audit, timestamp)

        assert form.id == "pa-MRA-20260214090000"
        assert form.status == "draft"
        assert form.requested_drug == "Spironolactone"
        assert form.requested_dose_tier is DoseTier.LOW
        assert (form.diagnosis_code, form.ef_percent, form.nyha_class) == ("I50.22", 35, 3)
        assert "EF 35%" in form.clinical_justification
        assert "K+ 4.5" in form.clinical_justification
        assert form.guideline_doi == "10.1161/CIR.0000000000001063"
        assert form.insurance.payer_name == "BlueCross BlueShield of Illinois"
        assert form.prescriber.npi == "1234567890"
        assert [t.drug_name for t in form.prior_trials] == ["Eplerenone 25mg"]
        # tolerated prior trial
        assert form.step_therapy_exception is not None

    def test_step_therapy_arni(self, access_case, timestamp) -> None:
        patient, audit = access_case
        form = build_pa_form(Pillar.ARNI_ACEI_ARB, patient, audit, timestamp)
        assert form.requested_drug == "Sacubitril/Valsartan (Entresto)"
        assert form.step_therapy_exception.startswith("Step therapy exception is requested")

    def test_prescribed_drug_name_and_tier_kept(self, access_case, timestamp) -> None:
        patient, audit = access_case
        form = build_pa_form(Pillar.BETA_BLOCKER, patient, audit, timestamp)
        assert form.requested_drug == "Carvedilol 6.25mg"
        assert form.requested_dose_tier is DoseTier.LOW
        assert form.step_therapy_exception is None

    def test_no_context_gives_empty_payer_details(self, make_patient, reference_date, timestamp) -> None:
        patient = make_patient()
        audit = run_audit(patient, reference_date=reference_date, timestamp=timestamp)
        form = build_pa_form(Pillar.SGLT2I, patient, audit, timestamp)
        assert form.insurance.payer_name is None
        assert form.prescriber.npi is None
        assert form.prior_trials == ()

    @pytest.mark.parametrize(
        "ef,code",
        [(30, "I50.22"), (45, "I50.22"), (55, "I50.32"), (None, "I50.9")],
    )
    def test_diagnosis_code_by_ef(self, make_patient, reference_date, timestamp, ef, code) -> None:
        patient = make_patient(ef=ef)
        audit = run_audit(patient, reference_date=reference_date, timestamp=timestamp)
        assert build_pa_form(Pillar.SGLT2I, patient, audit, timestamp).diagnosis_code == code

    def test_no_template(self, make_patient, reference_date, timestamp) -> None:
        patient = make_patient(hba1c=8.0)
        audit = run_audit(patient, domain_id="dm-mgmt", reference_date=reference_date, timestamp=timestamp)
        with pytest.raises(TemplateNotFoundError):
            build_pa_form(Pillar.METFORMIN, patient, audit, timestamp)


class TestTemplateFilling:
    def test_missing_values(self, make_patient) -> None:
        text = fill_template("EF {ef}%, NYHA {nyha}, {unknown}", make_patient(nyha_class=None))
        assert text == "EF 30%, NYHA not documented, not documented"

    def test_labs_only_when_measured(self, make_patient, reference_date) -> None:
        labs = relevant_labs(make_patient(bnp=410))
        assert [lab.name for lab in labs] == ["eGFR", "Potassium", "BNP"]
        assert all(lab.measured_on == reference_date for lab in labs)
