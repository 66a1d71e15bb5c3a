"""
Tests for the audit entry point and the domain registry.
"""

from datetime import timezone

import pytest

from gdmt import run_audit as exported_run_audit
from gdmt.core.enums import DomainId
from gdmt.core.exceptions import UnknownDomainError
from gdmt.domains.hf_gdmt import HF_DOMAIN
from gdmt.domains.registry import DomainRegistry, default_registry
from gdmt.engine.audit import run_audit


class TestDomainRegistry:
    def test_builtin_domains(self) -> None:
        registry = default_registry()
        assert registry.ids() == [DomainId.HF_GDMT, DomainId.DM_MGMT, DomainId.HTN_CONTROL]
        assert "htn-control" in registry
        assert "ckd" not in registry

    def test_lookup_by_string(self) -> None:
        assert default_registry().get("hf-gdmt") is HF_DOMAIN

    def test_unknown_domain(self) -> None:
        with pytest.raises(UnknownDomainError) as exc:
            default_registry().get("ckd")
        assert exc.value.domain_id == "ckd"
        assert exc.value.details["available"] == ["hf-gdmt", "dm-mgmt", "htn-control"]

    def test_custom_registry(self, make_patient, reference_date, timestamp) -> None:
        registry = DomainRegistry([HF_DOMAIN])
        with pytest.raises(UnknownDomainError):
            run_audit(make_patient(), DomainId.DM_MGMT, reference_date, registry=registry, timestamp=timestamp)
        audit = run_audit(make_patient(), reference_date=reference_date, registry=registry, timestamp=timestamp)
        assert audit.domain_id is DomainId.HF_GDMT


class TestRunAudit:
    def test_package_export(self) -> None:
        assert exported_run_audit is run_audit

    def test_defaults_to_wall_clock(self, make_patient) -> None:
        audit = run_audit(make_patient())
        assert audit.timestamp.tzinfo is timezone.utc
        assert audit.reference_date == audit.timestamp.date()

    def test_deterministic_with_injected_time(self, make_patient, reference_date, timestamp, ruleset) -> None:
        first = run_audit(make_patient(), reference_date=reference_date, timestamp=timestamp, ruleset=ruleset)
        second = run_audit(make_patient(), reference_date=reference_date, timestamp=timestamp, ruleset=ruleset)
        assert first == second
        assert first.timestamp == timestamp
