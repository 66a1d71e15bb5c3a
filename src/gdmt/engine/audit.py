"""
Audit Entry Point

run_audit() is the one place that may fall back to ambient state: the
wall clock (when no reference date or timestamp is given) and the
configured ruleset. Everything below it receives those explicitly.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from gdmt.core.enums import DomainId
from gdmt.core.schemas import AuditResult, PatientSnapshot
from gdmt.domains.base import run_domain_audit
from gdmt.domains.registry import DomainRegistry, default_registry
from gdmt.ruleset.loader import Ruleset, get_default_ruleset

logger = logging.getLogger(__name__)


def run_audit(
    patient: PatientSnapshot,
    domain_id: DomainId | str = DomainId.HF_GDMT,
    reference_date: date | None = None,
    ruleset: Ruleset | None = None,
    registry: DomainRegistry | None = None,
    timestamp: datetime | None = None,
) -> AuditResult:
    """
    Audit a patient snapshot against a domain.

    Args:
        patient: Input snapshot.
        domain_id: Domain to audit against (default: heart failure).
        reference_date: "Today" for staleness and surgery windows. Defaults
            to the current UTC date.
        ruleset: Ruleset to use (default: configured ruleset).
        registry: Domain registry (default: built-in domains).
        timestamp: Generation time stamped on the result (default: now, UTC).

    Raises:
        UnknownDomainError: domain_id is not registered.
    """
    now = datetime.now(timezone.utc)
    timestamp = timestamp or now
    reference_date = reference_date or timestamp.date()
    ruleset = ruleset or get_default_ruleset()
    domain = (registry or default_registry()).get(domain_id)

    logger.info("Running %s audit (ruleset %s)", domain.domain_id.value, ruleset.version)
    return run_domain_audit(domain, patient, reference_date, timestamp, ruleset)
