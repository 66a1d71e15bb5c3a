"""
Domain Registry

Maps domain ids to descriptors. Pass a registry explicitly to audit
against a custom set of domains; default_registry() holds the built-ins.
"""

from __future__ import annotations

from collections.abc import Iterable

from gdmt.core.enums import DomainId
from gdmt.core.exceptions import UnknownDomainError
from gdmt.domains.base import DomainDescriptor
from gdmt.domains.dm_mgmt import DM_DOMAIN
from gdmt.domains.hf_gdmt import HF_DOMAIN
from gdmt.domains.htn_control import HTN_DOMAIN


class DomainRegistry:
    """Lookup table of domain descriptors."""

    def __init__(self, domains: Iterable[DomainDescriptor] = ()):
        self._domains: dict[DomainId, DomainDescriptor] = {}
        for domain in domains:
            self.register(domain)

    def register(self, domain: DomainDescriptor) -> None:
        self._domains[domain.domain_id] = domain

    def get(self, domain_id: DomainId | str) -> DomainDescriptor:
        try:
            key = DomainId(domain_id)
            return self._domains[key]
        except (ValueError, KeyError) as e:
            raise UnknownDomainError(
                str(getattr(domain_id, "value", domain_id)),
                available=[d.value for d in self._domains],
            ) from e

    def __contains__(self, domain_id: object) -> bool:
        try:
            return DomainId(domain_id) in self._domains
        except ValueError:
            return False

    def ids(self) -> list[DomainId]:
        return list(self._domains)


def default_registry() -> DomainRegistry:
    return DomainRegistry([HF_DOMAIN, DM_DOMAIN, HTN_DOMAIN])
