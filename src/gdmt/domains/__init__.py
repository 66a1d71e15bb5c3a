"""
GDMT Domains

Heart failure, type 2 diabetes and hypertension, each described as data
and run through the shared audit pipeline.
"""

from gdmt.domains.base import Classification, DomainDescriptor, run_domain_audit
from gdmt.domains.dm_mgmt import DM_DOMAIN
from gdmt.domains.hf_gdmt import HF_DOMAIN, classify_ef
from gdmt.domains.htn_control import HTN_DOMAIN
from gdmt.domains.registry import DomainRegistry, default_registry

__all__ = [
    "Classification",
    "DomainDescriptor",
    "DomainRegistry",
    "DM_DOMAIN",
    "HF_DOMAIN",
    "HTN_DOMAIN",
    "classify_ef",
    "default_registry",
    "run_domain_audit",
]
