"""
GDMT Audit

Guideline-as-Code audit engine: pillar status, blockers, scores, action
plans and resolution workflows for chronic-disease medication regimens.
"""

__version__ = "0.1.0"

from gdmt.config import Settings, get_settings
from gdmt.engine.audit import run_audit

__all__ = ["Settings", "get_settings", "run_audit", "__version__"]
