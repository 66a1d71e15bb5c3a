"""
GDMT Engine

Pure rule evaluation: stale data, blockers, pillar status, scoring,
audits and action plans. The reference date is always passed in; only
run_audit() falls back to the wall clock when the caller omits it.
"""
