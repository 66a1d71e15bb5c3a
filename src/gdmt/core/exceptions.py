"""
GDMT Custom Exceptions

This module defines all custom exceptions used throughout the GDMT engine.
Exceptions are organized by layer/responsibility.

Evaluation itself is total over valid input: missing clinical data becomes a
blocker or an UNKNOWN status, never an exception. What remains here are
configuration mismatches and programming errors.
"""

from typing import Any


class GDMTError(Exception):
    """Base exception for all GDMT errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(GDMTError):
    """Error in system configuration."""

    pass


class RulesetError(ConfigurationError):
    """Ruleset document is missing, unreadable or malformed."""

    def __init__(self, message: str, path: str | None = None, errors: list[str] | None = None):
        details: dict[str, Any] = {}
        if path:
            details["path"] = path
        if errors:
            details["errors"] = errors
        super().__init__(message, details)


class TemplateNotFoundError(ConfigurationError):
    """A document template was requested for a pillar that has none."""

    def __init__(self, pillar: str):
        super().__init__(
            f"PA form template not available for pillar: {pillar}", {"pillar": pillar}
        )
        self.pillar = pillar


class UnknownDomainError(ConfigurationError):
    """Requested domain is not registered."""

    def __init__(self, domain_id: str, available: list[str] | None = None):
        super().__init__(
            f"Unknown domain: {domain_id}", {"available": available or []}
        )
        self.domain_id = domain_id


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(GDMTError):
    """Error in data validation."""

    pass


class InvariantViolationError(ValidationError):
    """A result was constructed in violation of its invariants."""

    def __init__(self, message: str, invariant: str | None = None):
        super().__init__(message, {"invariant": invariant} if invariant else None)
