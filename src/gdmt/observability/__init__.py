"""
GDMT Observability

Logging configuration.
"""

from gdmt.observability.logging import JsonFormatter, configure_logging

__all__ = ["JsonFormatter", "configure_logging"]
