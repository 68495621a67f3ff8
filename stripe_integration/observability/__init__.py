"""
Observability module - Logging, Metrics, and Tracing.
"""

from stripe_integration.observability.logging import get_logger, log_context, setup_logging
from stripe_integration.observability.metrics import metrics
from stripe_integration.observability.tracing import setup_tracing, trace_operation

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
    "trace_operation",
]
