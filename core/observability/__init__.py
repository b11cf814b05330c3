"""
Observability Module for the payload mapper

Provides:
- Structured logging with correlation context (simulation, country, field)
- Human-readable and JSON formatters
"""

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    get_correlation_context,
    with_correlation,
    StructuredFormatter,
    HumanReadableFormatter,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "get_correlation_context",
    "with_correlation",
    "StructuredFormatter",
    "HumanReadableFormatter",
]
