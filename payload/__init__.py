"""
Payload generation for mapping configurations.

Usage:
    from payload import simulate

    result = simulate(config, input_values, country="ES")
"""

from .generator import (
    ITEMS_KEY,
    PayloadResult,
    format_condition_value,
    generate_payload,
    resolve_country,
    simulate,
)


__all__ = [
    "ITEMS_KEY",
    "PayloadResult",
    "format_condition_value",
    "generate_payload",
    "resolve_country",
    "simulate",
]
