"""
Configuration codec: mapping-file YAML in and out, plus advisory validation.

Usage:
    from config_codec import config_to_yaml, config_from_yaml, validate_configuration

    text = config_to_yaml(config)
    config = config_from_yaml(text)
    report = validate_configuration(config.to_dict())
"""

from .errors import (
    ConfigurationError,
    ConfigurationImportError,
    ConfigurationValidationError,
)
from .reader import config_from_yaml, load_document
from .validator import ValidationReport, validate_configuration
from .writer import (
    CONDITION_DOCUMENTATION,
    HEADER,
    TYPE_DOCUMENTATION,
    config_to_yaml,
    format_countries,
    format_expression,
)


__all__ = [
    # Errors
    "ConfigurationError",
    "ConfigurationImportError",
    "ConfigurationValidationError",
    # Writer
    "HEADER",
    "TYPE_DOCUMENTATION",
    "CONDITION_DOCUMENTATION",
    "config_to_yaml",
    "format_countries",
    "format_expression",
    # Reader
    "config_from_yaml",
    "load_document",
    # Validation
    "ValidationReport",
    "validate_configuration",
]
