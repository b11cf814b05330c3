"""Configuration codec exceptions."""

from typing import List, Optional


class ConfigurationError(Exception):
    """Base exception for configuration documents."""
    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.details = list(details or [])


class ConfigurationImportError(ConfigurationError):
    """YAML text could not be turned into a configuration."""
    pass


class ConfigurationValidationError(ConfigurationError):
    """A configuration document does not fit the configuration model."""
    pass
