"""In-memory current configuration.

The API works on one configuration per process. Replacements are atomic: a
new configuration is fully parsed before it is swapped in, so a failed import
leaves the current one untouched.
"""

import threading
from typing import Optional

from core.models.configuration import Configuration
from core.observability.logging import get_logger
from config_codec import config_from_yaml


logger = get_logger(__name__)


class ConfigurationStore:
    """Holds the configuration the API reads and simulates against."""

    def __init__(self, initial: Optional[Configuration] = None):
        self._lock = threading.Lock()
        self._config = initial or Configuration()

    def get(self) -> Configuration:
        with self._lock:
            return self._config.model_copy(deep=True)

    def replace(self, config: Configuration) -> Configuration:
        with self._lock:
            self._config = config.model_copy(deep=True)
        logger.info(
            "Configuration replaced",
            extra_fields={
                "field_mappings": len(config.field_mappings),
                "condition_mappings": len(config.condition_mappings),
            },
        )
        return config

    def import_yaml(self, text: str) -> Configuration:
        """Parse YAML and swap it in; raises ConfigurationImportError and keeps the current one on failure."""
        config = config_from_yaml(text)
        return self.replace(config)

    def reset(self) -> None:
        with self._lock:
            self._config = Configuration()


# Global store instance
_store = ConfigurationStore()


def get_configuration_store() -> ConfigurationStore:
    return _store
