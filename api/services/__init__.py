"""API Services Package."""

from api.services.configuration_store import ConfigurationStore, get_configuration_store

__all__ = [
    "ConfigurationStore",
    "get_configuration_store",
]
