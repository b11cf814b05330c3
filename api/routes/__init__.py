"""API Routes Package."""

from api.routes import health, configuration, simulation, reference

__all__ = [
    "health",
    "configuration",
    "simulation",
    "reference",
]
