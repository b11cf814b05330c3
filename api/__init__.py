"""API Package.

FastAPI server for the SAP order payload mapper.
"""

from api.server import create_app, app

__all__ = [
    "create_app",
    "app",
]
