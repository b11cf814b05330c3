"""Core module - shared models, settings and observability.

This module contains the configuration model, the evaluation context model,
environment-driven settings and structured logging. It has no knowledge of
the expression language or the YAML dialect; those live in /expression/ and
/config_codec/.
"""

__version__ = "1.0.0"
