"""Environment-driven settings.

Reads configuration from environment variables (optionally from a .env file
next to the project root):
- PAYLOAD_MAPPER_LOG_LEVEL: logging level name (default "INFO")
- PAYLOAD_MAPPER_LOG_JSON: "1"/"true" to emit JSON log lines
- PAYLOAD_MAPPER_DEFAULT_COUNTRY: country used when a simulation names none (default "ES")
- PAYLOAD_MAPPER_MAX_MAP_NESTING: recursion cap for nested map-literal lookups (default 8)
- PAYLOAD_MAPPER_EXPORT_FILENAME: download name for exported YAML
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
env_path = Path(__file__).resolve().parents[1] / ".env"
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_EXPORT_FILENAME = "sap-order-payload-mapping.yml"
YAML_CONTENT_TYPE = "text/yaml"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings snapshot."""
    log_level: str = "INFO"
    log_json: bool = False
    default_country: str = "ES"
    max_map_nesting: int = 8
    export_filename: str = DEFAULT_EXPORT_FILENAME


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings from the environment (cached for the process lifetime)."""
    return Settings(
        log_level=os.getenv("PAYLOAD_MAPPER_LOG_LEVEL", "INFO").upper(),
        log_json=_env_bool("PAYLOAD_MAPPER_LOG_JSON"),
        default_country=os.getenv("PAYLOAD_MAPPER_DEFAULT_COUNTRY", "ES"),
        max_map_nesting=_env_int("PAYLOAD_MAPPER_MAX_MAP_NESTING", 8),
        export_filename=os.getenv("PAYLOAD_MAPPER_EXPORT_FILENAME", DEFAULT_EXPORT_FILENAME),
    )
