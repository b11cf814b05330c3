"""Configuration endpoints.

Read, replace, import, export and validate the current mapping configuration.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Query, Request, Response
from pydantic import BaseModel, ValidationError

from api.services.configuration_store import get_configuration_store
from config_codec import (
    ConfigurationImportError,
    ConfigurationValidationError,
    config_to_yaml,
    validate_configuration,
)
from core.models.configuration import Configuration
from core.observability.logging import get_logger, with_correlation
from core.settings import YAML_CONTENT_TYPE, get_settings


router = APIRouter()
logger = get_logger(__name__)


class ValidationResponse(BaseModel):
    """Advisory validation result."""
    valid: bool
    errors: List[str]


def _model_configuration(document: Dict[str, Any]) -> Configuration:
    try:
        return Configuration.model_validate(document)
    except ValidationError as e:
        details = [
            f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}" for item in e.errors()
        ]
        raise ConfigurationValidationError("Invalid configuration", details=details) from e


@router.get("")
async def get_configuration() -> Dict[str, Any]:
    """Current configuration as a JSON document."""
    return get_configuration_store().get().to_dict()


@router.put("")
async def put_configuration(document: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Replace the current configuration with a JSON document.

    Raises:
        ConfigurationValidationError: answered as 422, configuration unchanged
    """
    config = _model_configuration(document)
    return get_configuration_store().replace(config).to_dict()


@router.post("/import")
async def import_configuration(request: Request) -> Dict[str, Any]:
    """Import YAML text from the request body.

    On failure (422) the current configuration is left unchanged.
    """
    raw = await request.body()
    with with_correlation(operation="import"):
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConfigurationImportError("YAML body must be UTF-8 text") from e

        config = get_configuration_store().import_yaml(text)
        logger.info("Configuration imported", extra_fields={"bytes": len(raw)})

    return config.to_dict()


@router.get("/export")
async def export_configuration(
    include_header: bool = Query(True, description="Emit the file header comment block"),
    include_comments: bool = Query(True, description="Emit the documentation comment blocks"),
) -> Response:
    """Export the current configuration as a mapping-file YAML download."""
    text = config_to_yaml(
        get_configuration_store().get(),
        include_header=include_header,
        include_comments=include_comments,
    )
    filename = get_settings().export_filename
    return Response(
        content=text,
        media_type=YAML_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/validate", response_model=ValidationResponse)
async def validate(document: Dict[str, Any] = Body(...)) -> ValidationResponse:
    """Advisory structural validation of a configuration document."""
    report = validate_configuration(document)
    return ValidationResponse(valid=report.valid, errors=report.errors)
