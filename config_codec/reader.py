"""
YAML Reader

Parses mapping-file YAML into a Configuration. Parsing is all-or-nothing:
either a complete Configuration is returned or ConfigurationImportError is
raised, so callers can keep their current configuration on failure.
"""

from typing import Any, Dict, List

import yaml
from pydantic import ValidationError

from core.models.configuration import Configuration
from core.observability.logging import get_logger

from .errors import ConfigurationImportError


logger = get_logger(__name__)

_NULL_TAG = "tag:yaml.org,2002:null"


class MappingFileLoader(yaml.SafeLoader):
    """SafeLoader that keeps plain scalars as text.

    Expressions such as `1.50` or `true` must survive as written, so only
    the null resolver is kept.
    """


MappingFileLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag == _NULL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    if any(tag == _NULL_TAG for tag, _ in resolvers)
}


def _format_validation_error(error: ValidationError) -> List[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        messages.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return messages


def _normalize_expressions(entries: Any, path: str) -> None:
    """Fill null expressions with "" and drop the newline folded blocks end with."""
    if not isinstance(entries, list):
        return
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            continue
        expression = entry.get("expression")
        if expression is None:
            logger.warning(
                "Expression is empty after parsing (a plain scalar starting with '#' reads as a comment)",
                extra_fields={"path": f"{path}[{index}]"},
            )
            entry["expression"] = ""
        elif isinstance(expression, str):
            entry["expression"] = expression.rstrip("\n")


def _normalize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    field_mappings = document.get("fieldMappings")
    if isinstance(field_mappings, dict):
        for name, mapping in field_mappings.items():
            if not isinstance(mapping, dict):
                continue
            _normalize_expressions(mapping.get("expressionsByCountry"), f"fieldMappings.{name}")
            items = mapping.get("itemsMappings")
            if isinstance(items, dict):
                for item_name, item_mapping in items.items():
                    if isinstance(item_mapping, dict):
                        _normalize_expressions(
                            item_mapping.get("expressionsByCountry"),
                            f"fieldMappings.{name}.itemsMappings.{item_name}",
                        )

    condition_mappings = document.get("conditionMappings")
    if isinstance(condition_mappings, list):
        for index, condition in enumerate(condition_mappings):
            if isinstance(condition, dict):
                _normalize_expressions(condition.get("expressionsByCountry"), f"conditionMappings[{index}]")

    return document


def load_document(text: str) -> Dict[str, Any]:
    """
    Parse YAML text into a raw configuration document.

    Raises:
        ConfigurationImportError: if the text is not a YAML mapping
    """
    try:
        document = yaml.load(text, Loader=MappingFileLoader)
    except yaml.YAMLError as e:
        raise ConfigurationImportError(f"Invalid YAML: {e}") from e

    if document is None:
        raise ConfigurationImportError("YAML document is empty")
    if not isinstance(document, dict):
        raise ConfigurationImportError(
            f"YAML document must be a mapping with fieldMappings and conditionMappings, got {type(document).__name__}"
        )
    return _normalize_document(document)


def config_from_yaml(text: str) -> Configuration:
    """
    Parse mapping-file YAML into a Configuration.

    Args:
        text: YAML text

    Returns:
        Configuration

    Raises:
        ConfigurationImportError: malformed YAML or a document that does not
            fit the configuration model; `details` lists each problem
    """
    document = load_document(text)
    try:
        config = Configuration.model_validate(document)
    except ValidationError as e:
        details = _format_validation_error(e)
        raise ConfigurationImportError(
            "Invalid configuration: " + "; ".join(details), details=details
        ) from e

    logger.info(
        "Configuration parsed",
        extra_fields={
            "field_mappings": len(config.field_mappings),
            "condition_mappings": len(config.condition_mappings),
        },
    )
    return config
