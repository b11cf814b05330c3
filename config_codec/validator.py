"""
Configuration Validator

Advisory structural checks over a raw configuration document. Problems are
reported as path-qualified messages; callers decide whether to block a save.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from core.models.configuration import Configuration


@dataclass
class ValidationReport:
    """Outcome of validate_configuration."""
    valid: bool = True
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


_BALANCED_PAIRS = (
    ("{", "}", "braces"),
    ("[", "]", "brackets"),
    ("(", ")", "parentheses"),
)


def _validate_expression(entry: Any, errors: List[str], path: str) -> None:
    if not isinstance(entry, dict):
        errors.append(f"{path}: countries must be an array")
        errors.append(f"{path}: expression must be a non-empty string")
        return

    if not isinstance(entry.get("countries"), list):
        errors.append(f"{path}: countries must be an array")

    expression = entry.get("expression")
    if not expression or not isinstance(expression, str):
        errors.append(f"{path}: expression must be a non-empty string")

    if expression and isinstance(expression, str):
        # Counts only; ordering and string literals are not considered
        for opener, closer, label in _BALANCED_PAIRS:
            if expression.count(opener) != expression.count(closer):
                errors.append(f"{path}: Unbalanced {label} in SpEL expression")


def _validate_entries(mapping: Dict[str, Any], errors: List[str], path: str) -> None:
    entries = mapping.get("expressionsByCountry")
    if not entries:
        return
    if not isinstance(entries, list):
        errors.append(f"{path}: expressionsByCountry must be an array")
        return
    for index, entry in enumerate(entries):
        _validate_expression(entry, errors, f"{path}[{index}]")


def validate_configuration(config: Union[Configuration, Dict[str, Any]]) -> ValidationReport:
    """
    Check a configuration document for structural problems.

    Args:
        config: Raw document (camelCase keys) or Configuration model

    Returns:
        ValidationReport with every problem found
    """
    if isinstance(config, Configuration):
        config = config.model_dump(mode="json", by_alias=True)
    config = config or {}
    errors: List[str] = []

    field_mappings = config.get("fieldMappings") or {}
    if isinstance(field_mappings, dict):
        for name, mapping in field_mappings.items():
            if not isinstance(mapping, dict):
                errors.append(f'Field "{name}" is missing type')
                continue
            if not mapping.get("type"):
                errors.append(f'Field "{name}" is missing type')
            _validate_entries(mapping, errors, f"fieldMappings.{name}")

            items = mapping.get("itemsMappings")
            if isinstance(items, dict):
                for item_name, item_mapping in items.items():
                    if not isinstance(item_mapping, dict) or not item_mapping.get("type"):
                        errors.append(f'Field "{name}.itemsMappings.{item_name}" is missing type')
                    if isinstance(item_mapping, dict):
                        _validate_entries(
                            item_mapping, errors, f"fieldMappings.{name}.itemsMappings.{item_name}"
                        )
    else:
        errors.append("fieldMappings must be a mapping")

    condition_mappings = config.get("conditionMappings") or []
    if isinstance(condition_mappings, list):
        for index, condition in enumerate(condition_mappings):
            if not isinstance(condition, dict) or not condition.get("conditionType"):
                errors.append(f"Condition mapping [{index}] is missing conditionType")
            if isinstance(condition, dict):
                _validate_entries(condition, errors, f"conditionMappings[{index}]")
    else:
        errors.append("conditionMappings must be an array")

    return ValidationReport(valid=not errors, errors=errors)
