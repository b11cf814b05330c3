"""
Variable Extractor

Scans every expression reachable from a configuration and reports the
context paths it references, so a UI can scaffold editable inputs for a
simulation. Extraction is best-effort pattern matching: malformed
expressions are never rejected.

Usage:
    from expression.extractor import extract_input_variables

    extracted = extract_input_variables(config)
    extracted.input_fields     # ['input.orderMetadata.orderCode', ...]
    extracted.invoicing_items  # ['PRODUCTS_TO_PARTNER', ...]
    extracted.variables        # ['currencyCodeValue', ...]
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Set, Union

from core.models.configuration import Configuration


# =============================================================================
# Patterns
# =============================================================================

_ORDER_METADATA_RE = re.compile(r"#input\.orderMetadata\??\.(\w+(?:\??\.\w+)*)")
_INPUT_RE = re.compile(r"#input\.(?!orderMetadata\b)(\w+(?:\??\.\w+)*)")
_INVOICING_ITEM_RE = re.compile(r"#invoicingItems\['([^']+)'\]")
_STANDALONE_VARIABLE_RE = re.compile(r"#(\w+(?:Value|Code))(?![\w.\[])")
_ITEM_RE = re.compile(r"#item\.(\w+)")

VAT_OPTIMISED_VARIABLE = "isVatOptimisedOrder"

# Trailing string methods are calls on the field, not part of its path
_STRING_METHODS = {"toLowerCase", "toUpperCase", "toString"}


@dataclass
class ExtractedVariables:
    """Sorted, de-duplicated references found in a configuration."""
    input_fields: List[str] = field(default_factory=list)
    invoicing_items: List[str] = field(default_factory=list)
    variables: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "inputFields": list(self.input_fields),
            "invoicingItems": list(self.invoicing_items),
            "variables": list(self.variables),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractedVariables":
        return cls(
            input_fields=sorted(set(data.get("inputFields") or [])),
            invoicing_items=sorted(set(data.get("invoicingItems") or [])),
            variables=sorted(set(data.get("variables") or [])),
        )


def _normalize_path(raw: str) -> str:
    segments = raw.replace("?.", ".").split(".")
    while len(segments) > 1 and segments[-1] in _STRING_METHODS:
        segments.pop()
    return ".".join(segments)


def parse_expression(expression: str, input_fields: Set[str], invoicing_items: Set[str], variables: Set[str]) -> None:
    """Add the references of one expression to the given sets."""
    if not expression:
        return

    for match in _ORDER_METADATA_RE.finditer(expression):
        input_fields.add(f"input.orderMetadata.{_normalize_path(match.group(1))}")

    for match in _INPUT_RE.finditer(expression):
        input_fields.add(f"input.{_normalize_path(match.group(1))}")

    for match in _INVOICING_ITEM_RE.finditer(expression):
        invoicing_items.add(match.group(1))

    for match in _STANDALONE_VARIABLE_RE.finditer(expression):
        variables.add(match.group(1))

    if f"#{VAT_OPTIMISED_VARIABLE}" in expression:
        variables.add(VAT_OPTIMISED_VARIABLE)

    for match in _ITEM_RE.finditer(expression):
        input_fields.add(f"item.{match.group(1)}")


def _iter_expressions(config: Union[Configuration, Dict[str, Any]]) -> Iterable[str]:
    if isinstance(config, Configuration):
        yield from config.iter_expressions()
        return

    # Raw documents may be partially invalid, so walk them leniently
    def entries(mapping: Any) -> Iterable[str]:
        if not isinstance(mapping, dict):
            return
        for entry in mapping.get("expressionsByCountry") or []:
            if isinstance(entry, dict) and isinstance(entry.get("expression"), str):
                yield entry["expression"]

    field_mappings = (config or {}).get("fieldMappings") or {}
    if isinstance(field_mappings, dict):
        for field_mapping in field_mappings.values():
            yield from entries(field_mapping)
            items = field_mapping.get("itemsMappings") if isinstance(field_mapping, dict) else None
            if isinstance(items, dict):
                for item_mapping in items.values():
                    yield from entries(item_mapping)

    for condition in (config or {}).get("conditionMappings") or []:
        yield from entries(condition)


def extract_input_variables(config: Union[Configuration, Dict[str, Any]]) -> ExtractedVariables:
    """
    Collect every context reference used by a configuration.

    Args:
        config: Configuration model or raw configuration document

    Returns:
        ExtractedVariables with sorted, unique entries
    """
    input_fields: Set[str] = set()
    invoicing_items: Set[str] = set()
    variables: Set[str] = set()

    for expression in _iter_expressions(config):
        parse_expression(expression, input_fields, invoicing_items, variables)

    return ExtractedVariables(
        input_fields=sorted(input_fields),
        invoicing_items=sorted(invoicing_items),
        variables=sorted(variables),
    )


def group_input_fields(input_fields: Iterable[str]) -> Dict[str, List[str]]:
    """Bucket extracted input paths for display: orderMetadata, operation, item, other."""
    groups: Dict[str, List[str]] = {
        "orderMetadata": [],
        "operation": [],
        "other": [],
        "item": [],
    }
    for path in input_fields:
        if path.startswith("input.orderMetadata."):
            groups["orderMetadata"].append(path)
        elif path.startswith("input.operation."):
            groups["operation"].append(path)
        elif path.startswith("item."):
            groups["item"].append(path)
        else:
            groups["other"].append(path)
    return groups
