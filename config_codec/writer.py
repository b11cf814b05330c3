"""
YAML Writer

Serializes a configuration into the hand-editable YAML dialect used for
mapping files. The output is produced by string assembly rather than a YAML
emitter so that files stay byte-stable across exports and diff cleanly
against hand-edited versions.

Layout rules:
- header and documentation comment blocks first (each can be switched off)
- field properties in fixed order: type, format, expressionsByCountry, itemsMappings
- countries as `[ 'A', 'B' ]` or `[]`
- expressions as `""`, a double-quoted literal, a plain scalar, or a folded block
- two spaces per indentation level
"""

from typing import Any, Dict, List, Optional, Union

from core.models.configuration import (
    ConditionMapping,
    Configuration,
    ExpressionByCountry,
    FieldMapping,
)


# Plain scalars must stay shorter than this; longer ones are folded
PLAIN_SCALAR_MAX_LENGTH = 60

HEADER = (
    "# A configuration file defining the mapping of order data into the SAP order payload format (JSON).\n"
    "# Order payload is sent to SAP for invoicing and accounting purposes.\n"
    "#\n"
    "# Expressions use SpEL (Spring Expression Language) syntax.\n"
    "# Note: '>' converts newlines to spaces, making multi-line expressions more readable.\n"
)

TYPE_DOCUMENTATION = (
    "# Mapped 1:1 to the order payload JSON structure\n"
    "# Possible types are:\n"
    "# - string: string value mapped as-is and cannot be null.\n"
    "# - optional_string: string value that can be null, in which case it will be sent as an empty string.\n"
    "# - double: numeric value mapped with format \"0.00\" and cannot be null.\n"
    "# - local_date_time: date-time value mapped with a specific format (e.g. \"yyyy/MM/dd\") and cannot be null.\n"
    "# - optional_local_date_time: date-time value as above that can be null, in which case it will be sent as an empty string.\n"
    "# - array: array of objects, with nested itemsMappings defining the structure of each object.\n"
)

CONDITION_DOCUMENTATION = (
    "\n"
    "# Mapped to 'items.condition' array of the order payload, containing conditionType and conditionValue.\n"
    "# - conditionType: the key identifying the condition.\n"
    "# - conditionValue: the value of the condition, mapped as a double with format \"0.00\".\n"
)

FIELD_INDENT = 2
CONDITION_ENTRY_INDENT = 6


def _type_name(field_type: Any) -> str:
    return getattr(field_type, "value", field_type)


def format_countries(countries: List[str]) -> str:
    """`[ 'A', 'B' ]`, or `[]` when empty."""
    if not countries:
        return "[]"
    return "[ " + ", ".join(f"'{country}'" for country in countries) + " ]"


def format_expression(expression: Optional[str], indent: int) -> str:
    """
    Render an `expression:` key at the given indentation.

    Args:
        expression: Expression source
        indent: Column of the `expression` key

    Returns:
        One or more lines, each ending in a newline
    """
    pad = " " * indent

    if not expression:
        return f'{pad}expression: ""\n'

    trimmed = expression.strip()

    if trimmed.startswith('"') and trimmed.endswith('"') and "\n" not in trimmed:
        return f"{pad}expression: {trimmed}\n"

    if (
        "\n" not in trimmed
        and len(trimmed) < PLAIN_SCALAR_MAX_LENGTH
        and "{" not in trimmed
        and "?" not in trimmed
    ):
        return f"{pad}expression: {trimmed}\n"

    output = f"{pad}expression: >\n"
    for line in trimmed.split("\n"):
        line = line.strip()
        if line:
            output += f"{pad}  {line}\n"
    return output


def format_expression_by_country(entry: ExpressionByCountry, indent: int) -> str:
    pad = " " * indent
    output = f"{pad}- countries: {format_countries(entry.countries)}\n"
    return output + format_expression(entry.expression, indent + 2)


def _format_field(name: str, mapping: FieldMapping, indent: int) -> str:
    pad = " " * indent
    output = f"{pad}{name}:\n"
    output += f"{pad}  type: {_type_name(mapping.type)}\n"

    if mapping.format:
        output += f"{pad}  format: {mapping.format}\n"

    if mapping.expressions_by_country:
        output += f"{pad}  expressionsByCountry:\n"
        for entry in mapping.expressions_by_country:
            output += format_expression_by_country(entry, indent + 4)

    if mapping.items_mappings:
        output += f"{pad}  itemsMappings:\n"
        for item_name, item_mapping in mapping.items_mappings.items():
            output += _format_field(item_name, item_mapping, indent + 4)

    return output


def format_field_mappings(field_mappings: Dict[str, FieldMapping]) -> str:
    if not field_mappings:
        return "fieldMappings: {}"

    output = "fieldMappings:\n"
    for name, mapping in field_mappings.items():
        output += _format_field(name, mapping, FIELD_INDENT)
    return output


def format_condition_mappings(condition_mappings: List[ConditionMapping]) -> str:
    output = "conditionMappings:\n"
    if not condition_mappings:
        return output + "  []"

    for condition in condition_mappings:
        output += f"  - conditionType: {condition.condition_type}\n"
        if condition.expressions_by_country:
            output += "    expressionsByCountry:\n"
            for entry in condition.expressions_by_country:
                output += format_expression_by_country(entry, CONDITION_ENTRY_INDENT)
        output += "\n"
    return output


def config_to_yaml(
    config: Union[Configuration, Dict[str, Any]],
    include_header: bool = True,
    include_comments: bool = True,
) -> str:
    """
    Serialize a configuration to mapping-file YAML.

    Args:
        config: Configuration model or document
        include_header: Emit the file header comment block
        include_comments: Emit the type and condition documentation blocks

    Returns:
        YAML text
    """
    if not isinstance(config, Configuration):
        config = Configuration.model_validate(config or {})

    parts = []
    if include_header:
        parts.append(HEADER)
    if include_comments:
        parts.append(TYPE_DOCUMENTATION)
    parts.append(format_field_mappings(config.field_mappings))
    if include_comments:
        parts.append(CONDITION_DOCUMENTATION)
    parts.append(format_condition_mappings(config.condition_mappings))

    return "\n".join(part for part in parts if part)
