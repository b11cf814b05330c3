"""
Payload Generator

Builds the SAP order payload a configuration would produce for one country:
every field mapping becomes a payload field and every condition mapping
becomes an entry of the `items` array.

Generation is partial-failure tolerant: an error in one field or condition is
recorded against it and processing continues with the next entry.

Usage:
    from payload.generator import generate_payload

    result = generate_payload(config.field_mappings, config.condition_mappings, context, "ES")
    result.payload  # {"orderCode": "ORDER-12345", "items": [...]}
    result.errors   # []
"""

import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from core.models.configuration import ConditionMapping, Configuration, FieldMapping
from core.models.context import EvaluationContext, InputValues
from core.observability.logging import get_logger, with_correlation
from core.settings import get_settings
from expression.interpreter import ExpressionInterpreter, get_interpreter
from expression.reducer import is_number


logger = get_logger(__name__)

ITEMS_KEY = "items"
COUNTRY_VARIABLE = "financialSourceCountryCodeValue"

_TWO_PLACES = Decimal("0.01")


@dataclass
class PayloadResult:
    """Generated payload plus the per-entry errors met on the way."""
    payload: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"payload": self.payload, "errors": list(self.errors)}


def format_condition_value(value: Any) -> Any:
    """
    Render numeric condition values with two decimals.

    Rounds half up on the exact binary value of the float, so 0.125 gives
    "0.13" while 2.675 (stored as 2.67499...) gives "2.67". Booleans and
    non-numbers pass through unchanged. Non-finite results never get here:
    the reducer already maps them to None.
    """
    if not is_number(value):
        return value
    return str(Decimal(float(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def _as_field_mapping(mapping: Any) -> FieldMapping:
    if isinstance(mapping, FieldMapping):
        return mapping
    return FieldMapping.model_validate(mapping)


def _as_condition_mapping(mapping: Any) -> ConditionMapping:
    if isinstance(mapping, ConditionMapping):
        return mapping
    return ConditionMapping.model_validate(mapping)


def _condition_label(mapping: Any, index: int) -> str:
    if isinstance(mapping, ConditionMapping):
        return mapping.condition_type
    if isinstance(mapping, Mapping) and mapping.get("conditionType"):
        return str(mapping["conditionType"])
    return f"#{index}"


def generate_payload(
    field_mappings: Optional[Mapping[str, Union[FieldMapping, Dict[str, Any]]]],
    condition_mappings: Optional[Iterable[Union[ConditionMapping, Dict[str, Any]]]],
    context: Union[EvaluationContext, Dict[str, Any], None],
    country: str,
    interpreter: Optional[ExpressionInterpreter] = None,
) -> PayloadResult:
    """
    Generate the payload for one country.

    Args:
        field_mappings: Field name -> mapping
        condition_mappings: Ordered condition mappings
        context: Evaluation context (model or document dict)
        country: Country code used to select expressions
        interpreter: Interpreter to use (defaults to the shared one)

    Returns:
        PayloadResult; never raises
    """
    interpreter = interpreter or get_interpreter()
    result = PayloadResult()
    items: List[Dict[str, Any]] = []

    try:
        if not isinstance(context, EvaluationContext):
            context = EvaluationContext.model_validate(context or {})
    except Exception as e:
        logger.warning("Invalid evaluation context, using an empty one", extra_fields={"error": str(e)})
        result.errors.append(f"Invalid context: {e}")
        context = EvaluationContext()

    for name, raw_mapping in (field_mappings or {}).items():
        with with_correlation(field_name=name):
            try:
                mapping = _as_field_mapping(raw_mapping)
                entry = mapping.select_expression(country)
                if entry is None or not entry.expression:
                    continue
                result.payload[name] = interpreter.evaluate(entry.expression, context)
            except Exception as e:
                logger.warning("Field mapping failed", extra_fields={"error": str(e)})
                result.errors.append(f'Error in field "{name}": {e}')

    for index, raw_condition in enumerate(condition_mappings or []):
        label = _condition_label(raw_condition, index)
        with with_correlation(condition_type=label):
            try:
                condition = _as_condition_mapping(raw_condition)
                entry = condition.select_expression(country)
                if entry is None or not entry.expression:
                    continue
                value = interpreter.evaluate(entry.expression, context)
                items.append({
                    "conditionType": condition.condition_type,
                    "conditionValue": format_condition_value(value),
                })
            except Exception as e:
                logger.warning("Condition mapping failed", extra_fields={"error": str(e)})
                result.errors.append(f'Error in condition "{label}": {e}')

    result.payload[ITEMS_KEY] = items
    return result


def resolve_country(input_values: Union[InputValues, Dict[str, Any], None], country: Optional[str] = None) -> str:
    """Explicit country, else the financial source country variable, else the default."""
    if country:
        return country
    if isinstance(input_values, InputValues):
        variables = input_values.variables
    else:
        variables = (input_values or {}).get("variables") or {}
    from_variables = variables.get(COUNTRY_VARIABLE)
    if isinstance(from_variables, str) and from_variables:
        return from_variables
    return get_settings().default_country


def simulate(
    config: Union[Configuration, Dict[str, Any]],
    input_values: Union[InputValues, Dict[str, Any], None],
    country: Optional[str] = None,
) -> PayloadResult:
    """
    Run a simulation from editable input values.

    Args:
        config: Configuration model or document
        input_values: `{inputFields, invoicingItems, variables, item}`
        country: Country code; resolved from the inputs when omitted

    Returns:
        PayloadResult
    """
    if not isinstance(config, Configuration):
        config = Configuration.model_validate(config or {})

    country = resolve_country(input_values, country)
    simulation_id = f"sim-{uuid.uuid4().hex[:8]}"

    with with_correlation(simulation_id=simulation_id, country=country, operation="simulate"):
        try:
            context = EvaluationContext.from_input_values(input_values)
        except Exception as e:
            logger.warning("Invalid input values, using an empty context", extra_fields={"error": str(e)})
            result = generate_payload(config.field_mappings, config.condition_mappings, EvaluationContext(), country)
            result.errors.insert(0, f"Invalid input values: {e}")
            return result

        result = generate_payload(config.field_mappings, config.condition_mappings, context, country)
        logger.info(
            "Simulation complete",
            extra_fields={
                "fields": len(result.payload) - 1,
                "conditions": len(result.payload[ITEMS_KEY]),
                "errors": len(result.errors),
            },
        )
        return result
