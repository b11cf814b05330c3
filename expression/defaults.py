"""
Default Context Builder

Turns extracted references into editable input values with illustrative,
deterministic defaults: no clock and no randomness, so fixtures built from
them are reproducible.
"""

import copy
from typing import Any, Dict, List, Union

from core.models.context import AMOUNT_PROPERTIES, DEFAULT_OPERATION_NAME, EvaluationContext, InputValues

from .extractor import ExtractedVariables


# 2024-01-01T00:00:00Z in epoch milliseconds
DEFAULT_TIMESTAMP_MILLIS = 1704067200000

WELL_KNOWN_FIELD_DEFAULTS: Dict[str, Any] = {
    "orderId": "67890",
    "orderCode": "ORDER-12345",
    "storeAddressId": "123",
    "handlingStrategy": "GEN2",
}

DESCRIPTIVE_FIELD_DEFAULTS: Dict[str, Any] = {
    "vertical": "FOOD",
    "subvertical": "RESTAURANT",
    "partnerFamily": "general",
    "partnerCancellationStrategy": "STANDARD",
    "customerCancellationStrategy": "STANDARD",
    "payments": [{"amount": 25.5, "paymentMethod": "CARD"}],
}

# gross / net overrides; everything else starts at zero
INVOICING_ITEM_DEFAULTS: Dict[str, Dict[str, float]] = {
    "PRODUCTS_TO_PARTNER": {"grossAmount": 20.0, "netAmount": 18.0},
    "TIP_TO_CUSTOMER": {"grossAmount": 2.0, "netAmount": 2.0},
    "DELIVERY_FEE_BY_GLOVO": {"grossAmount": 3.5, "netAmount": 3.0},
}

VARIABLE_DEFAULTS: Dict[str, Any] = {
    "financialSourceCountryCodeValue": "ES",
    "currencyCodeValue": "EUR",
    "cityCodeValue": "BCN",
    "isVatOptimisedOrder": False,
}


def default_field_value(path: List[str]) -> Any:
    """Placeholder for the last segment of an input path."""
    key = path[-1]
    if key in WELL_KNOWN_FIELD_DEFAULTS:
        return WELL_KNOWN_FIELD_DEFAULTS[key]
    if key == "name" and len(path) > 1 and path[-2] == "operation":
        return DEFAULT_OPERATION_NAME
    if "Time" in key:
        return DEFAULT_TIMESTAMP_MILLIS
    if key in DESCRIPTIVE_FIELD_DEFAULTS:
        return copy.deepcopy(DESCRIPTIVE_FIELD_DEFAULTS[key])
    return ""


def _assign(tree: Dict[str, Any], path: List[str]) -> None:
    current = tree
    for segment in path[:-1]:
        # A deeper reference wins over a scalar placeholder at the same key
        if not isinstance(current.get(segment), dict):
            current[segment] = {}
        current = current[segment]
    if isinstance(current.get(path[-1]), dict):
        return
    current[path[-1]] = default_field_value(path)


def default_invoicing_item(name: str) -> Dict[str, Dict[str, float]]:
    record = {prop: {"value": 0.0} for prop in AMOUNT_PROPERTIES}
    for prop, value in INVOICING_ITEM_DEFAULTS.get(name, {}).items():
        record[prop]["value"] = value
    return record


def create_default_input_values(extracted: Union[ExtractedVariables, Dict[str, Any]]) -> InputValues:
    """
    Build editable input values covering every extracted reference.

    Paths rooted at `input` fill inputFields; paths rooted at `item` fill the
    array-element tree.

    Args:
        extracted: Output of extract_input_variables (or its dict form)

    Returns:
        InputValues with a defined value at every extracted path
    """
    if isinstance(extracted, dict):
        extracted = ExtractedVariables.from_dict(extracted)

    input_fields: Dict[str, Any] = {}
    item: Dict[str, Any] = {}

    for field_path in extracted.input_fields:
        segments = field_path.split(".")
        if len(segments) < 2:
            continue
        root, path = segments[0], segments[1:]
        _assign(item if root == "item" else input_fields, path)

    invoicing_items = {name: default_invoicing_item(name) for name in extracted.invoicing_items}
    variables = {name: VARIABLE_DEFAULTS.get(name, "") for name in extracted.variables}

    return InputValues(
        input_fields=input_fields,
        invoicing_items=invoicing_items,
        variables=variables,
        item=item,
    )


def build_default_context(extracted: Union[ExtractedVariables, Dict[str, Any]]) -> EvaluationContext:
    """Evaluation context matching create_default_input_values."""
    return create_default_input_values(extracted).to_context()
