"""Core data models.

This package contains the mapping configuration model and the evaluation
context model shared by the interpreter, the payload generator, the codec
and the API.
"""

from core.models.configuration import (
    DEFAULT_DATE_FORMAT,
    FieldType,
    MappingBase,
    ExpressionByCountry,
    FieldMapping,
    ConditionMapping,
    Configuration,
)

from core.models.context import (
    DEFAULT_OPERATION_NAME,
    AMOUNT_PROPERTIES,
    AmountValue,
    InvoicingItemAmounts,
    OperationRef,
    InputData,
    EvaluationContext,
    InputValues,
)

__all__ = [
    # Configuration
    "DEFAULT_DATE_FORMAT",
    "FieldType",
    "MappingBase",
    "ExpressionByCountry",
    "FieldMapping",
    "ConditionMapping",
    "Configuration",

    # Context
    "DEFAULT_OPERATION_NAME",
    "AMOUNT_PROPERTIES",
    "AmountValue",
    "InvoicingItemAmounts",
    "OperationRef",
    "InputData",
    "EvaluationContext",
    "InputValues",
]
