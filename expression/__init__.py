"""
Expression language support for mapping configurations.

Components:
- extractor: finds the context references used by a configuration
- defaults: builds illustrative input values for those references
- interpreter: rewrite-then-reduce evaluation of a single expression
- reducer: closed-grammar parser and evaluator for substituted expressions

Usage:
    from expression import extract_input_variables, build_default_context, evaluate_expression

    extracted = extract_input_variables(config)
    context = build_default_context(extracted)
    value = evaluate_expression("#input.orderMetadata.orderCode", context)
"""

from .defaults import (
    DEFAULT_TIMESTAMP_MILLIS,
    build_default_context,
    create_default_input_values,
)
from .extractor import (
    ExtractedVariables,
    extract_input_variables,
    group_input_fields,
)
from .interpreter import (
    ExpressionInterpreter,
    evaluate_expression,
    get_interpreter,
)
from .reducer import ExpressionError, reduce_expression


__all__ = [
    # Extraction
    "ExtractedVariables",
    "extract_input_variables",
    "group_input_fields",
    # Defaults
    "DEFAULT_TIMESTAMP_MILLIS",
    "create_default_input_values",
    "build_default_context",
    # Evaluation
    "ExpressionInterpreter",
    "evaluate_expression",
    "get_interpreter",
    "ExpressionError",
    "reduce_expression",
]
