"""
Expression Interpreter Test

Validates the rewrite-then-reduce interpreter:
1. Input, operation, invoicing item and variable references resolve from context
2. Absent references follow the null / empty-string / zero policy
3. Elvis is evaluated as logical OR (a falsy 0 falls through)
4. Map-literal lookups select by key, fall back to 0 and respect the nesting cap
5. Evaluation never raises and is deterministic
"""

import pytest

from core.models.context import EvaluationContext
from expression.interpreter import ExpressionInterpreter, evaluate_expression
from expression.reducer import ExpressionError, format_number, reduce_expression


def make_context(order_metadata=None, invoicing_items=None, variables=None, **input_fields):
    """Build an EvaluationContext from plain dicts."""
    input_data = dict(input_fields)
    input_data["orderMetadata"] = order_metadata or {}
    return EvaluationContext.model_validate({
        "input": input_data,
        "invoicingItems": invoicing_items or {},
        "variables": variables or {},
    })


MAP_EXPRESSION = "{ 'GEN1': 'Restaurant', 'GEN2': 'Glovo' }[#input.orderMetadata.handlingStrategy]"


class TestInputReferences:
    """Test #input dereference and method rewriting."""

    def test_order_metadata_field(self):
        """Plain orderMetadata field resolves to its value."""
        ctx = make_context(order_metadata={"orderCode": "ORDER-12345"})
        assert evaluate_expression("#input.orderMetadata.orderCode", ctx) == "ORDER-12345"

    def test_safe_navigation_field(self):
        ctx = make_context(order_metadata={"orderId": "67890"})
        assert evaluate_expression("#input.orderMetadata?.orderId", ctx) == "67890"

    def test_absent_field_is_null(self):
        ctx = make_context()
        assert evaluate_expression("#input.orderMetadata.missing", ctx) is None
        assert evaluate_expression("#input.orderMetadata.missing == null", ctx) is True

    def test_numeric_fields_stay_numeric(self):
        ctx = make_context(order_metadata={"amount": 12.5})
        assert evaluate_expression("#input.orderMetadata.amount * 2", ctx) == 25

    def test_value_wrapper_is_unwrapped(self):
        ctx = make_context(order_metadata={"total": {"value": 7}})
        assert evaluate_expression("#input.orderMetadata.total + 1", ctx) == 8

    def test_root_field(self):
        ctx = make_context(processingTime=1704067200000)
        assert evaluate_expression("#input.processingTime", ctx) == 1704067200000

    def test_operation_name_defaults_to_create(self):
        assert evaluate_expression("#input.operation.name()", make_context()) == "CREATE"

    def test_operation_name_from_context(self):
        ctx = make_context(operation={"name": "CANCEL"})
        assert evaluate_expression("#input.operation.name()", ctx) == "CANCEL"
        assert evaluate_expression("#input.operation.name() == 'CANCEL' ? 1 : 0", ctx) == 1

    def test_unsupported_method_is_false(self):
        """Zero-argument methods on #input cannot be simulated."""
        assert evaluate_expression("#input.isPrimeOrder()", make_context()) is False

    def test_string_concatenation(self):
        ctx = make_context(order_metadata={"orderId": "67890"})
        assert evaluate_expression("'ES-' + #input.orderMetadata.orderId", ctx) == "ES-67890"


class TestCaseMethods:
    """Null vs empty-string policy of the case and toString rewrites."""

    def test_safe_lower_present(self):
        ctx = make_context(order_metadata={"vertical": "FOOD"})
        assert evaluate_expression("#input.orderMetadata?.vertical?.toLowerCase()", ctx) == "food"

    def test_safe_lower_absent_is_null(self):
        assert evaluate_expression("#input.orderMetadata?.vertical?.toLowerCase()", make_context()) is None

    def test_safe_upper_absent_is_null(self):
        assert evaluate_expression("#input.orderMetadata?.vertical?.toUpperCase()", make_context()) is None

    def test_non_safe_forms_absent_are_empty_string(self):
        ctx = make_context()
        assert evaluate_expression("#input.orderMetadata.vertical.toLowerCase()", ctx) == ""
        assert evaluate_expression("#input.orderMetadata.vertical.toUpperCase()", ctx) == ""
        assert evaluate_expression("#input.orderMetadata.vertical.toString()", ctx) == ""
        assert evaluate_expression("#input.processingTime.toString()", ctx) == ""

    def test_upper_present(self):
        ctx = make_context(order_metadata={"partnerFamily": "general"})
        assert evaluate_expression("#input.orderMetadata.partnerFamily.toUpperCase()", ctx) == "GENERAL"

    def test_to_string_of_number(self):
        ctx = make_context(processingTime=1704067200000)
        assert evaluate_expression("#input.processingTime.toString()", ctx) == "1704067200000"


class TestInvoicingItems:
    """Test #invoicingItems substitution."""

    def test_present_amount(self):
        ctx = make_context(invoicing_items={"PRODUCTS_TO_PARTNER": {"grossAmount": {"value": 20.0}}})
        value = evaluate_expression("#invoicingItems['PRODUCTS_TO_PARTNER']?.grossAmount?.value", ctx)
        assert value == 20

    def test_missing_item_is_zero(self):
        value = evaluate_expression("#invoicingItems['NOT_THERE']?.grossAmount?.value", make_context())
        assert value == 0
        assert value is not None

    def test_missing_property_is_zero(self):
        ctx = make_context(invoicing_items={"TIP_TO_CUSTOMER": {"grossAmount": {"value": 2.0}}})
        assert evaluate_expression("#invoicingItems['TIP_TO_CUSTOMER'].netAmount.value", ctx) == 0

    def test_arithmetic_between_items(self):
        ctx = make_context(invoicing_items={
            "PRODUCTS_TO_PARTNER": {"grossAmount": {"value": 20.0}, "netAmount": {"value": 18.0}},
        })
        expression = (
            "#invoicingItems['PRODUCTS_TO_PARTNER']?.grossAmount?.value"
            " - #invoicingItems['PRODUCTS_TO_PARTNER']?.netAmount?.value"
        )
        assert evaluate_expression(expression, ctx) == 2

    def test_elvis_treats_zero_as_falsy(self):
        """A present 0 falls through the OR fallback."""
        ctx = make_context(invoicing_items={"X": {"grossAmount": {"value": 0}}})
        assert evaluate_expression("(#invoicingItems['X']?.grossAmount?.value ?: 0)", ctx) == 0

    def test_elvis_keeps_truthy_value(self):
        ctx = make_context(invoicing_items={"X": {"grossAmount": {"value": 5.5}}})
        assert evaluate_expression("#invoicingItems['X']?.grossAmount?.value ?: 1", ctx) == 5.5

    def test_elvis_uses_fallback_string(self):
        ctx = make_context()
        assert evaluate_expression("#input.orderMetadata.missing ?: 'n/a'", ctx) == "n/a"


class TestVariables:
    """Test standalone variable substitution."""

    def test_value_variable(self):
        ctx = make_context(variables={"currencyCodeValue": "EUR"})
        assert evaluate_expression("#currencyCodeValue", ctx) == "EUR"

    def test_vat_optimised_flag(self):
        ctx = make_context(variables={"isVatOptimisedOrder": False})
        assert evaluate_expression("#isVatOptimisedOrder ? 1 : 2", ctx) == 2

    def test_absent_variable_is_null(self):
        assert evaluate_expression("#cityCodeValue", make_context()) is None

    def test_logical_keywords(self):
        ctx = make_context(
            order_metadata={"vertical": "FOOD"},
            variables={"financialSourceCountryCodeValue": "ES"},
        )
        expression = "#input.orderMetadata.vertical == 'FOOD' and #financialSourceCountryCodeValue == 'IT'"
        assert evaluate_expression(expression, ctx) is False
        expression = "#input.orderMetadata.vertical == 'FOOD' or #financialSourceCountryCodeValue == 'IT'"
        assert evaluate_expression(expression, ctx) is True

    def test_keywords_inside_literals_untouched(self):
        assert evaluate_expression("'rock and roll or jazz'", make_context()) == "rock and roll or jazz"


class TestMapLiterals:
    """Test map-literal lookups."""

    def test_matching_key(self):
        ctx = make_context(order_metadata={"handlingStrategy": "GEN2"})
        assert evaluate_expression(MAP_EXPRESSION, ctx) == "Glovo"

    def test_unknown_key_is_zero(self):
        ctx = make_context(order_metadata={"handlingStrategy": "UNKNOWN"})
        assert evaluate_expression(MAP_EXPRESSION, ctx) == 0

    def test_safe_navigated_key(self):
        ctx = make_context(order_metadata={"handlingStrategy": "GEN1"})
        expression = "{ 'GEN1': 'Restaurant', 'GEN2': 'Glovo' }[#input.orderMetadata?.handlingStrategy]"
        assert evaluate_expression(expression, ctx) == "Restaurant"

    def test_numeric_values_and_keys(self):
        assert evaluate_expression("{ '1': 10, '2': 20 }[2]", make_context()) == 20

    def test_values_with_nested_commas(self):
        ctx = make_context(order_metadata={"vertical": "FOOD"})
        expression = "{ 'FOOD': [1, 2], 'QCOMMERCE': 3 }[#input.orderMetadata.vertical]"
        assert evaluate_expression(expression, ctx) == [1, 2]

    def test_ternary_values(self):
        ctx = make_context(order_metadata={"vertical": "FOOD", "subvertical": "RESTAURANT"})
        expression = (
            "{ 'FOOD': #input.orderMetadata.subvertical == 'RESTAURANT' ? 'R' : 'O', 'QCOMMERCE': 'Q' }"
            "[#input.orderMetadata.vertical]"
        )
        assert evaluate_expression(expression, ctx) == "R"

    def test_nested_map(self):
        expression = "{ 'A': { 'X': 1, 'Y': 2 }['Y'], 'B': 3 }['A']"
        assert evaluate_expression(expression, make_context()) == 2

    def test_map_result_in_arithmetic(self):
        ctx = make_context(order_metadata={"handlingStrategy": "GEN2"})
        expression = "{ 'GEN1': 1, 'GEN2': 2 }[#input.orderMetadata.handlingStrategy] * 10"
        assert evaluate_expression(expression, ctx) == 20

    def test_nesting_cap(self):
        interpreter = ExpressionInterpreter(max_map_nesting=1)
        expression = "{ 'A': { 'X': 1 }['X'] }['A']"
        # The inner map is beyond the cap and collapses to 0
        assert interpreter.evaluate(expression, make_context()) == 0
        assert ExpressionInterpreter(max_map_nesting=2).evaluate(expression, make_context()) == 1


class TestFallbacks:
    """Evaluation never raises."""

    def test_blank_expression_is_none(self):
        assert evaluate_expression("", make_context()) is None
        assert evaluate_expression("   ", make_context()) is None
        assert evaluate_expression(None, make_context()) is None

    def test_unparseable_expression_is_zero(self):
        assert evaluate_expression("#input.orderMetadata.x + (", make_context()) == 0
        assert evaluate_expression("#someUnknownCode", make_context()) == 0
        assert evaluate_expression("T(java.lang.Math).max(1, 2)", make_context()) == 0

    def test_invalid_context_is_zero(self):
        assert evaluate_expression("1 + 1", {"invoicingItems": "not-a-mapping"}) == 0

    def test_dict_context(self):
        ctx = {"input": {"orderMetadata": {"orderCode": "A-1"}}}
        assert evaluate_expression("#input.orderMetadata.orderCode", ctx) == "A-1"

    def test_projection_is_unsupported(self):
        interpreter = ExpressionInterpreter()
        rewritten = interpreter.explain("#input.payments?.![amount]", make_context())
        assert rewritten == "null[]"
        assert interpreter.evaluate("#input.payments?.![amount]", make_context()) == 0

    def test_undefined_is_null(self):
        assert evaluate_expression("undefined == null", make_context()) is True

    def test_division_by_zero_has_no_number(self):
        assert evaluate_expression("1 / 0", make_context()) is None

    def test_deterministic(self):
        ctx = make_context(order_metadata={"handlingStrategy": "GEN2"})
        results = {repr(evaluate_expression(MAP_EXPRESSION, ctx)) for _ in range(5)}
        assert results == {"'Glovo'"}


class TestExplain:
    """Test the rewritten text exposed for diagnostics."""

    def test_explain_substitutes_everything(self):
        ctx = make_context(
            order_metadata={"orderCode": "ORDER-1"},
            variables={"currencyCodeValue": "EUR"},
        )
        interpreter = ExpressionInterpreter()
        rewritten = interpreter.explain("#input.orderMetadata.orderCode + ' ' + #currencyCodeValue", ctx)
        assert rewritten == "\"ORDER-1\" + ' ' + \"EUR\""

    def test_explain_collapses_whitespace(self):
        interpreter = ExpressionInterpreter()
        assert interpreter.explain("  1 +\n    2  ", make_context()) == "1 + 2"

    def test_explain_blank(self):
        assert ExpressionInterpreter().explain("", make_context()) is None


class TestReducer:
    """Test the closed-grammar reducer directly."""

    def test_loose_equality(self):
        assert reduce_expression("'1' == 1") is True
        assert reduce_expression("null == 0") is False
        assert reduce_expression("null == null") is True
        assert reduce_expression("true == 1") is True

    def test_strict_equality(self):
        assert reduce_expression("'1' === 1") is False
        assert reduce_expression("1 === 1.0") is True

    def test_logical_operators_return_operands(self):
        assert reduce_expression("'' || 'x'") == "x"
        assert reduce_expression("0 && 5") == 0
        assert reduce_expression("'a' && 'b'") == "b"

    def test_arithmetic_coercion(self):
        assert reduce_expression("'3' * '4'") == 12
        assert reduce_expression("2 + '2'") == "22"
        assert reduce_expression("-'5'") == -5
        assert reduce_expression("7 % 3") == 1
        assert reduce_expression("10 / 4") == 2.5

    def test_comparisons(self):
        assert reduce_expression("'a' < 'b'") is True
        assert reduce_expression("'10' > 9") is True
        assert reduce_expression("'abc' > 1") is False

    def test_nested_ternary(self):
        assert reduce_expression("false ? 1 : true ? 2 : 3") == 2

    def test_arrays(self):
        assert reduce_expression("[1, 'a', null]") == [1, "a", None]
        assert reduce_expression("[]") == []

    def test_escaped_quotes(self):
        assert reduce_expression("'it\\'s'") == "it's"

    def test_unknown_identifier_raises(self):
        with pytest.raises(ExpressionError):
            reduce_expression("foo")

    def test_unterminated_string_raises(self):
        with pytest.raises(ExpressionError):
            reduce_expression("'abc")

    def test_format_number(self):
        assert format_number(3.0) == "3"
        assert format_number(2.5) == "2.5"
        assert format_number(0.1 + 0.2) == "0.30000000000000004"
