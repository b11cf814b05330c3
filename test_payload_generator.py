"""
Payload Generator Test

Validates that:
1. Field mappings produce raw interpreter values, selected per country
2. The first matching country entry wins; unmatched fields are omitted
3. Condition values are formatted to two decimals (half up on the binary value)
4. Failures are recorded per field/condition and never abort generation
5. simulate() resolves the country from inputs and settings
"""

import pytest

from core.models.configuration import Configuration
from core.models.context import EvaluationContext, InputValues
from payload.generator import (
    PayloadResult,
    format_condition_value,
    generate_payload,
    resolve_country,
    simulate,
)


def field(expression, countries=("ES",), field_type="string"):
    return {
        "type": field_type,
        "expressionsByCountry": [{"countries": list(countries), "expression": expression}],
    }


def condition(condition_type, expression, countries=("ES",)):
    return {
        "conditionType": condition_type,
        "expressionsByCountry": [{"countries": list(countries), "expression": expression}],
    }


def build_config(fields=None, conditions=None) -> Configuration:
    return Configuration.model_validate({
        "fieldMappings": fields or {},
        "conditionMappings": conditions or [],
    })


class ExplodingInterpreter:
    """Interpreter stand-in that fails for one expression."""

    def __init__(self, failing_expression):
        self.failing_expression = failing_expression

    def evaluate(self, expression, context):
        if expression == self.failing_expression:
            raise RuntimeError("boom")
        return expression


class TestFieldMappings:
    """Test field mapping evaluation."""

    def test_order_code_end_to_end(self):
        config = build_config(fields={"orderCode": field("#input.orderMetadata.orderCode")})
        context = {"input": {"orderMetadata": {"orderCode": "ORDER-12345"}}}

        result = generate_payload(config.field_mappings, config.condition_mappings, context, "ES")

        assert result.payload["orderCode"] == "ORDER-12345"
        assert result.errors == []
        assert result.payload["items"] == []

    def test_first_matching_entry_wins(self):
        config = build_config(fields={"f": {
            "type": "double",
            "expressionsByCountry": [
                {"countries": ["ES", "IT"], "expression": "1"},
                {"countries": ["ES"], "expression": "2"},
            ],
        }})
        result = generate_payload(config.field_mappings, [], EvaluationContext(), "ES")
        assert result.payload["f"] == 1

    def test_unmatched_country_omits_field(self):
        config = build_config(fields={"f": field("'x'", countries=("IT",))})
        result = generate_payload(config.field_mappings, [], EvaluationContext(), "ES")
        assert "f" not in result.payload
        assert result.errors == []

    def test_empty_countries_match_nothing(self):
        config = build_config(fields={"f": field("'x'", countries=())})
        result = generate_payload(config.field_mappings, [], EvaluationContext(), "ES")
        assert "f" not in result.payload

    def test_empty_expression_omits_field(self):
        config = build_config(fields={"f": field("")})
        result = generate_payload(config.field_mappings, [], EvaluationContext(), "ES")
        assert "f" not in result.payload

    def test_values_are_not_coerced_to_type(self):
        config = build_config(fields={
            "amount": field("'12'", field_type="double"),
            "date": field("1704067200000", field_type="local_date_time"),
        })
        result = generate_payload(config.field_mappings, [], EvaluationContext(), "ES")
        assert result.payload["amount"] == "12"
        assert result.payload["date"] == 1704067200000

    def test_unreducible_expression_yields_zero(self):
        config = build_config(fields={"f": field("#input.orderMetadata.x + (")})
        result = generate_payload(config.field_mappings, [], EvaluationContext(), "ES")
        assert result.payload["f"] == 0
        assert result.errors == []


class TestConditionMappings:
    """Test condition mapping evaluation and formatting."""

    def test_numeric_value_has_two_decimals(self):
        config = build_config(conditions=[condition("ZPRO", "3")])
        result = generate_payload({}, config.condition_mappings, EvaluationContext(), "ES")
        assert result.payload["items"] == [{"conditionType": "ZPRO", "conditionValue": "3.00"}]

    def test_string_value_passes_through(self):
        config = build_config(conditions=[condition("ZTXT", "'abc'")])
        result = generate_payload({}, config.condition_mappings, EvaluationContext(), "ES")
        assert result.payload["items"][0]["conditionValue"] == "abc"

    def test_declaration_order_is_kept(self):
        config = build_config(conditions=[
            condition("B", "2"),
            condition("A", "1"),
            condition("SKIPPED", "1", countries=("IT",)),
            condition("C", "#invoicingItems['TIP_TO_CUSTOMER']?.grossAmount?.value"),
        ])
        context = {"invoicingItems": {"TIP_TO_CUSTOMER": {"grossAmount": {"value": 2.5}}}}
        result = generate_payload({}, config.condition_mappings, context, "ES")
        assert result.payload["items"] == [
            {"conditionType": "B", "conditionValue": "2.00"},
            {"conditionType": "A", "conditionValue": "1.00"},
            {"conditionType": "C", "conditionValue": "2.50"},
        ]

    @pytest.mark.parametrize("value, expected", [
        (3, "3.00"),
        (0, "0.00"),
        (0.125, "0.13"),
        (2.675, "2.67"),
        (1.005, "1.00"),
        (-1.5, "-1.50"),
        (1234567.891, "1234567.89"),
    ])
    def test_format_condition_value(self, value, expected):
        assert format_condition_value(value) == expected

    def test_division_by_zero_has_no_value(self):
        """Infinite results carry no JSON value, so the condition value is None."""
        config = build_config(conditions=[condition("ZINF", "1 / 0"), condition("ZNEG", "-1 / 0")])
        result = generate_payload({}, config.condition_mappings, EvaluationContext(), "ES")
        assert result.payload["items"] == [
            {"conditionType": "ZINF", "conditionValue": None},
            {"conditionType": "ZNEG", "conditionValue": None},
        ]
        assert result.errors == []

    def test_non_numbers_pass_through(self):
        assert format_condition_value("3") == "3"
        assert format_condition_value(True) is True
        assert format_condition_value(None) is None
        assert format_condition_value([1]) == [1]


class TestFailureTolerance:
    """generate_payload never raises."""

    def test_interpreter_failure_is_recorded(self):
        config = build_config(
            fields={"a": field("'boom-field'"), "b": field("'ok'")},
            conditions=[condition("X", "'boom-cond'"), condition("Y", "'fine'")],
        )
        interpreter = ExplodingInterpreter("'boom-field'")
        result = generate_payload(
            config.field_mappings, config.condition_mappings, EvaluationContext(), "ES", interpreter=interpreter
        )
        assert result.errors == ['Error in field "a": boom']
        assert result.payload["b"] == "'ok'"
        assert [item["conditionType"] for item in result.payload["items"]] == ["X", "Y"]

        interpreter = ExplodingInterpreter("'boom-cond'")
        result = generate_payload(
            config.field_mappings, config.condition_mappings, EvaluationContext(), "ES", interpreter=interpreter
        )
        assert result.errors == ['Error in condition "X": boom']
        assert [item["conditionType"] for item in result.payload["items"]] == ["Y"]

    def test_invalid_raw_mappings_are_recorded(self):
        fields = {"bad": {"type": "not-a-type"}, "good": field("'ok'")}
        conditions = [{"expressionsByCountry": []}, condition("Y", "1")]
        result = generate_payload(fields, conditions, {}, "ES")

        assert result.payload["good"] == "ok"
        assert result.payload["items"] == [{"conditionType": "Y", "conditionValue": "1.00"}]
        assert len(result.errors) == 2
        assert result.errors[0].startswith('Error in field "bad":')
        assert result.errors[1].startswith('Error in condition "#0":')

    def test_empty_context_and_mappings(self):
        result = generate_payload(None, None, None, "ES")
        assert result.payload == {"items": []}
        assert result.errors == []

    def test_invalid_context_uses_empty_one(self):
        config = build_config(fields={"f": field("#input.orderMetadata.orderCode")})
        result = generate_payload(config.field_mappings, [], {"invoicingItems": 5}, "ES")
        assert result.payload["f"] is None
        assert result.errors[0].startswith("Invalid context:")

    def test_result_to_dict(self):
        result = PayloadResult(payload={"items": []}, errors=["e"])
        assert result.to_dict() == {"payload": {"items": []}, "errors": ["e"]}


class TestSimulate:
    """Test simulate() and country resolution."""

    def test_country_from_variables(self):
        config = build_config(fields={
            "es": field("'spain'", countries=("ES",)),
            "it": field("'italy'", countries=("IT",)),
        })
        values = {"variables": {"financialSourceCountryCodeValue": "IT"}}
        result = simulate(config, values)
        assert result.payload == {"it": "italy", "items": []}

    def test_explicit_country_wins(self):
        config = build_config(fields={"es": field("'spain'"), "it": field("'italy'", countries=("IT",))})
        values = {"variables": {"financialSourceCountryCodeValue": "IT"}}
        assert simulate(config, values, country="ES").payload == {"es": "spain", "items": []}

    def test_default_country(self):
        assert resolve_country(None) == "ES"
        assert resolve_country({"variables": {"financialSourceCountryCodeValue": ""}}) == "ES"
        assert resolve_country(InputValues(variables={"financialSourceCountryCodeValue": "PT"})) == "PT"

    def test_simulate_with_input_values(self):
        config = build_config(
            fields={"orderCode": field("#input.orderMetadata.orderCode")},
            conditions=[condition("ZPRO", "#invoicingItems['PRODUCTS_TO_PARTNER']?.grossAmount?.value")],
        )
        values = {
            "inputFields": {"orderMetadata": {"orderCode": "ORDER-12345"}},
            "invoicingItems": {"PRODUCTS_TO_PARTNER": {"grossAmount": {"value": 20.0}}},
            "variables": {},
        }
        result = simulate(config.to_dict(), values, country="ES")
        assert result.payload == {
            "orderCode": "ORDER-12345",
            "items": [{"conditionType": "ZPRO", "conditionValue": "20.00"}],
        }
        assert result.errors == []

    def test_invalid_input_values_are_reported(self):
        config = build_config(fields={"f": field("1")})
        result = simulate(config, {"invoicingItems": "nope"}, country="ES")
        assert result.payload == {"f": 1, "items": []}
        assert result.errors[0].startswith("Invalid input values:")
