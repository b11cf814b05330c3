"""Mapping configuration models.

These models describe the declarative configuration that maps order data into
the SAP order payload: named field mappings and an ordered list of condition
mappings, each selecting an expression per country.

Field names follow the YAML/JSON document (camelCase aliases), Python access
uses snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_DATE_FORMAT = "yyyy/MM/dd"


class FieldType(str, Enum):
    """Payload field types.

    The type is descriptive metadata for the consuming system; the simulator
    does not coerce values to it.
    """
    STRING = "string"
    OPTIONAL_STRING = "optional_string"
    DOUBLE = "double"
    LOCAL_DATE_TIME = "local_date_time"
    OPTIONAL_LOCAL_DATE_TIME = "optional_local_date_time"
    ARRAY = "array"

    @property
    def is_date_time(self) -> bool:
        return self in (FieldType.LOCAL_DATE_TIME, FieldType.OPTIONAL_LOCAL_DATE_TIME)


# =============================================================================
# Base Model
# =============================================================================

class MappingBase(BaseModel):
    """Base model for configuration structures."""
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Dump using document (camelCase) keys, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ExpressionByCountry(MappingBase):
    """An expression applied to a set of countries."""
    countries: List[str] = Field(default_factory=list)
    expression: str = ""

    @field_validator("countries", mode="before")
    @classmethod
    def _normalize_countries(cls, value):
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            # Set semantics, insertion order kept for display
            seen = []
            for country in value:
                country = str(country)
                if country not in seen:
                    seen.append(country)
            return seen
        return value

    @field_validator("expression", mode="before")
    @classmethod
    def _none_expression(cls, value):
        return "" if value is None else value

    def matches(self, country: str) -> bool:
        return country in self.countries


class CountrySelectable(MappingBase):
    """Mixin for mappings that carry expressions per country."""
    expressions_by_country: List[ExpressionByCountry] = Field(
        default_factory=list, alias="expressionsByCountry"
    )

    @field_validator("expressions_by_country", mode="before")
    @classmethod
    def _none_expressions(cls, value):
        return [] if value is None else value

    def select_expression(self, country: str) -> Optional[ExpressionByCountry]:
        """Return the first entry (declaration order) that lists the country."""
        for entry in self.expressions_by_country:
            if entry.matches(country):
                return entry
        return None


class FieldMapping(CountrySelectable):
    """A named rule producing one payload field.

    Attributes:
        type: Payload field type
        format: Date-time pattern (e.g. "yyyy/MM/dd"); only meaningful for
            date-time types
        expressions_by_country: Expressions per country, first match wins
        items_mappings: Nested item fields; present iff type is array
    """
    type: FieldType
    format: Optional[str] = None
    items_mappings: Optional[Dict[str, FieldMapping]] = Field(None, alias="itemsMappings")

    @model_validator(mode="after")
    def _check_items_mappings(self) -> FieldMapping:
        if self.type == FieldType.ARRAY:
            if self.items_mappings is None:
                self.items_mappings = {}
            for name, child in self.items_mappings.items():
                if child.items_mappings:
                    raise ValueError(
                        f"itemsMappings.{name}: nested item mappings support one level only"
                    )
        elif self.items_mappings is not None:
            raise ValueError("itemsMappings is only allowed when type is 'array'")
        return self

    def change_type(self, new_type: FieldType) -> FieldMapping:
        """Return a copy with a new type, keeping the type invariants.

        The format survives only between date-time variants, and a date-time
        type without one gets DEFAULT_DATE_FORMAT. Switching to array creates
        an empty itemsMappings, switching away drops it.
        """
        new_type = FieldType(new_type)
        new_format = None
        if new_type.is_date_time:
            if self.type.is_date_time and self.format:
                new_format = self.format
            else:
                new_format = DEFAULT_DATE_FORMAT
        items = None
        if new_type == FieldType.ARRAY:
            items = dict(self.items_mappings or {})
        return FieldMapping(
            type=new_type,
            format=new_format,
            expressions_by_country=[e.model_copy(deep=True) for e in self.expressions_by_country],
            items_mappings=items,
        )


class ConditionMapping(CountrySelectable):
    """A named rule producing one entry of the payload `items` array."""
    condition_type: str = Field(..., alias="conditionType")


class Configuration(MappingBase):
    """Root configuration document."""
    field_mappings: Dict[str, FieldMapping] = Field(default_factory=dict, alias="fieldMappings")
    condition_mappings: List[ConditionMapping] = Field(default_factory=list, alias="conditionMappings")

    @field_validator("field_mappings", mode="before")
    @classmethod
    def _none_fields(cls, value):
        return {} if value is None else value

    @field_validator("condition_mappings", mode="before")
    @classmethod
    def _none_conditions(cls, value):
        return [] if value is None else value

    def iter_expressions(self):
        """Yield every expression string reachable from the configuration."""
        for field_mapping in self.field_mappings.values():
            for entry in field_mapping.expressions_by_country:
                yield entry.expression
            for item_mapping in (field_mapping.items_mappings or {}).values():
                for entry in item_mapping.expressions_by_country:
                    yield entry.expression
        for condition in self.condition_mappings:
            for entry in condition.expressions_by_country:
                yield entry.expression


FieldMapping.model_rebuild()
