"""Evaluation context models.

The evaluation context is the data an expression is evaluated against:
order input metadata, invoicing item amounts and standalone variables.
It is built fresh for every simulation run and never persisted.

Absence is explicit: a missing key or a None value means "absent", which the
interpreter renders differently from zero or an empty string.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_OPERATION_NAME = "CREATE"

AMOUNT_PROPERTIES = ("grossAmount", "netAmount", "amount")


class ContextBase(BaseModel):
    """Base model for evaluation context structures."""
    model_config = ConfigDict(populate_by_name=True)


class AmountValue(ContextBase):
    """A `{value: number}` wrapper."""
    value: Optional[float] = None


class InvoicingItemAmounts(ContextBase):
    """Gross/net/amount values of one invoicing item."""
    gross_amount: Optional[AmountValue] = Field(None, alias="grossAmount")
    net_amount: Optional[AmountValue] = Field(None, alias="netAmount")
    amount: Optional[AmountValue] = None

    def get_value(self, prop: str) -> Optional[float]:
        """Look up `<prop>.value` by document name (grossAmount, netAmount, amount)."""
        by_alias = {
            "grossAmount": self.gross_amount,
            "netAmount": self.net_amount,
            "amount": self.amount,
        }
        wrapper = by_alias.get(prop)
        if wrapper is None:
            return None
        return wrapper.value


class OperationRef(ContextBase):
    """The order operation (`#input.operation`)."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: Optional[str] = None

    def get(self, field: str) -> Any:
        if field == "name":
            return self.name
        return (self.model_extra or {}).get(field)


class InputData(ContextBase):
    """The `#input` root: orderMetadata, operation and free top-level fields."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    order_metadata: Dict[str, Any] = Field(default_factory=dict, alias="orderMetadata")
    operation: OperationRef = Field(default_factory=OperationRef)

    @field_validator("order_metadata", mode="before")
    @classmethod
    def _none_metadata(cls, value):
        return {} if value is None else value

    @field_validator("operation", mode="before")
    @classmethod
    def _operation_from_name(cls, value):
        if value is None:
            return {}
        if isinstance(value, str):
            return {"name": value}
        return value

    def get(self, field: str) -> Any:
        """Value of a top-level `#input.<field>`."""
        if field == "orderMetadata":
            return self.order_metadata
        if field == "operation":
            return self.operation.model_dump(exclude_none=True)
        return (self.model_extra or {}).get(field)


class EvaluationContext(ContextBase):
    """Everything one expression evaluation can reference.

    Attributes:
        input: `#input` data
        invoicing_items: `#invoicingItems['NAME']` records
        variables: standalone `#<name>` variables
        item: array-element values (`#item.<field>`)
    """
    input: InputData = Field(default_factory=InputData)
    invoicing_items: Dict[str, InvoicingItemAmounts] = Field(default_factory=dict, alias="invoicingItems")
    variables: Dict[str, Any] = Field(default_factory=dict)
    item: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_input_values(cls, values: Any) -> EvaluationContext:
        """Build a context from editable input values.

        Accepts an InputValues model or a dict shaped like
        `{inputFields, invoicingItems, variables, item}`.
        """
        if isinstance(values, InputValues):
            values = values.model_dump(by_alias=True)
        values = values or {}
        return cls(
            input=InputData.model_validate(values.get("inputFields") or {}),
            invoicing_items=values.get("invoicingItems") or {},
            variables=values.get("variables") or {},
            item=values.get("item") or {},
        )

    def invoicing_amount(self, name: str, prop: Optional[str]) -> Optional[float]:
        record = self.invoicing_items.get(name)
        if record is None or not prop:
            return None
        return record.get_value(prop)

    def order_metadata(self, field: str) -> Any:
        return self.input.order_metadata.get(field)

    def input_field(self, field: str) -> Any:
        return self.input.get(field)

    def operation_field(self, field: str) -> Any:
        return self.input.operation.get(field)

    def operation_name(self) -> str:
        return self.input.operation.name or DEFAULT_OPERATION_NAME

    def variable(self, name: str) -> Any:
        return self.variables.get(name)


class InputValues(ContextBase):
    """Editable simulation inputs, as produced by the default builder."""
    input_fields: Dict[str, Any] = Field(default_factory=dict, alias="inputFields")
    invoicing_items: Dict[str, Dict[str, Any]] = Field(default_factory=dict, alias="invoicingItems")
    variables: Dict[str, Any] = Field(default_factory=dict)
    item: Dict[str, Any] = Field(default_factory=dict)

    def to_context(self) -> EvaluationContext:
        return EvaluationContext.from_input_values(self)
