"""Simulation endpoints.

Variable extraction, default inputs, payload simulation and single
expression evaluation against the current configuration.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from api.services.configuration_store import get_configuration_store
from core.models.context import EvaluationContext
from expression import (
    create_default_input_values,
    extract_input_variables,
    get_interpreter,
    group_input_fields,
)
from payload import simulate


router = APIRouter()


class VariablesResponse(BaseModel):
    """References used by the current configuration."""
    model_config = ConfigDict(populate_by_name=True)

    input_fields: List[str] = Field(..., alias="inputFields")
    invoicing_items: List[str] = Field(..., alias="invoicingItems")
    variables: List[str]
    groups: Dict[str, List[str]]


class SimulationRequest(BaseModel):
    """Simulation inputs; country falls back to financialSourceCountryCodeValue."""
    model_config = ConfigDict(populate_by_name=True)

    input_values: Dict[str, Any] = Field(default_factory=dict, alias="inputValues")
    country: Optional[str] = None


class SimulationResponse(BaseModel):
    """Generated payload and per-entry errors."""
    payload: Dict[str, Any]
    errors: List[str]


class EvaluateRequest(BaseModel):
    """A single expression to evaluate."""
    model_config = ConfigDict(populate_by_name=True)

    expression: str
    input_values: Dict[str, Any] = Field(default_factory=dict, alias="inputValues")


class EvaluateResponse(BaseModel):
    """Reduced value plus the rewritten text that was reduced."""
    result: Any = None
    rewritten: Optional[str] = None


@router.get("/variables", response_model=VariablesResponse, response_model_by_alias=True)
async def get_variables() -> VariablesResponse:
    """List the context references of the current configuration."""
    extracted = extract_input_variables(get_configuration_store().get())
    return VariablesResponse(
        input_fields=extracted.input_fields,
        invoicing_items=extracted.invoicing_items,
        variables=extracted.variables,
        groups=group_input_fields(extracted.input_fields),
    )


@router.get("/defaults")
async def get_defaults() -> Dict[str, Any]:
    """Default input values for every reference of the current configuration."""
    extracted = extract_input_variables(get_configuration_store().get())
    return create_default_input_values(extracted).model_dump(by_alias=True)


@router.post("/run", response_model=SimulationResponse)
async def run_simulation(request: SimulationRequest) -> SimulationResponse:
    """Generate the payload for the current configuration."""
    result = simulate(get_configuration_store().get(), request.input_values, request.country)
    return SimulationResponse(payload=result.payload, errors=result.errors)


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate(request: EvaluateRequest) -> EvaluateResponse:
    """Evaluate one expression against the given input values."""
    interpreter = get_interpreter()
    try:
        context = EvaluationContext.from_input_values(request.input_values)
    except ValueError:
        context = EvaluationContext()
    return EvaluateResponse(
        result=interpreter.evaluate(request.expression, context),
        rewritten=interpreter.explain(request.expression, context),
    )
