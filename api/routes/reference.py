"""Reference catalog endpoints."""

from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException

from reference_data import (
    get_all_invoicing_item_names,
    get_all_money_movement_names,
    get_invoicing_item_categories,
    get_invoicing_item_details,
    get_money_movement_categories,
    get_money_movement_details,
)


router = APIRouter()


@router.get("/invoicing-items")
async def list_invoicing_items() -> List[str]:
    """All invoicing item names, sorted."""
    return get_all_invoicing_item_names()


@router.get("/invoicing-items/{name}")
async def get_invoicing_item(name: str) -> Dict[str, Any]:
    item = get_invoicing_item_details(name)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Invoicing item not found: {name}")
    return item.to_dict()


@router.get("/money-movements")
async def list_money_movements() -> List[str]:
    """All money movement names, sorted."""
    return get_all_money_movement_names()


@router.get("/money-movements/{name}")
async def get_money_movement(name: str) -> Dict[str, Any]:
    movement = get_money_movement_details(name)
    if movement is None:
        raise HTTPException(status_code=404, detail=f"Money movement not found: {name}")
    return movement.to_dict()


@router.get("/categories")
async def list_categories() -> Dict[str, List[Dict[str, Any]]]:
    """Categories (issuer to receiver) of both catalogs."""
    return {
        "invoicingItems": [category.to_dict() for category in get_invoicing_item_categories()],
        "moneyMovements": [category.to_dict() for category in get_money_movement_categories()],
    }
