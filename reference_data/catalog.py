"""
Reference Catalog

Read-only lookups over the static invoicing-item and money-movement tables.
The tables are loaded from the packaged JSON files once per process and
shared by every caller; nothing mutates them after loading.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from core.observability.logging import get_logger

from .models import (
    AmountType,
    InvoicingItem,
    MoneyMovement,
    ReferenceCategory,
    Taxation,
)


logger = get_logger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
INVOICING_ITEMS_FILE = DATA_DIR / "invoicing_items.json"
MONEY_MOVEMENTS_FILE = DATA_DIR / "money_movements.json"


# =============================================================================
# Loading
# =============================================================================

def _read_categories(path: Path) -> List[dict]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data.get("categories", [])


@lru_cache(maxsize=1)
def _invoicing_tables() -> Tuple[Dict[str, InvoicingItem], Tuple[ReferenceCategory, ...]]:
    items: Dict[str, InvoicingItem] = {}
    categories = []
    for category in _read_categories(INVOICING_ITEMS_FILE):
        names = []
        for raw in category.get("items", []):
            item = InvoicingItem(
                name=raw["name"],
                description=raw.get("description", ""),
                category=category["key"],
                details=raw.get("details"),
                money_flow=raw.get("moneyFlow"),
                taxation=Taxation(raw["taxation"]).value if raw.get("taxation") else None,
                amount_type=AmountType(raw["amountType"]).value if raw.get("amountType") else None,
            )
            # First definition wins when a name appears in two categories
            items.setdefault(item.name, item)
            names.append(item.name)
        categories.append(ReferenceCategory(category["key"], category.get("label", ""), tuple(names)))

    logger.debug("Loaded invoicing items", extra_fields={"count": len(items)})
    return items, tuple(categories)


@lru_cache(maxsize=1)
def _money_movement_tables() -> Tuple[Dict[str, MoneyMovement], Tuple[ReferenceCategory, ...]]:
    movements: Dict[str, MoneyMovement] = {}
    categories = []
    for category in _read_categories(MONEY_MOVEMENTS_FILE):
        names = []
        for raw in category.get("items", []):
            movement = MoneyMovement(
                name=raw["name"],
                description=raw.get("description", ""),
                category=category["key"],
                tax_type=AmountType(raw["taxType"]).value if raw.get("taxType") else None,
                source=raw.get("source"),
            )
            movements.setdefault(movement.name, movement)
            names.append(movement.name)
        categories.append(ReferenceCategory(category["key"], category.get("label", ""), tuple(names)))

    logger.debug("Loaded money movements", extra_fields={"count": len(movements)})
    return movements, tuple(categories)


# =============================================================================
# Lookups
# =============================================================================

def get_all_invoicing_item_names() -> List[str]:
    """All invoicing item names, sorted."""
    items, _ = _invoicing_tables()
    return sorted(items)


def get_all_money_movement_names() -> List[str]:
    """All money movement names, sorted."""
    movements, _ = _money_movement_tables()
    return sorted(movements)


def get_invoicing_item_details(name: str) -> Optional[InvoicingItem]:
    """Details of an invoicing item, or None when the name is unknown."""
    items, _ = _invoicing_tables()
    return items.get(name)


def get_money_movement_details(name: str) -> Optional[MoneyMovement]:
    """Details of a money movement, or None when the name is unknown."""
    movements, _ = _money_movement_tables()
    return movements.get(name)


def get_invoicing_item_categories() -> List[ReferenceCategory]:
    _, categories = _invoicing_tables()
    return list(categories)


def get_money_movement_categories() -> List[ReferenceCategory]:
    _, categories = _money_movement_tables()
    return list(categories)


def is_known_invoicing_item(name: str) -> bool:
    return get_invoicing_item_details(name) is not None
