"""Reference Data - static O2C invoicing items and money movements.

The catalog backs autocomplete and validation in the editor and supplies
the invoicing item names the default simulation context is built from.

Usage:
    from reference_data import get_all_invoicing_item_names, get_invoicing_item_details

    names = get_all_invoicing_item_names()
    item = get_invoicing_item_details("TIP_TO_CUSTOMER")
    if item is not None:
        print(item.money_flow, item.taxation)
"""

from reference_data.models import (
    InvoicingItem,
    MoneyMovement,
    ReferenceCategory,
    Taxation,
    AmountType,
)
from reference_data.catalog import (
    get_all_invoicing_item_names,
    get_all_money_movement_names,
    get_invoicing_item_details,
    get_money_movement_details,
    get_invoicing_item_categories,
    get_money_movement_categories,
    is_known_invoicing_item,
)

__all__ = [
    # Models
    "InvoicingItem",
    "MoneyMovement",
    "ReferenceCategory",
    "Taxation",
    "AmountType",
    # Lookups
    "get_all_invoicing_item_names",
    "get_all_money_movement_names",
    "get_invoicing_item_details",
    "get_money_movement_details",
    "get_invoicing_item_categories",
    "get_money_movement_categories",
    "is_known_invoicing_item",
]
