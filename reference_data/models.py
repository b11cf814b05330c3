"""Reference Data Models.

Immutable records for the static O2C reference tables:
- InvoicingItem: a line item Glovo (or a courier/partner) issues on an invoice
- MoneyMovement: a raw money flow between two parties
- ReferenceCategory: a group of records sharing issuer and receiver
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Taxation(str, Enum):
    """Tax treatment of an invoicing item."""
    TAXABLE = "TAXABLE"
    NON_TAXABLE_BALANCE = "NON_TAXABLE_BALANCE"


class AmountType(str, Enum):
    """Whether the amount is carried gross or net of tax."""
    GROSS = "GROSS"
    NET = "NET"


@dataclass(frozen=True)
class InvoicingItem:
    """
    A named invoicing item.

    Attributes:
        name: Item name as used in `#invoicingItems['NAME']`
        description: Human description
        details: Where the item comes from and how it is taxed
        money_flow: Direction, e.g. "COURIER → GLOVO"
        taxation: Tax treatment (TAXABLE or NON_TAXABLE_BALANCE)
        amount_type: GROSS or NET
        category: Category key, e.g. "GLOVO_to_COURIER"
    """
    name: str
    description: str
    category: str
    details: Optional[str] = None
    money_flow: Optional[str] = None
    taxation: Optional[str] = None
    amount_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "details": self.details,
            "moneyFlow": self.money_flow,
            "taxation": self.taxation,
            "amountType": self.amount_type,
            "category": self.category,
        }


@dataclass(frozen=True)
class MoneyMovement:
    """A named money movement (tax type and originating source)."""
    name: str
    description: str
    category: str
    tax_type: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "taxType": self.tax_type,
            "source": self.source,
            "category": self.category,
        }


@dataclass(frozen=True)
class ReferenceCategory:
    """A labelled group of reference records."""
    key: str
    label: str
    item_names: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "label": self.label, "items": list(self.item_names)}
