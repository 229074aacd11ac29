from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..time_utils import parse_iso_datetime, to_utc_z
"""
Cashbook record shapes (authoritative)

- Each collection is stored whole, as a JSON list of camelCase dicts.
- to_dict() produces that stored shape and omits optional fields that are unset.
- Datetimes are UTC-naive in memory and ISO-8601 'Z' strings when stored.
- Transactions are frozen: the ledger only ever appends them.
- Transaction items are a snapshot of name/price/variant at sale time.
"""


class TransactionType(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class DebtType(str, Enum):
    RECEIVABLE = "receivable"
    PAYABLE = "payable"


class DebtStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class BillFrequency(str, Enum):
    ONCE = "once"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _put_optional(data: dict, key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


def _dt(value: Optional[str]) -> Optional[datetime]:
    return parse_iso_datetime(value) if value else None


@dataclass
class ProductVariant:
    id: str
    name: str
    quantity: int
    sku: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "quantity": self.quantity}
        _put_optional(data, "sku", self.sku)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ProductVariant":
        return cls(
            id=data["id"],
            name=data["name"],
            quantity=data.get("quantity", 0),
            sku=data.get("sku"),
        )


@dataclass
class Product:
    id: str
    name: str
    price: float
    total_quantity: int
    has_variants: bool
    created_at: datetime
    updated_at: datetime
    variants: list[ProductVariant] = field(default_factory=list)
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None

    def find_variant(self, variant_id: str) -> Optional[ProductVariant]:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} name={self.name!r} total_quantity={self.total_quantity}>"

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "totalQuantity": self.total_quantity,
            "hasVariants": self.has_variants,
            "variants": [v.to_dict() for v in self.variants],
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        _put_optional(data, "description", self.description)
        _put_optional(data, "image", self.image)
        _put_optional(data, "category", self.category)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            id=data["id"],
            name=data["name"],
            price=data.get("price", 0),
            total_quantity=data.get("totalQuantity", 0),
            has_variants=bool(data.get("hasVariants", False)),
            variants=[ProductVariant.from_dict(v) for v in data.get("variants") or []],
            description=data.get("description"),
            image=data.get("image"),
            category=data.get("category"),
            created_at=_dt(data.get("createdAt")),
            updated_at=_dt(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class TransactionItem:
    product_id: str
    product_name: str
    quantity: int
    price: float
    variant_name: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        data = {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
        }
        _put_optional(data, "variantName", self.variant_name)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TransactionItem":
        return cls(
            product_id=data["productId"],
            product_name=data["productName"],
            quantity=data["quantity"],
            price=data["price"],
            variant_name=data.get("variantName"),
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    type: TransactionType
    description: str
    amount: float
    timestamp: datetime
    category: Optional[str] = None
    payment_method: Optional[str] = None
    items: Optional[tuple[TransactionItem, ...]] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "amount": self.amount,
            "timestamp": to_utc_z(self.timestamp),
        }
        _put_optional(data, "category", self.category)
        _put_optional(data, "paymentMethod", self.payment_method)
        if self.items is not None:
            data["items"] = [item.to_dict() for item in self.items]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        items = data.get("items")
        return cls(
            id=data["id"],
            type=TransactionType(data["type"]),
            description=data.get("description", ""),
            amount=data.get("amount", 0),
            timestamp=_dt(data.get("timestamp")),
            category=data.get("category"),
            payment_method=data.get("paymentMethod"),
            items=tuple(TransactionItem.from_dict(i) for i in items) if items is not None else None,
        )


@dataclass
class DebtEntry:
    id: str
    type: DebtType
    counterparty: str
    amount: float
    description: str
    due_date: datetime
    status: DebtStatus
    created_at: datetime
    category: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    linked_transaction_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type.value,
            "counterparty": self.counterparty,
            "amount": self.amount,
            "description": self.description,
            "dueDate": to_utc_z(self.due_date),
            "status": self.status.value,
            "createdAt": to_utc_z(self.created_at),
        }
        _put_optional(data, "category", self.category)
        _put_optional(data, "notes", self.notes)
        _put_optional(data, "paidAt", to_utc_z(self.paid_at))
        _put_optional(data, "linkedTransactionId", self.linked_transaction_id)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DebtEntry":
        return cls(
            id=data["id"],
            type=DebtType(data["type"]),
            counterparty=data.get("counterparty", ""),
            amount=data.get("amount", 0),
            description=data.get("description", ""),
            due_date=_dt(data.get("dueDate")),
            status=DebtStatus(data.get("status", DebtStatus.PENDING.value)),
            created_at=_dt(data.get("createdAt")),
            category=data.get("category"),
            notes=data.get("notes"),
            paid_at=_dt(data.get("paidAt")),
            linked_transaction_id=data.get("linkedTransactionId"),
        )


@dataclass
class Bill:
    id: str
    name: str
    amount: float
    due_date: datetime
    frequency: BillFrequency
    is_paid: bool
    created_at: datetime
    category: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "dueDate": to_utc_z(self.due_date),
            "frequency": self.frequency.value,
            "isPaid": self.is_paid,
            "createdAt": to_utc_z(self.created_at),
        }
        _put_optional(data, "category", self.category)
        _put_optional(data, "notes", self.notes)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Bill":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            amount=data.get("amount", 0),
            due_date=_dt(data.get("dueDate")),
            frequency=BillFrequency(data.get("frequency", BillFrequency.ONCE.value)),
            is_paid=bool(data.get("isPaid", False)),
            created_at=_dt(data.get("createdAt")),
            category=data.get("category"),
            notes=data.get("notes"),
        )
