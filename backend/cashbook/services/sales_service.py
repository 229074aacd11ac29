"""
Sales Service - point-of-sale checkout across catalog and ledger

Posting a sale runs, in order:
1. resolve every line against the current catalog (NotFoundError on a missing
   product or variant)
2. optionally check stock for every line before anything is written
3. decrement stock line by line (variant quantity, or standalone quantity)
4. append a single inflow transaction carrying a snapshot of the sold items

Steps 3 and 4 are separate collection writes and are NOT rolled back: if a
decrement fails part way, earlier decrements stay applied and no transaction
is recorded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..models import Product, ProductVariant, Transaction, TransactionItem, TransactionType
from ..validation import InsufficientStockError, NotFoundError, SaleError
from .inventory_service import InventoryService
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "Efectivo"


@dataclass(frozen=True)
class SaleLine:
    product_id: str
    quantity: int
    variant_id: Optional[str] = None


@dataclass
class SaleReceipt:
    transaction: Transaction
    products: list[Product] = field(default_factory=list)


@dataclass
class _ResolvedLine:
    line: SaleLine
    product: Product
    variant: Optional[ProductVariant]

    @property
    def available(self) -> int:
        if self.variant is not None:
            return self.variant.quantity
        return self.product.total_quantity


def describe_sale(items: list[TransactionItem]) -> str:
    if len(items) == 1:
        item = items[0]
        suffix = f" x{item.quantity}" if item.quantity > 1 else ""
        return f"Venta: {item.product_name}{suffix}"
    return f"Venta: {len(items)} productos"


def _normalize_lines(lines: Iterable[SaleLine]) -> list[SaleLine]:
    normalized: list[SaleLine] = []
    seen: set[str] = set()
    for line in lines:
        if line.quantity < 0:
            raise SaleError(
                "Sale line quantity cannot be negative",
                details={"productId": line.product_id, "quantity": line.quantity},
            )
        # A zero quantity removes the line rather than recording it
        if line.quantity == 0:
            continue
        if line.product_id in seen:
            raise SaleError(
                "Only one line per product is allowed",
                details={"productId": line.product_id},
            )
        seen.add(line.product_id)
        normalized.append(line)

    if not normalized:
        raise SaleError("Cannot post sale with no lines")
    return normalized


class SalesService:
    def __init__(
        self,
        inventory: InventoryService,
        ledger: LedgerService,
        *,
        enforce_stock: bool = True,
    ):
        self.inventory = inventory
        self.ledger = ledger
        self.enforce_stock = enforce_stock

    def _resolve(self, line: SaleLine) -> _ResolvedLine:
        product = self.inventory.get_product(line.product_id)
        if product is None:
            raise NotFoundError("Product", line.product_id)

        variant = None
        if line.variant_id:
            variant = product.find_variant(line.variant_id)
            if variant is None:
                raise NotFoundError("Variant", line.variant_id)
        elif product.has_variants and product.variants:
            raise SaleError(
                "A variant must be selected for this product",
                details={"productId": product.id},
            )
        return _ResolvedLine(line=line, product=product, variant=variant)

    def _validate_on_hand(self, resolved: list[_ResolvedLine]) -> None:
        insufficient = []
        for r in resolved:
            if r.available < r.line.quantity:
                insufficient.append({
                    "productId": r.product.id,
                    "variantId": r.variant.id if r.variant else None,
                    "requested": r.line.quantity,
                    "available": r.available,
                })

        if insufficient:
            raise InsufficientStockError(
                "Insufficient stock to post sale",
                details={"items": insufficient},
            )

    def post_sale(
        self,
        lines: Iterable[SaleLine],
        *,
        payment_method: str | None = DEFAULT_PAYMENT_METHOD,
        category: str | None = None,
    ) -> SaleReceipt:
        """
        Deplete stock for each line and record one inflow transaction.

        Raises:
            SaleError: If there are no positive lines, a line is negative, or a
                variant product is sold without choosing a variant
            NotFoundError: If a product or variant is missing
            InsufficientStockError: If enforce_stock is on and a line exceeds stock
        """
        resolved = [self._resolve(line) for line in _normalize_lines(lines)]

        if self.enforce_stock:
            self._validate_on_hand(resolved)

        updated: list[Product] = []
        for done, r in enumerate(resolved):
            try:
                if r.variant is not None:
                    product = self.inventory.update_variant_quantity(
                        r.product.id,
                        r.variant.id,
                        r.variant.quantity - r.line.quantity,
                    )
                else:
                    product = self.inventory.update_product(
                        r.product.id,
                        {"standalone_quantity": r.product.total_quantity - r.line.quantity},
                    )
            except Exception:
                logger.exception(
                    "Sale aborted after %d of %d stock updates; earlier updates remain applied",
                    done,
                    len(resolved),
                )
                raise
            updated.append(product)

        items = [
            TransactionItem(
                product_id=r.product.id,
                product_name=r.product.name,
                quantity=r.line.quantity,
                price=r.product.price,
                variant_name=r.variant.name if r.variant else None,
            )
            for r in resolved
        ]
        amount = sum(item.line_total for item in items)

        transaction = self.ledger.add_transaction(
            TransactionType.INFLOW,
            describe_sale(items),
            amount,
            category=category,
            payment_method=payment_method or None,
            items=items,
        )
        logger.info("Posted sale %s with %d line(s) for %s", transaction.id, len(items), amount)
        return SaleReceipt(transaction=transaction, products=updated)
