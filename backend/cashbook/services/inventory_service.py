# Overview: Service-layer operations for the product catalog; owns products, variants and stock totals.

# backend/cashbook/services/inventory_service.py

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from ..models import Product, ProductVariant
from ..storage import PRODUCTS_KEY, CollectionStore, Unsubscribe
from ..time_utils import truncate_to_millis, utcnow
from ..validation import NotFoundError
from .identity_service import generate_id
"""
Catalog Invariants (authoritative)

Stock totals:
- With has_variants and at least one variant, total_quantity = sum(variant.quantity).
- Otherwise total_quantity IS the standalone quantity; there is no separate field,
  updates pass it in as standalone_quantity.
- update_variant_quantity clamps to zero and always re-sums the variants.

Mutations:
- Every mutation is a full read-modify-write of the inventory_products collection.
- updated_at is refreshed on every mutation; list order is updated_at descending.
- Numeric inputs are not range-checked (negative prices pass through as given).
"""

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 10

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "image",
    "price",
    "category",
    "has_variants",
    "variants",
    "standalone_quantity",
}


def calculate_total_quantity(
    has_variants: bool,
    variants: list[ProductVariant],
    standalone_quantity: int,
) -> int:
    if has_variants and variants:
        return sum(v.quantity for v in variants)
    return standalone_quantity


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class InventoryService:
    def __init__(
        self,
        store: CollectionStore,
        *,
        clock: Callable = utcnow,
        id_factory: Callable[[], str] = generate_id,
        low_stock_threshold: int = LOW_STOCK_THRESHOLD,
    ):
        self.store = store
        self.clock = clock
        self.id_factory = id_factory
        self.low_stock_threshold = low_stock_threshold

    def _load(self) -> list[Product]:
        return [Product.from_dict(row) for row in self.store.get(PRODUCTS_KEY)]

    def _save(self, products: list[Product]) -> None:
        self.store.put(PRODUCTS_KEY, [p.to_dict() for p in products])

    @staticmethod
    def _index_of(products: list[Product], product_id: str) -> int:
        for i, p in enumerate(products):
            if p.id == product_id:
                return i
        raise NotFoundError("Product", product_id)

    def _make_variant(self, value) -> ProductVariant:
        if isinstance(value, ProductVariant):
            return ProductVariant(
                id=value.id or self.id_factory(),
                name=value.name.strip(),
                quantity=value.quantity,
                sku=_clean_optional(value.sku),
            )
        return ProductVariant(
            id=value.get("id") or self.id_factory(),
            name=str(value["name"]).strip(),
            quantity=value.get("quantity", 0),
            sku=_clean_optional(value.get("sku")),
        )

    def list_products(
        self,
        search_term: str | None = None,
        category: str | None = None,
        low_stock: bool = False,
    ) -> list[Product]:
        """
        Products sorted by updated_at descending.

        Filters compose with AND:
        - search_term: case-insensitive substring of name, description or category
        - category: exact match
        - low_stock: total_quantity <= low_stock_threshold
        """
        products = self._load()

        if search_term:
            term = search_term.lower()
            products = [
                p for p in products
                if term in p.name.lower()
                or (p.description and term in p.description.lower())
                or (p.category and term in p.category.lower())
            ]

        if category:
            products = [p for p in products if p.category == category]

        if low_stock:
            products = [p for p in products if p.total_quantity <= self.low_stock_threshold]

        return sorted(products, key=lambda p: p.updated_at, reverse=True)

    def get_product(self, product_id: str) -> Optional[Product]:
        for p in self._load():
            if p.id == product_id:
                return p
        return None

    def create_product(
        self,
        name: str,
        price: float,
        description: str | None = None,
        image: str | None = None,
        category: str | None = None,
        has_variants: bool = False,
        variants: Iterable = (),
        standalone_quantity: int = 0,
    ) -> Product:
        products = self._load()

        product_variants = [self._make_variant(v) for v in variants]
        now = truncate_to_millis(self.clock())

        product = Product(
            id=self.id_factory(),
            name=name.strip(),
            description=_clean_optional(description),
            image=image,
            price=price,
            total_quantity=calculate_total_quantity(has_variants, product_variants, standalone_quantity),
            has_variants=has_variants,
            variants=product_variants,
            category=_clean_optional(category),
            created_at=now,
            updated_at=now,
        )

        products.append(product)
        self._save(products)
        logger.debug("Created product id=%s name=%s", product.id, product.name)
        return product

    def update_product(self, product_id: str, patch: dict) -> Product:
        """
        Apply a partial update. Keys outside PRODUCT_MUTABLE_FIELDS are ignored.

        total_quantity is recomputed from the post-update has_variants/variants and
        standalone_quantity, each falling back to the current value when absent.

        Raises:
            NotFoundError: If no product has product_id
        """
        products = self._load()
        index = self._index_of(products, product_id)
        current = products[index]
        patch = {k: v for k, v in patch.items() if k in PRODUCT_MUTABLE_FIELDS}

        has_variants = patch.get("has_variants", current.has_variants)
        if "variants" in patch:
            variants = [self._make_variant(v) for v in patch["variants"] or []]
        else:
            variants = current.variants
        standalone = patch.get("standalone_quantity", current.total_quantity)

        if "name" in patch:
            current.name = (patch["name"] or "").strip() or current.name
        if "description" in patch:
            current.description = _clean_optional(patch["description"])
        if "image" in patch:
            current.image = patch["image"]
        if "price" in patch:
            current.price = patch["price"]
        if "category" in patch:
            current.category = _clean_optional(patch["category"])

        current.has_variants = has_variants
        current.variants = variants
        current.total_quantity = calculate_total_quantity(has_variants, variants, standalone)
        current.updated_at = truncate_to_millis(self.clock())

        products[index] = current
        self._save(products)
        logger.debug("Updated product id=%s fields=%s", product_id, ", ".join(sorted(patch)))
        return current

    def delete_product(self, product_id: str) -> None:
        """Remove a product; deleting an absent id is a no-op write."""
        products = self._load()
        remaining = [p for p in products if p.id != product_id]
        self._save(remaining)
        if len(remaining) != len(products):
            logger.debug("Deleted product id=%s", product_id)

    def update_variant_quantity(self, product_id: str, variant_id: str, new_quantity: int) -> Product:
        """
        Set one variant's stock, clamped to zero, and re-sum total_quantity.

        Raises:
            NotFoundError: If the product or the variant is missing
        """
        products = self._load()
        index = self._index_of(products, product_id)
        product = products[index]

        variant = product.find_variant(variant_id)
        if variant is None:
            raise NotFoundError("Variant", variant_id)

        variant.quantity = max(0, new_quantity)
        product.total_quantity = sum(v.quantity for v in product.variants)
        product.updated_at = truncate_to_millis(self.clock())

        products[index] = product
        self._save(products)
        return product

    def categories(self) -> list[str]:
        """Sorted distinct non-empty categories across all products."""
        return sorted({p.category for p in self._load() if p.category})

    def subscribe(self, callback: Callable[[list[Product]], None]) -> Unsubscribe:
        callback(self._load())
        return self.store.on_change(PRODUCTS_KEY, lambda event: callback(self._load()))
