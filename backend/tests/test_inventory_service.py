# Overview: Pytest coverage for catalog stock totals, filters and subscriptions.

import pytest

from cashbook.models import ProductVariant
from cashbook.storage import PRODUCTS_KEY
from cashbook.validation import NotFoundError


class TestCreateProduct:
    def test_variant_product_totals_variant_quantities(self, shirt):
        assert shirt.has_variants is True
        assert shirt.total_quantity == 8
        assert [v.name for v in shirt.variants] == ["S", "M"]
        assert all(v.id for v in shirt.variants)
        assert shirt.variants[0].id != shirt.variants[1].id

    def test_standalone_product_uses_standalone_quantity(self, mug, clock):
        assert mug.total_quantity == 12
        assert mug.variants == []
        assert mug.created_at == mug.updated_at == clock.now

    def test_has_variants_with_no_variants_falls_back_to_standalone(self, inventory):
        product = inventory.create_product(name="Cap", price=5, has_variants=True, standalone_quantity=4)
        assert product.total_quantity == 4

    def test_strings_are_trimmed(self, inventory):
        product = inventory.create_product(
            name="  Tote bag ",
            price=9,
            description="  canvas  ",
            category=" Bolsos ",
        )
        assert product.name == "Tote bag"
        assert product.description == "canvas"
        assert product.category == "Bolsos"

    def test_negative_price_passes_through(self, inventory):
        """Numeric inputs are not range-checked."""
        product = inventory.create_product(name="Refund voucher", price=-3, standalone_quantity=1)
        assert product.price == -3

    def test_product_is_persisted_in_stored_shape(self, store, shirt):
        stored = store.get(PRODUCTS_KEY)
        assert len(stored) == 1
        row = stored[0]
        assert row["id"] == shirt.id
        assert row["totalQuantity"] == 8
        assert row["hasVariants"] is True
        assert row["createdAt"].endswith("Z")
        assert "description" not in row


class TestUpdateProduct:
    def test_missing_product_raises_not_found(self, inventory):
        with pytest.raises(NotFoundError) as exc:
            inventory.update_product("nope", {"name": "x"})
        assert exc.value.entity == "Product"

    def test_standalone_quantity_update(self, inventory, mug, clock):
        clock.advance(minutes=5)
        updated = inventory.update_product(mug.id, {"standalone_quantity": 3})
        assert updated.total_quantity == 3
        assert updated.updated_at == clock.now
        assert updated.created_at == mug.created_at

    def test_update_without_quantity_keeps_current_total(self, inventory, mug):
        updated = inventory.update_product(mug.id, {"price": 8})
        assert updated.price == 8
        assert updated.total_quantity == 12

    def test_replacing_variants_recomputes_total(self, inventory, shirt):
        variants = shirt.variants + [ProductVariant(id="", name="L", quantity=10)]
        updated = inventory.update_product(shirt.id, {"variants": variants})
        assert updated.total_quantity == 18
        assert updated.variants[2].id

    def test_switching_off_variants_uses_standalone(self, inventory, shirt):
        updated = inventory.update_product(shirt.id, {"has_variants": False, "standalone_quantity": 2})
        assert updated.total_quantity == 2

    def test_switching_off_variants_keeps_last_total_without_standalone(self, inventory, shirt):
        updated = inventory.update_product(shirt.id, {"has_variants": False})
        assert updated.total_quantity == 8

    def test_standalone_quantity_ignored_while_variants_present(self, inventory, shirt):
        updated = inventory.update_product(shirt.id, {"standalone_quantity": 100})
        assert updated.total_quantity == 8

    def test_blank_name_keeps_previous_and_unknown_keys_ignored(self, inventory, mug):
        updated = inventory.update_product(mug.id, {"name": "   ", "id": "hijack", "category": ""})
        assert updated.name == "Mug"
        assert updated.id == mug.id
        assert updated.category is None


class TestVariantQuantity:
    def test_sets_quantity_and_resums(self, inventory, shirt, clock):
        clock.advance(seconds=1)
        small = shirt.variants[0]
        updated = inventory.update_variant_quantity(shirt.id, small.id, 1)
        assert updated.find_variant(small.id).quantity == 1
        assert updated.total_quantity == 4
        assert updated.updated_at == clock.now

    def test_clamps_to_zero(self, inventory, shirt):
        medium = shirt.variants[1]
        updated = inventory.update_variant_quantity(shirt.id, medium.id, -7)
        assert updated.find_variant(medium.id).quantity == 0
        assert updated.total_quantity == 5

    def test_missing_variant_raises_not_found(self, inventory, shirt):
        with pytest.raises(NotFoundError) as exc:
            inventory.update_variant_quantity(shirt.id, "ghost", 1)
        assert exc.value.entity == "Variant"

    def test_missing_product_raises_not_found(self, inventory):
        with pytest.raises(NotFoundError):
            inventory.update_variant_quantity("ghost", "ghost", 1)


class TestListProducts:
    def test_sorted_by_updated_at_descending(self, inventory, clock):
        first = inventory.create_product(name="First", price=1, standalone_quantity=50)
        clock.advance(minutes=1)
        second = inventory.create_product(name="Second", price=1, standalone_quantity=50)
        clock.advance(minutes=1)
        inventory.update_product(first.id, {"price": 2})

        assert [p.id for p in inventory.list_products()] == [first.id, second.id]

    def test_search_matches_name_description_or_category(self, inventory, clock):
        inventory.create_product(name="Blue Shirt", price=1)
        inventory.create_product(name="Hat", price=1, description="made of SHIRT fabric")
        inventory.create_product(name="Sock", price=1, category="Shirts & more")
        inventory.create_product(name="Mug", price=1)

        names = sorted(p.name for p in inventory.list_products(search_term="shirt"))
        assert names == ["Blue Shirt", "Hat", "Sock"]

    def test_category_is_exact_match(self, inventory, shirt, mug):
        assert [p.id for p in inventory.list_products(category="Ropa")] == [shirt.id]
        assert inventory.list_products(category="ropa") == []

    def test_low_stock_threshold_is_inclusive(self, inventory, shirt, mug):
        ten = inventory.create_product(name="Ten", price=1, standalone_quantity=10)
        low = {p.id for p in inventory.list_products(low_stock=True)}
        assert low == {shirt.id, ten.id}

    def test_filters_compose(self, inventory, shirt, mug):
        assert inventory.list_products(category="Hogar", low_stock=True) == []
        assert [p.id for p in inventory.list_products(search_term="sh", low_stock=True)] == [shirt.id]


class TestCatalogMisc:
    def test_delete_is_idempotent(self, inventory, mug):
        inventory.delete_product(mug.id)
        inventory.delete_product(mug.id)
        assert inventory.get_product(mug.id) is None

    def test_categories_sorted_distinct_non_empty(self, inventory, shirt, mug):
        inventory.create_product(name="Other shirt", price=1, category="Ropa")
        inventory.create_product(name="No category", price=1, category="  ")
        assert inventory.categories() == ["Hogar", "Ropa"]

    def test_subscribe_fires_immediately_and_on_change(self, inventory, mug):
        seen = []
        unsubscribe = inventory.subscribe(lambda products: seen.append([p.total_quantity for p in products]))
        assert seen == [[12]]

        inventory.update_product(mug.id, {"standalone_quantity": 11})
        assert seen[-1] == [11]

        unsubscribe()
        unsubscribe()
        inventory.delete_product(mug.id)
        assert len(seen) == 2
