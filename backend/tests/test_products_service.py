"""
Product service tests.

Verifies:
- Non-admin callers never see or touch another owner's products
- Admins see everything but still own what they create
- Case-insensitive, trimmed name uniqueness per owner
- Stock history is written only when stock changes
- Listing filters, sorting, pagination and summary counters
- CSV import accounting: added + skipped == rows
"""

import csv
import io

import pytest

from conftest import caller_for, make_product
from inventory_api.models import Product, StockChangeEvent, Role
from inventory_api.services import products_service
from inventory_api.services.products_service import ListQuery, ProductInput
from inventory_api.validation import DuplicateNameError, ValidationError


def product_input(name="Hammer", stock=10, **overrides):
    fields = {"name": name, "unit": "pcs", "category": "Tools", "brand": "Generic", "stock": stock}
    fields.update(overrides)
    return ProductInput(**fields)


# =============================================================================
# OWNERSHIP
# =============================================================================


class TestOwnership:

    def test_create_assigns_caller_as_owner(self, alice):
        product = products_service.create_product(caller_for(alice), product_input())

        assert product.owner_id == alice.id
        assert product.status == "In Stock"
        assert product.created_at == product.updated_at

    def test_admin_still_owns_created_product(self, admin):
        product = products_service.create_product(caller_for(admin), product_input())
        assert product.owner_id == admin.id

    def test_non_admin_cannot_see_others(self, alice, bob):
        make_product(alice, "Alice Drill")
        make_product(bob, "Bob Saw")

        listing = products_service.list_products(caller_for(alice), ListQuery())
        assert [p["name"] for p in listing["data"]] == ["Alice Drill"]
        assert [p["name"] for p in products_service.search_products(caller_for(alice), "")] == ["Alice Drill"]
        assert "Bob Saw" not in products_service.export_csv(caller_for(alice))

    def test_non_admin_cannot_update_or_delete_others(self, db_session, alice, bob):
        bobs = make_product(bob, "Bob Saw", stock=3)

        assert products_service.update_product(caller_for(alice), bobs.id, product_input("Taken", stock=0)) is None
        assert products_service.delete_product(caller_for(alice), bobs.id) is False

        db_session.refresh(bobs)
        assert bobs.name == "Bob Saw"
        assert bobs.stock == 3
        assert db_session.query(StockChangeEvent).count() == 0

    def test_admin_sees_all_owners(self, alice, bob, admin):
        make_product(alice, "Alice Drill")
        make_product(bob, "Bob Saw")

        listing = products_service.list_products(caller_for(admin), ListQuery())
        assert listing["total"] == 2

    def test_admin_can_delete_any_product(self, db_session, alice, admin):
        product = make_product(alice, "Alice Drill")

        assert products_service.delete_product(caller_for(admin), product.id) is True
        assert db_session.query(Product).count() == 0

    def test_deleted_flag_hides_rows(self, db_session, alice):
        hidden = make_product(alice, "Legacy")
        hidden.is_deleted = True
        db_session.commit()

        assert products_service.list_products(caller_for(alice), ListQuery())["total"] == 0


# =============================================================================
# NAME UNIQUENESS
# =============================================================================


class TestDuplicateNames:

    def test_same_owner_duplicate_rejected_case_insensitively(self, alice):
        products_service.create_product(caller_for(alice), product_input("Hammer"))

        with pytest.raises(DuplicateNameError):
            products_service.create_product(caller_for(alice), product_input("  hAMMER "))

    def test_same_name_different_owners_allowed(self, alice, bob):
        products_service.create_product(caller_for(alice), product_input("Hammer"))
        products_service.create_product(caller_for(bob), product_input("Hammer"))

    def test_admin_duplicate_check_is_global(self, alice, admin):
        make_product(alice, "Hammer")

        with pytest.raises(DuplicateNameError):
            products_service.create_product(caller_for(admin), product_input("hammer"))

    def test_update_excludes_own_row(self, alice):
        product = make_product(alice, "Hammer")

        updated = products_service.update_product(caller_for(alice), product.id, product_input("HAMMER"))
        assert updated.name == "HAMMER"

    def test_update_rejects_other_products_name(self, alice):
        make_product(alice, "Hammer")
        wrench = make_product(alice, "Wrench")

        with pytest.raises(DuplicateNameError):
            products_service.update_product(caller_for(alice), wrench.id, product_input("hammer"))


# =============================================================================
# STOCK HISTORY
# =============================================================================


class TestStockHistory:

    def test_stock_change_appends_one_event(self, alice):
        product = make_product(alice, "Hammer", stock=10)

        products_service.update_product(caller_for(alice), product.id, product_input("Hammer", stock=5))

        history = products_service.get_history(product.id)
        assert len(history) == 1
        assert history[0]["old_stock"] == 10
        assert history[0]["new_stock"] == 5
        assert history[0]["changed_by"] == "alice@example.com"

    def test_unchanged_stock_appends_nothing(self, alice):
        product = make_product(alice, "Hammer", stock=10)

        products_service.update_product(caller_for(alice), product.id, product_input("Hammer", stock=10, brand="Acme"))

        assert products_service.get_history(product.id) == []

    def test_history_newest_first(self, alice):
        product = make_product(alice, "Hammer", stock=10)
        for stock in (7, 3, 0):
            products_service.update_product(caller_for(alice), product.id, product_input("Hammer", stock=stock))

        history = products_service.get_history(product.id)
        assert [h["new_stock"] for h in history] == [0, 3, 7]

    def test_actor_falls_back_when_token_has_no_email(self, alice):
        product = make_product(alice, "Hammer", stock=10)
        caller = caller_for(alice)
        anonymous = type(caller)(account_id=caller.account_id, email=None, name=None, role=Role.USER)

        products_service.update_product(anonymous, product.id, product_input("Hammer", stock=1))
        assert products_service.get_history(product.id)[0]["changed_by"] == "admin"

    def test_status_follows_stock(self, alice):
        product = make_product(alice, "Hammer", stock=10)

        updated = products_service.update_product(caller_for(alice), product.id, product_input("Hammer", stock=0))
        assert updated.status == "Out of Stock"

    def test_image_and_description_retained_when_absent(self, db_session, alice):
        product = make_product(alice, "Hammer")
        product.image = "/uploads/hammer.png"
        product.description = "Claw hammer"
        db_session.commit()

        updated = products_service.update_product(caller_for(alice), product.id, product_input("Hammer"))
        assert updated.image == "/uploads/hammer.png"
        assert updated.description == "Claw hammer"

        updated = products_service.update_product(
            caller_for(alice), product.id,
            product_input("Hammer", image="https://cdn.example.com/h.png", description=""),
        )
        assert updated.image == "https://cdn.example.com/h.png"
        assert updated.description == ""

    def test_delete_keeps_history(self, db_session, alice):
        product = make_product(alice, "Hammer", stock=10)
        product_id = product.id
        products_service.update_product(caller_for(alice), product_id, product_input("Hammer", stock=5))

        assert products_service.delete_product(caller_for(alice), product_id) is True

        assert db_session.get(Product, product_id) is None
        assert db_session.query(StockChangeEvent).filter_by(product_id=product_id).count() == 1
        history = products_service.get_history(product_id)
        assert [(h["old_stock"], h["new_stock"]) for h in history] == [(10, 5)]

    def test_deleted_product_id_is_not_reused(self, db_session, alice):
        first = make_product(alice, "Hammer", stock=10)
        first_id = first.id
        products_service.update_product(caller_for(alice), first_id, product_input("Hammer", stock=4))
        products_service.delete_product(caller_for(alice), first_id)

        second = make_product(alice, "Hammer", stock=1)

        assert second.id != first_id
        assert products_service.get_history(second.id) == []


# =============================================================================
# INPUT COERCION
# =============================================================================


class TestProductInput:

    def test_non_numeric_stock_becomes_zero(self):
        data = ProductInput.from_payload({"name": "A", "unit": "u", "category": "c", "brand": "b", "stock": "lots"})
        assert data.stock == 0

    def test_numeric_string_stock(self):
        data = ProductInput.from_payload({"name": "A", "unit": "u", "category": "c", "brand": "b", "stock": " 12 "})
        assert data.stock == 12

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError):
            ProductInput.from_payload({"name": "A", "unit": "u", "category": "c", "brand": "b", "stock": -1})

    @pytest.mark.parametrize("missing", ["name", "unit", "category", "brand"])
    def test_required_fields(self, missing):
        payload = {"name": "A", "unit": "u", "category": "c", "brand": "b", "stock": 1}
        payload[missing] = "   "
        with pytest.raises(ValidationError):
            ProductInput.from_payload(payload)


# =============================================================================
# LISTING AND SUMMARY
# =============================================================================


class TestListing:

    @pytest.fixture
    def catalog(self, alice):
        make_product(alice, "Anvil", stock=0, category="Metal", brand="Zeta")
        make_product(alice, "Bolt", stock=3, category=" tools ", brand="Acme")
        make_product(alice, "Chisel", stock=5, category="Tools", brand="Mid")
        make_product(alice, "Drill", stock=40, category="Power", brand="Acme")
        return caller_for(alice)

    def test_default_sort_by_name(self, catalog):
        names = [p["name"] for p in products_service.list_products(catalog, ListQuery())["data"]]
        assert names == ["Anvil", "Bolt", "Chisel", "Drill"]

    def test_sort_by_stock_desc(self, catalog):
        result = products_service.list_products(catalog, ListQuery(sort_by="stock", order="DESC"))
        assert [p["stock"] for p in result["data"]] == [40, 5, 3, 0]

    def test_unknown_sort_field_falls_back_to_name(self, catalog):
        result = products_service.list_products(catalog, ListQuery(sort_by="price", order="sideways"))
        assert [p["name"] for p in result["data"]] == ["Anvil", "Bolt", "Chisel", "Drill"]

    def test_search_is_case_insensitive_substring(self, catalog):
        result = products_service.list_products(catalog, ListQuery(search="dRI"))
        assert [p["name"] for p in result["data"]] == ["Drill"]

    def test_category_is_trimmed_case_insensitive_equality(self, catalog):
        result = products_service.list_products(catalog, ListQuery(category="TOOLS"))
        assert [p["name"] for p in result["data"]] == ["Bolt", "Chisel"]

    def test_low_stock_excludes_zero(self, catalog):
        result = products_service.list_products(catalog, ListQuery(low_stock=True))
        assert [p["name"] for p in result["data"]] == ["Bolt", "Chisel"]

    def test_pagination(self, catalog):
        result = products_service.list_products(catalog, ListQuery(page=2, limit=3))

        assert [p["name"] for p in result["data"]] == ["Drill"]
        assert result["page"] == 2
        assert result["limit"] == 3
        assert result["total"] == 4
        assert result["totalPages"] == 2

    def test_summary(self, catalog, bob):
        make_product(bob, "Not Mine", stock=1, category="Other")

        assert products_service.summary(catalog) == {
            "totalProducts": 4,
            "outOfStockCount": 1,
            "lowStockCount": 2,
            "categoryCount": 3,
        }

    def test_query_args_parsing(self):
        params = ListQuery.from_args({"page": "0", "limit": "abc", "sortBy": "brand", "lowStock": "true"})

        assert params.page == 1
        assert params.limit == products_service.DEFAULT_PAGE_SIZE
        assert params.sort_by == "brand"
        assert params.low_stock is True

    def test_query_args_prefer_web_client_names(self):
        params = ListQuery.from_args({"sortOrder": "desc", "order": "asc", "lowStockOnly": "true"})

        assert params.order == "desc"
        assert params.low_stock is True

    def test_search_treats_backslash_literally(self, catalog, alice):
        make_product(alice, "Pipe 1\\2")

        result = products_service.search_products(catalog, "1\\")
        assert [p["name"] for p in result] == ["Pipe 1\\2"]


# =============================================================================
# CSV IMPORT / EXPORT
# =============================================================================


class TestImportExport:

    def test_import_counts_every_row(self, db_session, alice):
        make_product(alice, "Hammer")
        rows = [
            {"name": "Saw", "unit": "pcs", "category": "Tools", "brand": "Acme", "stock": "4"},
            {"name": "  ", "unit": "pcs", "category": "Tools", "brand": "Acme", "stock": "1"},
            {"name": "hammer", "unit": "pcs", "category": "Tools", "brand": "Acme", "stock": "1"},
            {"name": "Glue", "unit": "tube", "category": "Misc", "brand": "Stick", "stock": "n/a"},
            {"name": "Broken", "unit": "pcs", "category": "Tools", "brand": "Acme", "stock": "-3"},
        ]

        result = products_service.import_rows(caller_for(alice), rows)

        assert result.added == 2
        assert result.skipped == 3
        assert result.added + result.skipped == len(rows)
        assert len(result.duplicates) == 1
        assert result.duplicates[0]["name"] == "hammer"

        glue = db_session.query(Product).filter_by(name="Glue").one()
        assert glue.stock == 0
        assert glue.status == "Out of Stock"
        assert glue.owner_id == alice.id

    def test_import_duplicate_check_is_per_caller_even_for_admin(self, db_session, alice, admin):
        make_product(alice, "Hammer")

        result = products_service.import_rows(caller_for(admin), [{"name": "Hammer", "stock": "1"}])

        assert result.added == 1
        assert result.duplicates == []

    def test_import_repeated_name_in_same_file(self, alice):
        rows = [{"name": "Saw", "stock": "1"}, {"name": "SAW", "stock": "2"}]

        result = products_service.import_rows(caller_for(alice), rows)
        assert (result.added, result.skipped) == (1, 1)

    def test_parse_csv_lowercases_headers(self):
        rows = products_service.parse_csv("Name,Unit,Stock\nSaw,pcs,3\n")
        assert rows == [{"name": "Saw", "unit": "pcs", "stock": "3"}]

    def test_export_quotes_every_field(self, db_session, alice):
        product = make_product(alice, 'Bolt "M8"', stock=0)
        product.description = "zinc, plated"
        db_session.commit()

        text = products_service.export_csv(caller_for(alice))
        lines = text.splitlines()

        assert lines[0] == '"name","unit","category","brand","stock","status","image","description"'
        assert lines[1] == '"Bolt ""M8""","pcs","Tools","Generic","0","Out of Stock","","zinc, plated"'
        parsed = list(csv.reader(io.StringIO(text)))
        assert parsed[1][0] == 'Bolt "M8"'
