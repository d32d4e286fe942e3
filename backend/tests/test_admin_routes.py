"""
Admin API tests.

Verifies:
- Account listing with product counts, newest first
- Non-admin accounts can be deleted along with their products
- Stock history outlives the deleted products
- Admin accounts cannot be deleted
"""

from conftest import caller_for, make_product
from inventory_api.models import Account, Product, StockChangeEvent
from inventory_api.services import products_service
from inventory_api.services.products_service import ProductInput


class TestAdminUsers:

    def test_list_users_with_product_counts(self, client, alice, bob, admin, admin_headers):
        make_product(alice, "Drill")
        make_product(alice, "Saw")

        resp = client.get("/api/admin/users", headers=admin_headers)

        assert resp.status_code == 200
        users = {u["email"]: u for u in resp.get_json()}
        assert users["alice@example.com"]["productCount"] == 2
        assert users["bob@example.com"]["productCount"] == 0
        assert users["admin@example.com"]["role"] == "admin"
        assert set(users["alice@example.com"]) == {"id", "name", "email", "role", "created_at", "productCount"}

    def test_list_is_newest_first(self, client, alice, bob, admin, admin_headers):
        ids = [u["id"] for u in client.get("/api/admin/users", headers=admin_headers).get_json()]
        assert ids == sorted(ids, reverse=True)

    def test_delete_user_cascades_products(self, client, db_session, alice, admin_headers):
        make_product(alice, "Drill")

        resp = client.delete(f"/api/admin/users/{alice.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert db_session.query(Account).filter_by(email="alice@example.com").count() == 0
        assert db_session.query(Product).count() == 0

    def test_delete_user_keeps_stock_history(self, client, db_session, alice, admin_headers):
        product = make_product(alice, "Drill", stock=8)
        product_id = product.id
        products_service.update_product(caller_for(alice), product_id, ProductInput(
            name="Drill", unit="pcs", category="Tools", brand="Generic", stock=2,
        ))

        resp = client.delete(f"/api/admin/users/{alice.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert db_session.query(Product).count() == 0
        events = db_session.query(StockChangeEvent).filter_by(product_id=product_id).all()
        assert [(e.old_stock, e.new_stock) for e in events] == [(8, 2)]

    def test_cannot_delete_admin(self, client, admin, admin_headers):
        resp = client.delete(f"/api/admin/users/{admin.id}", headers=admin_headers)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Cannot delete admin accounts"

    def test_delete_missing_user(self, client, admin_headers):
        resp = client.delete("/api/admin/users/99999", headers=admin_headers)

        assert resp.status_code == 404
        assert resp.get_json()["error"] == "User not found"

    def test_non_admin_forbidden(self, client, bob, alice_headers):
        resp = client.delete(f"/api/admin/users/{bob.id}", headers=alice_headers)

        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Forbidden: Admins only", "message": "Forbidden: Admins only"}
