"""Orders API: placement from cart or explicit lines, visibility, status updates."""

import pytest

from conftest import auth_headers, load
from storefront.models import Order, OrderStatus, Product
from storefront.services.order import is_status_change_allowed

SHIPPING = {
    "full_name": "Test User",
    "address": "1 Trail Way",
    "city": "Boulder",
    "state": "CO",
    "postal_code": "80301",
    "country": "US",
    "phone": "+1 555 0100",
}


def _place(client, headers, product=None, quantity=1, **extra):
    body = {"shipping": SHIPPING, **extra}
    if product is not None:
        body["items"] = [{"product_id": product.id, "quantity": quantity}]
    return client.post("/api/orders", json=body, headers=headers)


def _set_status(client, headers, order_id, status):
    return client.put(f"/api/orders/{order_id}", json={"status": status}, headers=headers)


class TestPlaceOrder:
    def test_from_cart(self, client, engine, customer_headers, product):
        client.post("/api/cart", json={"product_id": product.id, "quantity": 2}, headers=customer_headers)

        response = _place(client, customer_headers)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["order_number"].startswith("ORD-")
        assert data["status"] == "pending"
        assert (data["items_price"], data["shipping_price"], data["tax_price"], data["total_price"]) == (
            200.0, 10.0, 30.0, 240.0
        )
        assert [(item["name"], item["quantity"], item["price"]) for item in data["items"]] == [("Trail Runner", 2, 100.0)]

        stored = load(engine, Product, product.id)
        assert (stored.quantity, stored.sold) == (18, 2)
        cart = client.get("/api/cart", headers=customer_headers).json()["data"]
        assert (cart["items"], cart["total_items"], cart["total_price"]) == ([], 0, 0)

    def test_explicit_items_use_current_price_and_keep_cart(self, client, customer_headers, make_product):
        product = make_product(price=20.0, discount_price=15.0)
        client.post("/api/cart", json={"product_id": product.id, "quantity": 1}, headers=customer_headers)

        response = _place(client, customer_headers, product, 3, keep_cart=True)

        assert response.json()["data"]["items_price"] == 45.0
        assert client.get("/api/cart", headers=customer_headers).json()["data"]["total_items"] == 1

    def test_empty_cart(self, client, customer_headers):
        response = _place(client, customer_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Cart is empty"

    def test_stock_covers_all_variant_lines(self, client, engine, customer_headers, make_product):
        product = make_product(quantity=5)
        body = {
            "shipping": SHIPPING,
            "items": [
                {"product_id": product.id, "quantity": 3, "color": "red"},
                {"product_id": product.id, "quantity": 3, "color": "blue"},
            ],
        }

        response = client.post("/api/orders", json=body, headers=customer_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Insufficient stock for Trail Runner"
        assert load(engine, Product, product.id).quantity == 5

    def test_unavailable_product(self, client, customer_headers, make_product):
        product = make_product(quantity=0)

        response = _place(client, customer_headers, product)

        assert response.status_code == 400

    def test_last_units_mark_product_out_of_stock(self, client, engine, customer_headers, make_product):
        product = make_product(quantity=2)

        _place(client, customer_headers, product, 2)

        assert load(engine, Product, product.id).status.value == "out of stock"

    def test_shipping_is_validated(self, client, customer_headers, product):
        response = client.post(
            "/api/orders",
            json={"shipping": {**SHIPPING, "city": ""}, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=customer_headers,
        )

        assert response.status_code == 400
        assert "shipping.city" in response.json()["errors"]

    def test_requires_authentication(self, client, product):
        assert _place(client, {}, product).status_code == 401


class TestReadOrders:
    def test_customers_see_only_their_own(self, client, make_user, customer_headers, admin_headers, make_product):
        product = make_product()
        other_headers = auth_headers(make_user("other@example.com"))
        _place(client, customer_headers, product)
        _place(client, other_headers, product)

        mine = client.get("/api/orders", headers=customer_headers).json()
        everything = client.get("/api/orders", headers=admin_headers).json()

        assert mine["pagination"]["total"] == 1
        assert mine["data"][0]["user"]["email"] == "customer@example.com"
        assert everything["pagination"]["total"] == 2

    def test_status_filter(self, client, customer_headers, admin_headers, product):
        first = _place(client, customer_headers, product).json()["data"]
        _place(client, customer_headers, product)
        _set_status(client, admin_headers, first["id"], "shipped")

        response = client.get("/api/orders", params={"status": "shipped"}, headers=customer_headers)

        assert [order["id"] for order in response.json()["data"]] == [first["id"]]

    def test_other_users_order_is_forbidden(self, client, make_user, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]
        other_headers = auth_headers(make_user("other@example.com"))

        assert client.get(f"/api/orders/{order['id']}", headers=other_headers).status_code == 403
        assert client.get(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 200

    def test_missing_order(self, client, customer_headers):
        response = client.get("/api/orders/4242", headers=customer_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"


class TestUpdateOrder:
    def test_delivery_and_payment_are_stamped(self, client, engine, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]

        response = client.put(
            f"/api/orders/{order['id']}",
            json={"status": "delivered", "is_paid": True, "tracking_number": "1Z999"},
            headers=admin_headers,
        )

        data = response.json()["data"]
        assert data["status"] == "delivered"
        assert data["is_delivered"] is True
        assert data["delivered_at"] is not None
        assert data["is_paid"] is True
        assert data["payment_status"] == "paid"
        assert data["paid_at"] is not None
        assert data["tracking_number"] == "1Z999"

    def test_cancelled_order_cannot_be_reopened(self, client, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]
        _set_status(client, admin_headers, order["id"], "cancelled")

        response = _set_status(client, admin_headers, order["id"], "processing")

        assert response.status_code == 400
        assert response.json()["errors"] == {"status": "Cannot move a cancelled order to processing"}

    def test_null_status_is_rejected(self, client, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]

        response = client.put(f"/api/orders/{order['id']}", json={"status": None}, headers=admin_headers)

        assert response.status_code == 400
        assert "status" in response.json()["errors"]

    def test_customers_cannot_update(self, client, customer_headers, product):
        order = _place(client, customer_headers, product).json()["data"]

        assert _set_status(client, customer_headers, order["id"], "shipped").status_code == 403

    @pytest.mark.parametrize(
        "current, target, allowed",
        [
            (OrderStatus.PENDING, OrderStatus.PROCESSING, True),
            (OrderStatus.SHIPPED, OrderStatus.PENDING, True),
            (OrderStatus.DELIVERED, OrderStatus.REFUNDED, True),
            (OrderStatus.DELIVERED, OrderStatus.CANCELLED, False),
            (OrderStatus.REFUNDED, OrderStatus.PENDING, False),
            (OrderStatus.CANCELLED, OrderStatus.CANCELLED, True),
        ],
    )
    def test_status_change_policy(self, current, target, allowed):
        assert is_status_change_allowed(current, target) is allowed


class TestDeleteOrder:
    def test_pending_order_is_deleted(self, client, engine, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]

        response = client.delete(f"/api/orders/{order['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert load(engine, Order, order["id"]) is None

    def test_processed_order_is_kept(self, client, engine, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]
        _set_status(client, admin_headers, order["id"], "processing")

        response = client.delete(f"/api/orders/{order['id']}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Only pending orders can be deleted"

    def test_order_numbers_stay_unique_after_delete(self, client, customer_headers, admin_headers, product):
        first = _place(client, customer_headers, product).json()["data"]
        second = _place(client, customer_headers, product).json()["data"]
        client.delete(f"/api/orders/{first['id']}", headers=admin_headers)

        third = _place(client, customer_headers, product)

        assert third.status_code == 201
        assert third.json()["data"]["order_number"] != second["order_number"]


class TestOrdersElsewhere:
    def test_delivered_purchase_verifies_review(self, client, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]
        _set_status(client, admin_headers, order["id"], "delivered")

        response = client.post(
            "/api/reviews",
            json={"product_id": product.id, "rating": 5, "comment": "Arrived fast and fits perfectly."},
            headers=customer_headers,
        )

        assert response.json()["data"]["verified"] is True

    def test_undelivered_purchase_does_not_verify(self, client, customer_headers, product):
        _place(client, customer_headers, product)

        response = client.post(
            "/api/reviews",
            json={"product_id": product.id, "rating": 5, "comment": "Not here yet but excited."},
            headers=customer_headers,
        )

        assert response.json()["data"]["verified"] is False

    def test_dashboard_counts_orders_and_revenue(self, client, customer_headers, admin_headers, product):
        kept = _place(client, customer_headers, product).json()["data"]
        dropped = _place(client, customer_headers, product).json()["data"]
        _set_status(client, admin_headers, dropped["id"], "cancelled")

        data = client.get("/api/stats/summary", headers=admin_headers).json()["data"]

        assert data["totalOrders"] == 2
        assert data["totalRevenue"] == kept["total_price"]
        assert data["ordersByStatus"]["pending"] == 1
        assert data["ordersByStatus"]["cancelled"] == 1
        assert data["orderStatusPercentages"]["pending"] == 50

    def test_customer_list(self, client, customer, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]

        response = client.get("/api/customers", params={"search": "customer@"}, headers=admin_headers)

        data = response.json()["data"]
        assert [(c["email"], c["order_count"], c["total_spent"]) for c in data] == [
            (customer.email, 1, order["total_price"])
        ]
        assert client.get("/api/customers", headers=customer_headers).status_code == 403

    def test_deleted_product_leaves_order_snapshot(self, client, customer_headers, admin_headers, product):
        order = _place(client, customer_headers, product).json()["data"]

        client.delete(f"/api/products/{product.id}", headers=admin_headers)

        item = client.get(f"/api/orders/{order['id']}", headers=customer_headers).json()["data"]["items"][0]
        assert (item["product_id"], item["name"], item["price"]) == (None, "Trail Runner", 100.0)
