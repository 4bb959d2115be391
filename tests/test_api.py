from decimal import Decimal

import pytest
import redis

ADMIN = {"X-User-Id": "admin-1", "X-User-Admin": "true"}


def money(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def shopper(client):
    res = client.post("/api/users", json={"id": "u-1", "name": "Ana", "email": "ana@example.com"})
    assert res.status_code == 201
    return {"X-User-Id": "u-1"}


@pytest.fixture
def catalog(client):
    category = client.post("/api/categories", json={"name": "Kitchen"}, headers=ADMIN).json()
    mug = client.post(
        "/api/products",
        json={"name": "Mug", "price": "10.00", "category_id": category["id"]},
        headers=ADMIN,
    ).json()
    pen = client.post("/api/products", json={"name": "Pen", "price": "5.00"}, headers=ADMIN).json()
    return {"category": category, "mug": mug, "pen": pen}


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_cart_requires_identity(client):
    res = client.get("/api/cart")
    assert res.status_code == 401
    assert res.json() == {"message": "User is not authenticated", "error": None}


def test_admin_routes_reject_shoppers(client, shopper):
    res = client.post("/api/products", json={"name": "X", "price": "1"}, headers=shopper)
    assert res.status_code == 403

    res = client.get("/api/admin/orders", headers=shopper)
    assert res.status_code == 403


def test_malformed_payload_is_a_bad_request(client, shopper):
    res = client.post("/api/cart/items", json={"product_id": "p", "quantity": "many"}, headers=shopper)
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid data"


def test_missing_entities_are_404(client, shopper):
    assert client.get("/api/products/nope").status_code == 404
    assert client.get("/api/orders/nope", headers=shopper).status_code == 404
    res = client.post("/api/cart/items", json={"product_id": "nope"}, headers=shopper)
    assert res.status_code == 404
    assert res.json()["message"] == "Product not found"


def test_shopping_flow(client, shopper, catalog):
    client.post(
        "/api/coupons",
        json={"code": "SAVE10", "discount_type": "percentage", "discount_value": "10"},
        headers=ADMIN,
    )

    res = client.post(
        "/api/cart/items",
        json={"product_id": catalog["mug"]["id"], "quantity": 2},
        headers=shopper,
    )
    assert res.status_code == 201
    res = client.post("/api/cart/items", json={"product_id": catalog["pen"]["id"]}, headers=shopper)
    pen_item = res.json()["item"]
    assert money(res.json()["cart"]["subtotal"]) == Decimal("25")

    res = client.post("/api/cart/coupon", json={"code": "SAVE10"}, headers=shopper)
    assert res.status_code == 200
    cart = res.json()["cart"]
    assert money(cart["discount"]) == Decimal("2.5")
    assert money(cart["total"]) == Decimal("22.5")

    res = client.delete(f"/api/cart/items/{pen_item['id']}", headers=shopper)
    cart = res.json()["cart"]
    assert money(cart["subtotal"]) == Decimal("20")
    assert money(cart["discount"]) == Decimal("2")
    assert money(cart["total"]) == Decimal("18")

    res = client.post(
        "/api/orders",
        json={"delivery_type": "pickup", "payment_method": "pix", "payment_status": "paid"},
        headers=shopper,
    )
    assert res.status_code == 201
    order = res.json()["order"]
    assert order["coupon_code"] == "SAVE10"
    assert money(order["total"]) == Decimal("18")
    assert len(order["items"]) == 1

    cart = client.get("/api/cart", headers=shopper).json()
    assert cart["items"] == []
    assert money(cart["total"]) == 0

    orders = client.get("/api/orders", headers=shopper).json()
    assert [o["id"] for o in orders] == [order["id"]]

    res = client.put(f"/api/orders/{order['id']}/status", json={"status": "delivered"}, headers=ADMIN)
    assert res.json()["order"]["status"] == "delivered"

    res = client.delete(f"/api/orders/{order['id']}", headers=shopper)
    assert res.status_code == 400
    assert client.get(f"/api/orders/{order['id']}", headers=shopper).json()["status"] == "delivered"


def test_empty_cart_checkout(client, shopper):
    client.get("/api/cart", headers=shopper)
    res = client.post(
        "/api/orders",
        json={"delivery_type": "pickup", "payment_method": "pix", "payment_status": "paid"},
        headers=shopper,
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Cart is empty"
    assert client.get("/api/orders", headers=shopper).json() == []


def test_validate_endpoint_reporting(client):
    client.post(
        "/api/coupons",
        json={"code": "BIG", "discount_type": "fixed", "discount_value": "20", "min_purchase": "100"},
        headers=ADMIN,
    )

    res = client.post("/api/coupons/validate", json={"code": "NOPE", "cart_total": "50"})
    assert res.status_code == 404
    assert res.json()["valid"] is False

    res = client.post("/api/coupons/validate", json={"code": "BIG", "cart_total": "50"})
    assert res.status_code == 200
    assert res.json()["valid"] is False
    assert money(res.json()["min_purchase"]) == Decimal("100")

    res = client.post("/api/coupons/validate", json={"code": "BIG", "cart_total": "150"})
    body = res.json()
    assert body["valid"] is True
    assert money(body["discount"]) == Decimal("20")
    assert body["coupon"]["code"] == "BIG"


def test_duplicate_coupon_is_a_conflict(client):
    body = {"code": "DUP", "discount_type": "fixed", "discount_value": "5"}
    assert client.post("/api/coupons", json=body, headers=ADMIN).status_code == 201
    res = client.post("/api/coupons", json=body, headers=ADMIN)
    assert res.status_code == 409


def test_address_book(client, shopper):
    address = {
        "postal_code": "01001-000",
        "street": "Rua Direita",
        "number": "1",
        "neighborhood": "Se",
        "city": "Sao Paulo",
        "state": "SP",
        "is_default": True,
    }
    first = client.post("/api/addresses", json=address, headers=shopper).json()
    second = client.post("/api/addresses", json={**address, "number": "2"}, headers=shopper).json()

    listed = client.get("/api/addresses", headers=shopper).json()
    assert [a["id"] for a in listed if a["is_default"]] == [second["id"]]

    res = client.put(f"/api/addresses/{first['id']}/default", headers=shopper)
    assert res.json()["address"]["is_default"] is True

    assert client.delete(f"/api/addresses/{first['id']}", headers=shopper).status_code == 200
    listed = client.get("/api/addresses", headers=shopper).json()
    assert [(a["id"], a["is_default"]) for a in listed] == [(second["id"], True)]

    res = client.put("/api/cart/shipping-address", json={"address_id": second["id"]}, headers=shopper)
    assert res.json()["cart"]["shipping_address_id"] == second["id"]
    assert client.delete(f"/api/addresses/{second['id']}", headers=shopper).status_code == 409

    res = client.delete("/api/cart/shipping-address", headers=shopper)
    assert res.json()["cart"]["shipping_address_id"] is None
    assert client.delete(f"/api/addresses/{second['id']}", headers=shopper).status_code == 200


def test_product_delete_blocked_by_cart(client, shopper, catalog):
    client.post("/api/cart/items", json={"product_id": catalog["mug"]["id"]}, headers=shopper)

    res = client.delete(f"/api/products/{catalog['mug']['id']}", headers=ADMIN)
    assert res.status_code == 409

    client.delete("/api/cart", headers=shopper)
    res = client.delete(f"/api/products/{catalog['mug']['id']}", headers=ADMIN)
    assert res.status_code == 200


def test_products_filtered_by_category(client, catalog):
    res = client.get("/api/products", params={"category_id": catalog["category"]["id"]})
    assert [p["name"] for p in res.json()] == ["Mug"]
    assert catalog["mug"]["category_name"] == "Kitchen"


def test_category_rename_reaches_products(client, catalog):
    category_id = catalog["category"]["id"]

    res = client.put(f"/api/categories/{category_id}", json={"name": "Dining"}, headers={"X-User-Id": "u-2"})
    assert res.status_code == 403
    res = client.put(f"/api/categories/{category_id}", json={"name": "Dining"}, headers=ADMIN)
    assert res.status_code == 200
    assert res.json()["name"] == "Dining"

    mug = client.get(f"/api/products/{catalog['mug']['id']}").json()
    assert mug["category_name"] == "Dining"


def test_lock_backend_outage_is_a_json_error(client, shopper, lock_service, monkeypatch):
    def unavailable(resource, owner, ttl):
        raise redis.ConnectionError("connection refused")

    monkeypatch.setattr(lock_service, "acquire_lock", unavailable)

    res = client.post(
        "/api/addresses",
        json={
            "postal_code": "01001-000",
            "street": "Rua Direita",
            "number": "1",
            "neighborhood": "Se",
            "city": "Sao Paulo",
            "state": "SP",
        },
        headers=shopper,
    )

    assert res.status_code == 500
    assert res.json() == {"message": "Lock service unavailable", "error": "ConnectionError"}
