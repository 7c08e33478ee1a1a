from fastapi.testclient import TestClient

from stockledger.app import create_app
from stockledger.config import Settings
from stockledger.exceptions import LockTimeoutError

ADMIN_HEADERS = {"X-User": "admin1", "X-Role": "Admin"}
STAFF_HEADERS = {"X-User": "staff1", "X-Role": "Staff"}
VIEWER_HEADERS = {"X-User": "viewer1", "X-Role": "Viewer"}


def _create_category(client: TestClient, name: str = "Beverages") -> dict:
    response = client.post("/categories", json={"name": name}, headers=ADMIN_HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


def _create_product(client: TestClient, category_id: int, **fields) -> dict:
    payload = {"name": "Bottled Water", "category_id": category_id, "unit_price": "1.50", "minimum_stock": 45}
    payload.update(fields)
    response = client.post("/products", json=payload, headers=ADMIN_HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


def _post(client: TestClient, product_id: int, kind, quantity: int, remarks: str = "api", headers=None):
    return client.post(
        "/stock/transactions",
        json={"product_id": product_id, "transaction_type": kind, "quantity": quantity, "remarks": remarks},
        headers=headers or STAFF_HEADERS,
    )


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_requests_without_identity_are_unauthorized(client: TestClient) -> None:
    response = client.get("/products")

    assert response.status_code == 401


def test_unknown_role_is_forbidden(client: TestClient) -> None:
    response = client.get("/products", headers={"X-User": "ghost", "X-Role": "Auditor"})

    assert response.status_code == 403


def test_viewer_cannot_post_or_edit(client: TestClient) -> None:
    category = _create_category(client)
    product = _create_product(client, category["id"])

    assert _post(client, product["id"], "StockIn", 5, headers=VIEWER_HEADERS).status_code == 403
    assert client.post("/categories", json={"name": "Snacks"}, headers=VIEWER_HEADERS).status_code == 403
    assert client.get(f"/products/{product['id']}", headers=VIEWER_HEADERS).status_code == 200


def test_staff_cannot_delete_catalog_entries(client: TestClient) -> None:
    category = _create_category(client)

    response = client.delete(f"/categories/{category['id']}", headers=STAFF_HEADERS)

    assert response.status_code == 403


def test_stock_lifecycle(client: TestClient) -> None:
    category = _create_category(client)
    product = _create_product(client, category["id"], opening_stock=50)
    product_id = product["id"]
    assert product["current_stock"] == 50
    assert product["is_low_stock"] is False

    oversell = _post(client, product_id, "StockOut", 55, "oversell")
    assert oversell.status_code == 409
    assert oversell.json()["error"] == "insufficient_stock"
    assert oversell.json()["details"]["available"] == 50

    adjustment = _post(client, product_id, "Adjustment", 42, "audit correction", headers=ADMIN_HEADERS)
    assert adjustment.status_code == 201, adjustment.text
    body = adjustment.json()
    assert body["transaction_type"] == "Adjustment"
    assert body["quantity"] == 8
    assert (body["stock_before"], body["stock_after"]) == (50, 42)
    assert body["created_by"] == "admin1"

    history = client.get(f"/products/{product_id}/transactions", headers=VIEWER_HEADERS)
    assert history.status_code == 200
    assert [entry["remarks"] for entry in history.json()] == ["audit correction", "Opening balance"]

    recent = client.get("/stock/transactions/recent", params={"count": 1}, headers=VIEWER_HEADERS)
    assert recent.status_code == 200
    assert len(recent.json()) == 1
    assert recent.json()[0]["product_name"] == "Bottled Water"
    assert recent.json()[0]["category_name"] == "Beverages"

    low_stock = client.get("/stock/low-stock", headers=VIEWER_HEADERS)
    assert [item["id"] for item in low_stock.json()] == [product_id]

    report = client.get(f"/products/{product_id}/consistency", headers=VIEWER_HEADERS)
    assert report.status_code == 200
    assert report.json()["consistent"] is True
    assert report.json()["replayed_stock"] == 42

    assert client.get("/stock/consistency", headers=ADMIN_HEADERS).json() == []

    dashboard = client.get("/dashboard", headers=VIEWER_HEADERS).json()
    assert dashboard["total_products"] == 1
    assert dashboard["low_stock_count"] == 1
    assert dashboard["total_stock_value"] == "63.00"
    assert len(dashboard["recent_transactions"]) == 2


def test_zero_quantity_is_rejected(client: TestClient) -> None:
    product = _create_product(client, _create_category(client)["id"])

    response = _post(client, product["id"], "StockIn", 0)

    assert response.status_code == 422
    assert response.json()["error"] == "invalid_argument"
    assert response.json()["details"]["field"] == "quantity"


def test_unknown_transaction_type_is_rejected(client: TestClient) -> None:
    product = _create_product(client, _create_category(client)["id"])

    response = _post(client, product["id"], "Transfer", 1)

    assert response.status_code == 422


def test_transaction_type_code_is_accepted(client: TestClient) -> None:
    product = _create_product(client, _create_category(client)["id"], opening_stock=3)

    response = _post(client, product["id"], 2, 1)

    assert response.status_code == 201, response.text
    assert response.json()["transaction_type"] == "StockOut"


def test_posting_to_unknown_product_is_not_found(client: TestClient) -> None:
    response = _post(client, 9999, "StockIn", 1)

    assert response.status_code == 404
    assert response.json() == {
        "error": "not_found",
        "message": "Product 9999 not found",
        "details": {"product_id": 9999},
    }


def test_category_with_products_cannot_be_deleted(client: TestClient) -> None:
    category = _create_category(client)
    _create_product(client, category["id"])

    response = client.delete(f"/categories/{category['id']}", headers=ADMIN_HEADERS)

    assert response.status_code == 409
    assert response.json()["error"] == "integrity_violation"


def test_duplicate_sku_conflicts(client: TestClient) -> None:
    category = _create_category(client)
    _create_product(client, category["id"], sku="BW-500")

    response = client.post(
        "/products",
        json={"name": "Copy", "category_id": category["id"], "sku": "BW-500"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


def test_product_update_cannot_touch_stock(client: TestClient) -> None:
    product = _create_product(client, _create_category(client)["id"], opening_stock=5)

    response = client.patch(
        f"/products/{product['id']}",
        json={"name": "Still Water", "current_stock": 500},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Still Water"
    assert response.json()["current_stock"] == 5


def test_recent_count_must_be_positive(client: TestClient) -> None:
    response = client.get("/stock/transactions/recent", params={"count": 0}, headers=VIEWER_HEADERS)

    assert response.status_code == 422


def test_cors_origins_are_allowed(database_url, session_factory) -> None:
    settings = Settings(database_url=database_url, cors_origins=["http://shop.example.com"])

    with TestClient(create_app(settings=settings, session_factory=session_factory)) as client:
        response = client.get("/health", headers={"Origin": "http://shop.example.com"})

    assert response.headers["access-control-allow-origin"] == "http://shop.example.com"


def test_patch_with_null_required_field_is_invalid(client: TestClient) -> None:
    category = _create_category(client)
    product = _create_product(client, category["id"])

    product_response = client.patch(f"/products/{product['id']}", json={"name": None}, headers=ADMIN_HEADERS)
    category_response = client.patch(f"/categories/{category['id']}", json={"name": None}, headers=ADMIN_HEADERS)

    assert product_response.status_code == 422
    assert product_response.json()["error"] == "invalid_argument"
    assert product_response.json()["details"]["field"] == "name"
    assert category_response.status_code == 422
    assert category_response.json()["details"]["field"] == "name"
    assert client.get(f"/categories/{category['id']}", headers=VIEWER_HEADERS).json()["name"] == "Beverages"


def test_boolean_quantity_is_rejected(client: TestClient, stock_of) -> None:
    product = _create_product(client, _create_category(client)["id"])

    response = _post(client, product["id"], "StockIn", True)

    assert response.status_code == 422
    assert stock_of(product["id"]) == 0


def test_failed_opening_balance_leaves_no_product(client: TestClient, mocker) -> None:
    category = _create_category(client)
    engine = client.app.state.posting_engine
    mocker.patch.object(engine, "post", side_effect=LockTimeoutError(1, engine.lock_timeout))
    payload = {"name": "Bottled Water", "category_id": category["id"], "sku": "BW-500", "opening_stock": 10}

    response = client.post("/products", json=payload, headers=ADMIN_HEADERS)

    assert response.status_code == 503
    assert response.json()["error"] == "lock_timeout"
    assert client.get("/products", headers=VIEWER_HEADERS).json() == []

    mocker.stopall()
    retried = client.post("/products", json=payload, headers=ADMIN_HEADERS)
    assert retried.status_code == 201, retried.text
    assert retried.json()["current_stock"] == 10
