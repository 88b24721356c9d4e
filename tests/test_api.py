"""API endpoint tests."""

from datetime import timedelta
from decimal import Decimal

from fastapi.testclient import TestClient

from app.utils.security import create_access_token

API = "/api/v1"


class TestHealthCheck:
    """Test health check endpoint."""

    def test_health_check(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuth:
    """Test bearer token handling."""

    def test_missing_token(self, client: TestClient):
        response = client.get(f"{API}/items/")
        assert response.status_code in (401, 403)
        assert response.json()["success"] is False

    def test_expired_token(self, client: TestClient, business):
        token = create_access_token(
            {"sub": "6c1d3c52-8a1f-4b8e-9a55-3e0f6b7a0c11", "business_id": business.id, "role": "OWNER"},
            expires_delta=timedelta(minutes=-5),
        )
        response = client.get(f"{API}/items/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_role_required(self, client: TestClient, business):
        token = create_access_token(
            {"sub": "6c1d3c52-8a1f-4b8e-9a55-3e0f6b7a0c11", "business_id": business.id, "role": "STAFF"}
        )
        response = client.post(
            f"{API}/items/",
            json={"name": "Rice", "unit": "grams"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 403


class TestErrorBody:
    """Test the structured error body."""

    def test_not_found(self, client: TestClient, auth_headers):
        response = client.get(f"{API}/items/6c1d3c52-8a1f-4b8e-9a55-3e0f6b7a0c11", headers=auth_headers)
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "not_found"
        assert body["request_id"]

    def test_incompatible_units(self, client: TestClient, auth_headers):
        response = client.post(
            f"{API}/units/convert",
            json={"quantity": "1", "from_unit": "Kg", "to_unit": "piece"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "incompatible_units"

    def test_request_validation(self, client: TestClient, auth_headers):
        response = client.post(f"{API}/items/", json={"unit": "grams"}, headers=auth_headers)
        assert response.status_code == 422
        body = response.json()
        assert body["error"]["code"] == "validation_error"
        assert body["error"]["details"]


class TestUnits:
    def test_convert(self, client: TestClient, auth_headers):
        response = client.post(
            f"{API}/units/convert",
            json={"quantity": "2.5", "from_unit": "Kg", "to_unit": "grams"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert Decimal(response.json()["converted_quantity"]) == Decimal("2500")

    def test_storage_units(self, client: TestClient, auth_headers):
        response = client.get(f"{API}/units/mL/storage-units", headers=auth_headers)
        assert response.json()["default_storage_unit"] == "L"


class TestPurchaseOrderFlow:
    """Test a purchase order from creation to stock."""

    def test_create_count_receive(self, client: TestClient, auth_headers, vendor, branch):
        item = client.post(
            f"{API}/items/",
            json={"name": "Rice", "unit": "grams", "storage_unit": "Kg"},
            headers=auth_headers,
        )
        assert item.status_code == 201
        item_id = item.json()["id"]

        po = client.post(
            f"{API}/purchase-orders/",
            json={"vendor_id": str(vendor.id), "branch_id": str(branch.id),
                  "items": [{"item_id": item_id, "quantity": "50"}]},
            headers=auth_headers,
        )
        assert po.status_code == 201
        po_id = po.json()["id"]

        counted = client.patch(
            f"{API}/purchase-orders/{po_id}/count",
            json={"lines": [{"item_id": item_id, "counted_quantity": "50", "scanned_barcodes": ["8991001"]}]},
            headers=auth_headers,
        )
        assert counted.status_code == 200
        assert counted.json()["status"] == "counted"

        received = client.patch(
            f"{API}/purchase-orders/{po_id}/receive",
            json={"invoice_image_url": "inv.jpg", "lines": [{"item_id": item_id, "total_cost": "625"}]},
            headers=auth_headers,
        )
        assert received.status_code == 200
        assert received.json()["status"] == "received"

        rice = client.get(f"{API}/items/{item_id}", headers=auth_headers).json()
        assert Decimal(rice["cost_per_unit"]) == Decimal("0.0125")
        assert Decimal(rice["total_stock_quantity"]) == Decimal("50000")

        stock = client.get(f"{API}/inventory/stock", params={"branch_id": str(branch.id)}, headers=auth_headers)
        assert Decimal(stock.json()[0]["available_quantity"]) == Decimal("50")

        by_barcode = client.get(f"{API}/items/barcode/8991001", headers=auth_headers)
        assert by_barcode.json()["id"] == item_id

    def test_count_without_reason(self, client: TestClient, auth_headers, vendor, make_item):
        item = make_item("Beans")
        po = client.post(
            f"{API}/purchase-orders/",
            json={"vendor_id": str(vendor.id), "items": [{"item_id": str(item.id), "quantity": "100"}]},
            headers=auth_headers,
        ).json()

        response = client.patch(
            f"{API}/purchase-orders/{po['id']}/count",
            json={"lines": [{"item_id": str(item.id), "counted_quantity": "80", "scanned_barcodes": ["1"]}]},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"


class TestOrderInventory:
    """Test order endpoints."""

    def test_check_and_reserve(self, client: TestClient, auth_headers, branch, menu):
        client.post(
            f"{API}/inventory/add",
            json={"item_id": str(menu["egg"].id), "branch_id": str(branch.id), "quantity": "1", "notes": "delivery"},
            headers=auth_headers,
        )
        order = {
            "order_id": "POS-100",
            "branch_id": str(branch.id),
            "lines": [{"product_id": str(menu["fried_rice"].id), "quantity": "1"}],
        }

        check = client.post(f"{API}/order-inventory/check", json=order, headers=auth_headers)
        assert check.status_code == 200
        assert check.json()["can_fulfil"] is False
        assert [s["item_name"] for s in check.json()["shortages"]] == ["Rice"]

        reserved = client.post(f"{API}/order-inventory/reserve", json=order, headers=auth_headers)
        assert reserved.status_code == 200
        assert len(reserved.json()) == 2

        cancelled = client.post(f"{API}/order-inventory/cancel", json=order, headers=auth_headers)
        assert cancelled.status_code == 200
        pending = client.get(f"{API}/order-inventory/cancelled-items", headers=auth_headers).json()
        assert len(pending) == 2

        decisions = client.post(
            f"{API}/order-inventory/cancelled-items/decisions",
            json={"decisions": [{"cancelled_item_id": p["id"], "decision": "return"} for p in pending]},
            headers=auth_headers,
        )
        assert decisions.json() == {"processed": 2, "errors": []}


class TestVendors:
    def test_create_and_list(self, client: TestClient, auth_headers):
        created = client.post(f"{API}/vendors/", json={"name": "Pasar Induk"}, headers=auth_headers)
        assert created.status_code == 201
        assert client.post(f"{API}/vendors/", json={"name": "pasar induk"}, headers=auth_headers).status_code == 409
        names = [v["name"] for v in client.get(f"{API}/vendors/", headers=auth_headers).json()]
        assert names == ["Pasar Induk"]
