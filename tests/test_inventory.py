import pytest
from datetime import date, timedelta

from app.core.exceptions import ValidationError, NotFoundError, ConflictError
from app.domain.inventory.models import OrderStatus
from app.domain.inventory.service import InventoryService


FUTURE = date.today() + timedelta(days=365)
PAST = date.today() - timedelta(days=1)


def batch_payload(batch_no="B1", quantity=100, **kwargs):
    payload = {
        "batch_no": batch_no,
        "quantity": quantity,
        "expiry_date": FUTURE.isoformat(),
        "manufacturing_date": PAST.isoformat(),
        "unit_price": 2.5,
        "supplier": "MedSupply",
    }
    payload.update(kwargs)
    return payload


@pytest.fixture
def inventory_service(db_session):
    return InventoryService(db_session)


@pytest.mark.integration
@pytest.mark.inventory
class TestRegisterMedicine:
    """Test medicine registration endpoint"""

    def test_register(self, client):
        response = client.post("/api/v1/inventory/medicines", json={
            "name": "Amoxicillin",
            "dosage_form": "capsule",
            "manufacturer": "Sun Pharma",
            "available": True,
            "batches": [batch_payload("A1", 20), batch_payload("A2", 30)],
        })

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == 10000
        assert [b["batch_no"] for b in data["batches"]] == ["A1", "A2"]

    def test_ids_are_sequential(self, client, make_medicine):
        make_medicine(medicine_id=10007)

        response = client.post("/api/v1/inventory/medicines", json={"name": "Ibuprofen"})

        assert response.status_code == 201
        assert response.json()["id"] == 10008

    def test_duplicate_batch_numbers(self, client):
        response = client.post("/api/v1/inventory/medicines", json={
            "name": "Amoxicillin",
            "batches": [batch_payload("A1"), batch_payload("A1")],
        })
        assert response.status_code == 400

    @pytest.mark.parametrize("override", [
        {"quantity": -1},
        {"batch_no": ""},
        {"expiry_date": PAST.isoformat()},
        {"manufacturing_date": FUTURE.isoformat()},
        {"unit_price": -3},
        {"supplier": ""},
    ])
    def test_invalid_batch(self, client, override):
        response = client.post("/api/v1/inventory/medicines", json={
            "name": "Amoxicillin",
            "batches": [batch_payload(**override)],
        })

        assert response.status_code == 400
        assert response.json()["validation_errors"]

    def test_get_medicine(self, client, make_medicine):
        make_medicine(batches=[("B1", 40, FUTURE)])

        response = client.get("/api/v1/inventory/medicines/10000")

        assert response.status_code == 200
        assert response.json()["batches"][0]["quantity"] == 40

    def test_get_unknown_medicine(self, client):
        response = client.get("/api/v1/inventory/medicines/424242")
        assert response.status_code == 404

    def test_get_out_of_range_medicine_id(self, client):
        response = client.get("/api/v1/inventory/medicines/99999999999999999999999")

        assert response.status_code == 400
        assert "medicine_id" in response.json()["validation_errors"]


@pytest.mark.integration
@pytest.mark.inventory
class TestUpsertStockBatch:
    """Test stock batch replenishment endpoint"""

    def test_creates_medicine(self, client):
        response = client.put(
            "/api/v1/inventory/medicines/20001/batches",
            json={**batch_payload("N1", 15), "name": "Cetirizine", "dosage_form": "tablet"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == 20001
        assert data["name"] == "Cetirizine"
        assert data["batches"][0]["quantity"] == 15

    def test_new_medicine_requires_name(self, client):
        response = client.put("/api/v1/inventory/medicines/20001/batches", json=batch_payload())

        assert response.status_code == 400
        assert response.json()["message"] == "Medicine name is required when adding a new medicine."

    def test_updates_existing_batch(self, client, make_medicine):
        medicine = make_medicine(batches=[("B1", 40, FUTURE), ("B2", 5, FUTURE)])

        response = client.put("/api/v1/inventory/medicines/10000/batches", json={"batch_no": "B1", "quantity": 75})

        assert response.status_code == 200
        assert [(b["batch_no"], b["quantity"]) for b in response.json()["batches"]] == [("B1", 75), ("B2", 5)]
        assert medicine.batches[0].supplier == "MedSupply"

    def test_appends_new_batch(self, client, make_medicine):
        make_medicine(batches=[("B1", 40, FUTURE)])

        response = client.put("/api/v1/inventory/medicines/10000/batches", json=batch_payload("B9", 12))

        assert response.status_code == 200
        assert [b["batch_no"] for b in response.json()["batches"]] == ["B1", "B9"]

    def test_new_batch_requires_quantity_and_expiry(self, client, make_medicine):
        make_medicine(batches=[("B1", 40, FUTURE)])

        response = client.put("/api/v1/inventory/medicines/10000/batches", json={"batch_no": "B9"})

        assert response.status_code == 400
        assert response.json()["details"]["missing_fields"] == ["quantity", "expiry_date"]


@pytest.mark.integration
@pytest.mark.inventory
class TestSearchInventory:
    """Test inventory search endpoint"""

    def test_search_by_name(self, client, make_medicine):
        make_medicine(batches=[("OLD", 10, PAST), ("B1", 40, FUTURE), ("B2", 5, FUTURE)])
        make_medicine(medicine_id=10001, name="Insulin", manufacturer="Novo")

        response = client.get("/api/v1/inventory/search", params={"searchQuery": "PARA"})

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        item = data["items"][0]
        assert item["name"] == "Paracetamol"
        assert item["total_valid_quantity"] == 45
        assert item["current_stock"]["batch_no"] == "B2"

    def test_search_by_manufacturer(self, client, make_medicine):
        make_medicine()
        make_medicine(medicine_id=10001, name="Insulin", manufacturer="Novo")

        response = client.get("/api/v1/inventory/search", params={"searchQuery": "novo"})

        assert [i["id"] for i in response.json()["items"]] == [10001]

    def test_search_by_id(self, client, make_medicine):
        make_medicine()

        response = client.get("/api/v1/inventory/search", params={"searchQuery": "10000"})

        assert response.status_code == 200
        assert response.json()["items"][0]["current_stock"] is None

    def test_missing_query(self, client):
        response = client.get("/api/v1/inventory/search")
        assert response.status_code == 400

    def test_no_match(self, client, make_medicine):
        make_medicine()
        response = client.get("/api/v1/inventory/search", params={"searchQuery": "zzz"})
        assert response.status_code == 404

    @pytest.mark.parametrize("query", ["\u00b2", "99999999999999999999999"])
    def test_non_ascii_or_oversized_number(self, client, make_medicine, query):
        make_medicine()

        response = client.get("/api/v1/inventory/search", params={"searchQuery": query})

        assert response.status_code == 404
        assert response.json()["message"] == "No medicines found matching the search criteria."


@pytest.mark.unit
@pytest.mark.inventory
class TestOrderStatus:
    """Test the reorder workflow"""

    def test_request_then_order(self, inventory_service, make_medicine):
        make_medicine()

        inventory_service.update_order_status(10000, OrderStatus.REQUESTED)
        medicine = inventory_service.update_order_status(10000, OrderStatus.ORDERED)

        assert medicine.order_status == OrderStatus.ORDERED

    def test_cancelled_can_be_requested_again(self, inventory_service, make_medicine):
        make_medicine(order_status=OrderStatus.ORDERED)

        inventory_service.update_order_status(10000, OrderStatus.CANCELLED)
        medicine = inventory_service.update_order_status(10000, OrderStatus.REQUESTED)

        assert medicine.order_status == OrderStatus.REQUESTED

    def test_cannot_order_without_request(self, inventory_service, make_medicine):
        make_medicine()

        with pytest.raises(ConflictError) as exc_info:
            inventory_service.update_order_status(10000, OrderStatus.ORDERED)
        assert exc_info.value.error_code == "INVALID_ORDER_STATUS_TRANSITION"

    def test_unknown_medicine(self, inventory_service):
        with pytest.raises(NotFoundError):
            inventory_service.update_order_status(10000, OrderStatus.REQUESTED)

    def test_endpoint(self, client, make_medicine):
        make_medicine(order_status=OrderStatus.REQUESTED)

        response = client.patch("/api/v1/inventory/medicines/10000/order-status", json={"status": "ordered"})
        assert response.status_code == 200
        assert response.json()["order_status"] == "ordered"

        response = client.patch("/api/v1/inventory/medicines/10000/order-status", json={"status": "ordered"})
        assert response.status_code == 409


@pytest.mark.unit
@pytest.mark.inventory
def test_register_rejects_duplicate_batches(inventory_service):
    batch = {"batch_no": "A1", "quantity": 1, "expiry_date": FUTURE}

    with pytest.raises(ValidationError):
        inventory_service.register_medicine({"name": "Amoxicillin"}, [batch, dict(batch)])
