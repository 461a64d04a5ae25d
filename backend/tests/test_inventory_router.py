"""HTTP-level tests for the inventory routes.

The service is wired to in-memory fakes through FastAPI dependency overrides;
the app lifespan (table creation) is not run.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from main import app
from routers.inventory import get_inventory_service
from services.inventory import InventoryService
from tests.fakes import FakeFileStore, FakeInventoryStore, make_item

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"0" * 64


@pytest.fixture()
def store():
    return FakeInventoryStore()


@pytest.fixture()
def files():
    return FakeFileStore()


@pytest.fixture()
def client(store, files):
    service = InventoryService(store, files)
    app.dependency_overrides[get_inventory_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, **data):
    return client.post("/api/inventory/", json=data)


class TestCreateRoute:

    def test_create_json(self, client):
        res = _create(client, itemName="Widget", stocksAvailable=10)
        assert res.status_code == 201
        body = res.json()
        assert body["itemName"] == "Widget"
        assert body["stocksAvailable"] == 10
        assert body["itemImg"] == ""
        assert body["itemPrice"] is None
        uuid.UUID(body["id"])

    def test_create_multipart_with_image(self, client, files):
        res = client.post(
            "/api/inventory/",
            data={"itemName": "Widget", "stocksAvailable": "7", "itemPrice": "1.25", "expireDate": "2031-02-03"},
            files={"itemImg": ("photo.png", PNG_BYTES, "image/png")},
        )
        assert res.status_code == 201
        body = res.json()
        assert body["stocksAvailable"] == 7
        assert body["itemPrice"] == 1.25
        assert body["expireDate"] == "2031-02-03"
        assert body["itemImg"] == "uploads/fake-1.png"
        assert files.files["uploads/fake-1.png"] == PNG_BYTES

    def test_create_rejects_non_image(self, client, store):
        res = client.post(
            "/api/inventory/",
            data={"itemName": "Widget", "stocksAvailable": "7"},
            files={"itemImg": ("notes.txt", b"hello", "text/plain")},
        )
        assert res.status_code == 400
        assert res.json()["kind"] == "validation"

    def test_missing_fields(self, client):
        res = _create(client, itemName="Widget")
        assert res.status_code == 400
        assert res.json() == {"detail": "Please add all fields", "kind": "validation"}

    def test_fractional_stock_kept(self, client):
        res = _create(client, itemName="Flour", stocksAvailable=2.5)
        assert res.status_code == 201
        assert res.json()["stocksAvailable"] == 2.5

    def test_text_stock_kept(self, client):
        res = _create(client, itemName="Widget", stocksAvailable="10 boxes")
        assert res.status_code == 201
        assert res.json()["stocksAvailable"] == "10 boxes"

    def test_text_stock_in_form(self, client):
        res = client.post("/api/inventory/", data={"itemName": "Widget", "stocksAvailable": "3 crates"})
        assert res.status_code == 201
        assert res.json()["stocksAvailable"] == "3 crates"

    def test_blank_stock_is_missing(self, client):
        res = _create(client, itemName="Widget", stocksAvailable="  ")
        assert res.status_code == 400
        assert res.json()["kind"] == "validation"

    def test_empty_file_part_is_no_image(self, client, files):
        res = client.post(
            "/api/inventory/",
            data={"itemName": "Widget", "stocksAvailable": "1"},
            files={"itemImg": ("photo.png", b"", "image/png")},
        )
        assert res.status_code == 201
        assert res.json()["itemImg"] == ""
        assert files.files == {}

    def test_duplicate_name(self, client):
        _create(client, itemName="Widget", stocksAvailable=10)
        res = _create(client, itemName="Widget", stocksAvailable=3)
        assert res.status_code == 409
        assert res.json()["kind"] == "conflict"


class TestReadRoutes:

    def test_list_and_get(self, client):
        created = _create(client, itemName="Widget", stocksAvailable=10).json()
        listed = client.get("/api/inventory/").json()
        assert [i["id"] for i in listed] == [created["id"]]
        one = client.get(f"/api/inventory/{created['id']}")
        assert one.status_code == 200
        assert one.json()["itemName"] == "Widget"

    def test_get_unknown(self, client):
        res = client.get(f"/api/inventory/{uuid.uuid4()}")
        assert res.status_code == 404
        assert res.json()["kind"] == "not_found"

    def test_get_batch(self, client):
        a = _create(client, itemName="A", stocksAvailable=1).json()
        _create(client, itemName="B", stocksAvailable=1)
        c = _create(client, itemName="C", stocksAvailable=1).json()
        res = client.get("/api/inventory/batch", params={"ids": f"{a['id']},{c['id']}"})
        assert res.status_code == 200
        assert [i["itemName"] for i in res.json()] == ["A", "C"]

    def test_get_batch_bad_id(self, client):
        res = client.get("/api/inventory/batch", params={"ids": "not-a-uuid"})
        assert res.status_code == 400


class TestUpdateRoute:

    def test_partial_update(self, client):
        created = _create(
            client, itemName="Widget", itemDescription="Blue", stocksAvailable=10, itemPrice=2.5,
        ).json()
        res = client.put(f"/api/inventory/{created['id']}", json={"stocksAvailable": 5})
        assert res.status_code == 200
        body = res.json()
        assert body["stocksAvailable"] == 5
        assert body["itemName"] == "Widget"
        assert body["itemDescription"] == "Blue"
        assert body["itemPrice"] == 2.5

    def test_replace_image(self, client, files):
        created = client.post(
            "/api/inventory/",
            data={"itemName": "Widget", "stocksAvailable": "1"},
            files={"itemImg": ("a.png", PNG_BYTES, "image/png")},
        ).json()
        res = client.put(
            f"/api/inventory/{created['id']}",
            files={"itemImg": ("b.png", PNG_BYTES, "image/png")},
        )
        assert res.status_code == 200
        assert res.json()["itemImg"] == "uploads/fake-2.png"
        assert files.deleted == ["uploads/fake-1.png"]

    def test_update_unknown(self, client):
        res = client.put(f"/api/inventory/{uuid.uuid4()}", json={"stocksAvailable": 5})
        assert res.status_code == 404


class TestDeleteRoutes:

    def test_delete(self, client):
        created = _create(client, itemName="Widget", stocksAvailable=10).json()
        res = client.delete(f"/api/inventory/{created['id']}")
        assert res.status_code == 200
        assert res.json() == {"id": created["id"]}
        assert client.get("/api/inventory/").json() == []

    def test_delete_unknown(self, client):
        res = client.delete(f"/api/inventory/{uuid.uuid4()}")
        assert res.status_code == 404

    def test_delete_batch(self, client):
        a = _create(client, itemName="A", stocksAvailable=1).json()
        b = _create(client, itemName="B", stocksAvailable=1).json()
        res = client.delete("/api/inventory/batch", params={"ids": f"{a['id']},{b['id']}"})
        assert res.status_code == 200
        assert res.json() == {"ids": [a["id"], b["id"]], "deletedCount": 2}
        assert client.get("/api/inventory/").json() == []


class TestSearchRoute:

    def test_search(self, client):
        _create(client, itemName="Widget", itemDescription="Blue gizmo", stocksAvailable=1)
        _create(client, itemName="Gadget", stocksAvailable=2)
        res = client.post("/api/inventory/search", json={"text": {"query": "gizmo"}})
        assert res.status_code == 200
        assert [i["itemName"] for i in res.json()] == ["Widget"]

    def test_search_malformed_body(self, client):
        res = client.post("/api/inventory/search", json={"text": "widget"})
        assert res.status_code == 400
        body = res.json()
        assert body["kind"] == "validation"
        assert body["detail"].startswith("text:")

    def test_search_invalid_json(self, client):
        res = client.post(
            "/api/inventory/search", content=b"{not json", headers={"content-type": "application/json"},
        )
        assert res.status_code == 400
        assert res.json()["kind"] == "validation"

    def test_search_blank(self, client):
        res = client.post("/api/inventory/search", json={"text": {"query": ""}})
        assert res.status_code == 400

    def test_search_store_failure_surfaces_message(self, client, store):
        async def broken(query):
            from core.errors import StoreFailure
            raise StoreFailure("Failed to search inventory: index missing")

        store.search = broken
        res = client.post("/api/inventory/search", json={"text": {"query": "x"}})
        assert res.status_code == 500
        assert res.json() == {"detail": "Failed to search inventory: index missing", "kind": "store_failure"}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
