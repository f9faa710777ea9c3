"""API tests for /api/v1/invoices."""

import pytest

BASE = "/api/v1/invoices"


@pytest.fixture()
def project_id(client):
    res = client.post("/api/v1/projects", json={"name": "Horizon Tower"})
    return res.get_json()["id"]


def _create(client, project_id, **overrides):
    data = {
        "project_id": project_id,
        "counterparty": "Yamama Steel Factory",
        "type": "purchase",
        "date": "2024-05-01",
        "items": [{"description": "Rebar", "quantity": 10, "unit_price": 3000}],
    }
    data.update(overrides)
    return client.post(BASE, json=data)


def test_create_and_get(client, project_id):
    res = _create(client, project_id)
    assert res.status_code == 201
    created = res.get_json()
    assert created["amount"] == 30000
    assert created["invoice_number"] == "INV-2024-001"
    assert created["items"][0]["total"] == 30000

    fetched = client.get(f"{BASE}/{created['id']}").get_json()
    assert fetched["counterparty"] == "Yamama Steel Factory"


def test_create_reports_missing_fields(client):
    res = client.post(BASE, json={"items": []})
    assert res.status_code == 422
    assert {"project_id", "counterparty", "items"} <= set(res.get_json()["details"])


def test_duplicate_number_is_409(client, project_id):
    _create(client, project_id, invoice_number="INV-X")
    res = _create(client, project_id, invoice_number="INV-X")
    assert res.status_code == 409


def test_list_by_kind_partitions(client, project_id):
    _create(client, project_id, type="sales", counterparty="Horizon Real Estate")
    _create(client, project_id, type="purchase")
    _create(client, project_id, type="supplier", counterparty="Gulf Electric")

    sales = client.get(f"{BASE}?kind=sales").get_json()
    purchases = client.get(f"{BASE}?kind=purchases").get_json()
    everything = client.get(BASE).get_json()

    sales_ids = {i["id"] for i in sales["invoices"]}
    purchase_ids = {i["id"] for i in purchases["invoices"]}
    assert sales_ids.isdisjoint(purchase_ids)
    assert sales_ids | purchase_ids == {i["id"] for i in everything["invoices"]}
    assert purchases["total"] == 2
    assert purchases["total_amount"] == 60000


def test_list_rejects_unknown_kind_and_status(client):
    assert client.get(f"{BASE}?kind=refunds").status_code == 422
    assert client.get(f"{BASE}?status=void").status_code == 400


def test_update_and_status_patch(client, project_id):
    invoice = _create(client, project_id).get_json()

    res = client.put(f"{BASE}/{invoice['id']}", json={"discount": 1000})
    assert res.status_code == 200
    assert res.get_json()["amount"] == 29000

    res = client.patch(f"{BASE}/{invoice['id']}/status", json={"status": "paid"})
    assert res.status_code == 200
    assert res.get_json()["status"] == "paid"
    assert client.get(f"{BASE}?status=paid").get_json()["total"] == 1

    res = client.patch(f"{BASE}/{invoice['id']}/status", json={})
    assert res.status_code == 400


def test_delete(client, project_id):
    invoice = _create(client, project_id).get_json()
    assert client.delete(f"{BASE}/{invoice['id']}").status_code == 200
    assert client.get(f"{BASE}/{invoice['id']}").status_code == 404


def test_recent_feed(client):
    body = client.get(f"{BASE}/recent").get_json()
    assert body["total"] == len(body["invoices"])
    assert body["invoices"][0]["invoice_number"] == "INV-2024-001"
