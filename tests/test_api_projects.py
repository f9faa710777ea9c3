"""API tests for /api/v1/projects and /api/v1/clients."""

import pytest

BASE = "/api/v1/projects"


@pytest.fixture()
def design(client):
    res = client.post(BASE, json={
        "name": "Clinic Interior Design",
        "client_name": "Dr. Khalid",
        "location": "Jeddah",
        "budget": 150000,
        "company_percentage": 15,
    })
    assert res.status_code == 201
    return res.get_json()


def _collect(client, project_id, amount):
    res = client.post("/api/v1/transactions", json={
        "type": "receipt", "amount": amount, "project_id": project_id,
    })
    assert res.status_code == 201


class TestProjectCrud:

    def test_create_and_get(self, client, design):
        res = client.get(f"{BASE}/{design['id']}")
        assert res.status_code == 200
        body = res.get_json()
        assert body["name"] == "Clinic Interior Design"
        assert body["status"] == "design"
        assert body["revenue"] == 0

    def test_create_validation_error(self, client):
        res = client.post(BASE, json={"budget": "lots"})
        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_RULE"
        assert set(body["details"]) == {"name", "budget"}

    def test_non_object_body_is_400(self, client):
        res = client.post(BASE, json=["not", "an", "object"])
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_non_json_body_is_415(self, client):
        res = client.post(BASE, data="name=x", content_type="text/plain")
        assert res.status_code == 415

    def test_list_search_and_invalid_status(self, client, design):
        client.post(BASE, json={"name": "Warehouses", "location": "Dammam"})
        res = client.get(f"{BASE}?search=clinic")
        assert [p["name"] for p in res.get_json()["projects"]] == ["Clinic Interior Design"]

        res = client.get(f"{BASE}?status=finished")
        assert res.status_code == 400

    def test_update(self, client, design):
        res = client.put(f"{BASE}/{design['id']}", json={"progress": 80},
                         headers={"X-User": "pm"})
        assert res.status_code == 200
        assert res.get_json()["progress"] == 80

        activity = client.get("/api/v1/activity?action=update").get_json()
        assert activity["activity"][0]["actor"] == "pm"

    def test_update_status_is_rejected(self, client, design):
        res = client.put(f"{BASE}/{design['id']}", json={"status": "delivered"})
        assert res.status_code == 422

    def test_delete(self, client, design):
        res = client.delete(f"{BASE}/{design['id']}")
        assert res.status_code == 200
        assert client.get(f"{BASE}/{design['id']}").status_code == 404

    def test_missing_project_is_404(self, client):
        res = client.get(f"{BASE}/999")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_board(self, client, design):
        client.post(BASE, json={"name": "Tower", "status": "execution", "type": "execution"})
        board = client.get(f"{BASE}/board").get_json()
        assert board["design"]["count"] == 1
        assert board["execution"]["count"] == 1


class TestTransitionEndpoint:

    def test_split_with_debt(self, client, design):
        res = client.post(f"{BASE}/{design['id']}/transition", json={
            "status": "execution",
            "contract_terms": {"contract_type": "lump_sum", "budget": 900000},
        })
        assert res.status_code == 200
        body = res.get_json()
        assert body["action"] == "split"
        assert body["execution_project"]["related_project_id"] == design["id"]
        assert body["execution_project"]["contract_type"] == "lump_sum"

        again = client.post(f"{BASE}/{design['id']}/transition", json={"status": "execution"})
        assert again.status_code == 409
        assert again.get_json()["code"] == "ERR_CONFLICT_STATE"
        assert len(client.get(BASE).get_json()["projects"]) == 2

    def test_settled_design_is_archived(self, client, design):
        _collect(client, design["id"], 150000)
        res = client.post(f"{BASE}/{design['id']}/transition", json={"status": "execution"})
        body = res.get_json()
        assert body["action"] == "archived_and_continued"
        assert body["project"]["is_archived"] is True
        assert body["project"]["status"] == "delivered"
        assert body["execution_project"]["name"] == "Clinic Interior Design"

        visible = client.get(f"{BASE}?include_archived=false").get_json()["projects"]
        assert [p["id"] for p in visible] == [body["execution_project"]["id"]]

    def test_delivered_needs_confirmation(self, client, design):
        res = client.post(f"{BASE}/{design['id']}/transition", json={"status": "delivered"})
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_CONFIRMATION_REQUIRED"
        assert body["details"]["outstanding"] == 150000

        res = client.post(f"{BASE}/{design['id']}/transition",
                          json={"status": "delivered", "confirm": True})
        assert res.status_code == 200
        assert res.get_json()["outstanding"] == 150000

    def test_missing_status(self, client, design):
        res = client.post(f"{BASE}/{design['id']}/transition", json={})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_bad_confirm_flag(self, client, design):
        res = client.post(f"{BASE}/{design['id']}/transition",
                          json={"status": "delivered", "confirm": "yes"})
        assert res.status_code == 400

    def test_unknown_status(self, client, design):
        res = client.post(f"{BASE}/{design['id']}/transition", json={"status": "closed"})
        assert res.status_code == 422

    def test_transition_is_logged_with_actor(self, client, design):
        client.post(f"{BASE}/{design['id']}/transition", json={"status": "stopped"},
                    headers={"X-User": "director"})
        rows = client.get(
            f"/api/v1/activity?entity_type=project&entity_id={design['id']}&action=project."
        ).get_json()["activity"]
        assert [r["action"] for r in rows] == ["project.transition"]
        assert rows[0]["actor"] == "director"


class TestFinanceEndpoints:

    def test_financials_and_ledger(self, client, design):
        _collect(client, design["id"], 20000)
        fin = client.get(f"{BASE}/{design['id']}/financials").get_json()
        assert fin["total_received"] == 20000
        assert fin["remaining_payments"] == 130000

        ledger = client.get(f"{BASE}/{design['id']}/ledger").get_json()
        assert ledger["total"] == 1
        assert ledger["entries"][0]["row_type"] == "receipt"


class TestClients:

    def test_create_and_use_client(self, client):
        res = client.post("/api/v1/clients", json={"name": "Sara Al-Ahmad"})
        assert res.status_code == 201
        client_id = res.get_json()["id"]

        proj = client.post(BASE, json={"name": "Villa", "client_id": client_id}).get_json()
        assert proj["client_name"] == "Sara Al-Ahmad"
        assert client.get("/api/v1/clients").get_json()["total"] == 1

    def test_client_requires_name(self, client):
        assert client.post("/api/v1/clients", json={}).status_code == 422
