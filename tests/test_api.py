from __future__ import annotations

import pytest
import requests
from fastapi.testclient import TestClient

from fintrack.domain.errors import ExtractionError, ExtractionErrorKind
from fintrack.interfaces import api
from fintrack.services import shell as shell_mod
from fintrack.services.shell import AppState, FinTrackApp
from fintrack.tools.pdf_statement import read_statement_pdf
from fintrack.tools.sheets_sync import SheetsClient

URL = "https://script.google.com/macros/s/abc/exec"
PDF = ("jan.pdf", b"%PDF-1.4 statement", "application/pdf")


@pytest.fixture
def session(fake_session):
    return fake_session()


@pytest.fixture
def shell(store, session, make_tx, monkeypatch):
    def _read_header_only(data, filename, content_type=None):
        # Validate type/magic bytes but skip opening the fake PDF
        if data.startswith(b"%PDF"):
            return 1
        return read_statement_pdf(data, filename, content_type)

    monkeypatch.setattr(shell_mod, "read_statement_pdf", _read_header_only)

    def _extract(data, filename="statement.pdf"):
        return [make_tx(description="Coffee", amount=4.5), make_tx(description="Rent", amount=900)]

    app = FinTrackApp(
        store,
        extract=_extract,
        sheets=SheetsClient(session=session),
        state=AppState(tags=["Meals"], banks=["HDFC Bank"], script_url=URL),
    )
    api.set_shell(app)
    yield app
    api.set_shell(None)


@pytest.fixture
def client(shell):
    return TestClient(api.app)


def _upload(client):
    r = client.post("/statements/parse", files={"file": PDF})
    assert r.status_code == 200
    return r.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_state(client):
    body = client.get("/state").json()
    assert body["activeTab"] == "upload"
    assert body["tags"] == ["Meals"]
    assert body["working"] == []


def test_parse_statement(client):
    rows = _upload(client)

    assert [r["description"] for r in rows] == ["Coffee", "Rent"]
    assert rows[0]["status"] == "pending"
    assert rows[0]["tag"] == "Food"
    assert len(client.get("/state").json()["working"]) == 2


def test_parse_rejects_non_pdf(client):
    r = client.post("/statements/parse", files={"file": ("pic.png", b"\x89PNG", "image/png")})

    assert r.status_code == 415
    assert client.get("/state").json()["error"] == "Please upload a valid PDF bank statement."


def test_parse_extraction_failure_is_502(client, shell):
    def _fail(data, filename="statement.pdf"):
        raise ExtractionError(ExtractionErrorKind.EMPTY_RESPONSE, "No text returned")

    shell.extract = _fail

    r = client.post("/statements/parse", files={"file": PDF})
    assert r.status_code == 502
    assert r.json()["detail"] == "No text returned"


def test_edit_toggle_and_delete(client):
    coffee, rent = _upload(client)

    r = client.patch(f"/working/{coffee['id']}", json={"amount": 5.25, "bankName": "Axis Bank", "tag": "Meals"})
    assert r.status_code == 200
    assert r.json()["amount"] == 5.25
    assert r.json()["bankName"] == "Axis Bank"

    assert client.post(f"/working/{coffee['id']}/toggle").json()["status"] == "approved"

    assert client.delete(f"/working/{rent['id']}").json() == {"ok": True}
    assert client.delete(f"/working/{rent['id']}").status_code == 404

    state = client.get("/state").json()
    assert state["approvedCount"] == 1
    assert state["allApproved"] is True


def test_patch_validation(client):
    coffee, _ = _upload(client)

    assert client.patch(f"/working/{coffee['id']}", json={"amount": -3}).status_code == 422
    assert client.patch("/working/missing", json={"tag": "x"}).status_code == 404
    assert client.post("/working/missing/toggle").status_code == 404


def test_toggle_all(client):
    _upload(client)

    assert client.post("/working/toggle-all").json()["allApproved"] is True
    assert client.post("/working/toggle-all").json()["approvedCount"] == 0


def test_sync_nothing_selected(client, session):
    _upload(client)

    body = client.post("/sync").json()

    assert body["sent"] == 0
    assert body["state"]["error"] == "Please select transactions using the checkboxes first."
    assert session.posts == []


def test_sync_all(client, session):
    _upload(client)
    client.post("/working/toggle-all")

    body = client.post("/sync").json()

    assert body["sent"] == 2
    assert body["state"]["activeTab"] == "dashboard"
    assert body["state"]["historyCount"] == 2
    assert len(session.posted_json()) == 2

    dash = client.get("/dashboard").json()
    assert dash["stats"]["total_spent"] == pytest.approx(904.5)
    assert dash["count"] == 2


def test_sync_transport_failure(client, shell, session):
    _upload(client)
    client.post("/working/toggle-all")
    session.error = requests.ConnectionError("offline")

    r = client.post("/sync")

    assert r.status_code == 502
    assert shell.state.history == []


def test_reload_from_remote(client, session, fake_response):
    session.get_response = fake_response(
        payload=[{"date": "2024-05-01T00:00:00.000Z", "bankName": "HDFC Bank", "description": "Fuel", "amount": 30}]
    )

    body = client.post("/remote/reload").json()

    assert body["loaded"] == 1
    assert body["state"]["historyCount"] == 1
    assert client.get("/dashboard", params={"month": "2024-05"}).json()["count"] == 1


def test_reload_bad_payload_is_502(client, session, fake_response):
    session.get_response = fake_response()
    assert client.post("/remote/reload").status_code == 502


def test_config_routes(client, session, store):
    assert client.post("/tags", json={"name": "Gym"}).json() == {"tags": ["Meals", "Gym"]}
    assert client.delete("/tags/Meals").json() == {"tags": ["Gym"]}
    assert client.post("/banks", json={"name": "Axis Bank"}).json() == {"banks": ["HDFC Bank", "Axis Bank"]}
    assert client.delete("/banks/HDFC%20Bank").json() == {"banks": ["Axis Bank"]}
    assert store.load_tags() == ["Gym"]

    assert client.post("/config/push").json() == {"sent": 1}
    assert session.posted_json() == {"isConfigUpdate": True, "tags": ["Gym"], "banks": ["Axis Bank"]}


def test_endpoint_route(client, store):
    r = client.put("/config/endpoint", json={"url": "https://example.com/exec"})
    assert r.json() == {"scriptUrl": "https://example.com/exec"}
    assert store.load_script_url() == "https://example.com/exec"

    assert client.put("/config/endpoint", json={"url": "nope"}).status_code == 422


def test_tab_route(client):
    assert client.put("/tab", json={"tab": "dashboard"}).json() == {"activeTab": "dashboard"}
    assert client.put("/tab", json={"tab": "nope"}).status_code == 422


def test_state_stays_reachable_while_extracting(shell):
    seen = {}

    with TestClient(api.app) as client:

        def _slow_extract(data, filename="statement.pdf"):
            # Runs in the threadpool, so the event loop can still serve requests
            seen["state"] = client.get("/state").json()
            seen["second"] = client.post("/statements/parse", files={"file": PDF}).status_code
            return []

        shell.extract = _slow_extract
        r = client.post("/statements/parse", files={"file": PDF})

    assert r.status_code == 200
    assert seen["state"]["isProcessing"] is True
    assert seen["second"] == 409
